"""Configuration models for Outfitter using Pydantic."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field, model_validator

from outfitter.core.errors import UnitConfigError


class ResolverConfig(BaseModel):
    """How a unit discovers the version it should install."""

    model_config = {"populate_by_name": True, "extra": "forbid"}

    kind: Literal["static", "url-text", "github-release"] = "static"
    version: str = ""
    url: str = ""
    repo: str = ""
    tag_prefix: str = Field("", alias="tag-prefix")
    fallback: str = ""


class UnitConfig(BaseModel):
    """Fields shared by every installation unit."""

    model_config = {"populate_by_name": True, "extra": "forbid"}

    name: str
    section: str = "General"
    required: bool = False
    enable: bool = True
    path: list[str] = Field(default_factory=list)
    variables: dict[str, str] = Field(default_factory=dict)


class AptUnitConfig(UnitConfig):
    """A set of packages from the configured apt sources."""

    kind: Literal["apt"] = "apt"
    packages: list[str]
    individually: bool = False


class AptRepositoryUnitConfig(UnitConfig):
    """A third-party apt repository with its signing key."""

    kind: Literal["apt-repository"] = "apt-repository"
    target_file: str = Field(alias="target-file")
    keyring: str
    key_url: str = Field(alias="key-url")
    repo_line: str = Field(alias="repo-line")


class ScriptUnitConfig(UnitConfig):
    """A tool installed by a fetched installer script."""

    kind: Literal["script"] = "script"
    url: str
    interpreter: str = "sh"
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    binary: str = ""
    version_args: list[str] = Field(default_factory=lambda: ["--version"], alias="version-args")
    directory: str = ""
    as_user: bool = Field(False, alias="as-user")
    post_install: list[str] = Field(default_factory=list, alias="post-install")
    artifacts: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_probe(self) -> "ScriptUnitConfig":
        if not self.binary and not self.directory:
            raise ValueError(f"script unit '{self.name}' needs a binary or a directory to probe")
        return self


class DownloadUnitConfig(UnitConfig):
    """A single executable or AppImage downloaded into place."""

    kind: Literal["download"] = "download"
    url: str
    destination: str
    binary: str = ""
    version_args: list[str] = Field(default_factory=list, alias="version-args")
    resolver: ResolverConfig | None = None
    as_user: bool = Field(False, alias="as-user")


class ArchiveUnitConfig(UnitConfig):
    """A zip archive that ships its own installer."""

    kind: Literal["archive"] = "archive"
    url: str
    binary: str
    installer: str
    installer_args: list[str] = Field(default_factory=list, alias="installer-args")
    artifacts: list[str] = Field(default_factory=list)


class DebUnitConfig(UnitConfig):
    """A .deb package downloaded from a release page."""

    kind: Literal["deb"] = "deb"
    url: str
    binary: str
    resolver: ResolverConfig | None = None
    apt_package: str = Field("", alias="apt-package")


class GitUnitConfig(UnitConfig):
    """A git checkout."""

    kind: Literal["git"] = "git"
    url: str
    destination: str
    depth: int = 0
    as_user: bool = Field(True, alias="as-user")


class PipUnitConfig(UnitConfig):
    """Python packages installed into the real user's site-packages."""

    kind: Literal["pip"] = "pip"
    packages: list[str]
    python: str = "python3"


class SymlinkUnitConfig(UnitConfig):
    """A convenience symlink such as bat -> batcat."""

    kind: Literal["symlink"] = "symlink"
    target: str
    link: str


class PyenvUnitConfig(UnitConfig):
    """pyenv plus a current CPython."""

    kind: Literal["pyenv"] = "pyenv"
    root: str = "~/.pyenv"
    installer_url: str = Field("https://pyenv.run", alias="installer-url")
    build_packages: list[str] = Field(default_factory=list, alias="build-packages")
    python_pattern: str = Field(r"^3\.(11|12)\.[0-9]+$", alias="python-pattern")
    stray_roots: list[str] = Field(
        default_factory=lambda: ["/root/.pyenv", "/home/root/.pyenv"], alias="stray-roots"
    )


class NixUnitConfig(UnitConfig):
    """The Nix package manager in multi-user daemon mode."""

    kind: Literal["nix"] = "nix"
    installer_url: str = Field("https://nixos.org/nix/install", alias="installer-url")
    store: str = "/nix"
    process_patterns: list[str] = Field(
        default_factory=lambda: ["nix-daemon", "nix-store"], alias="process-patterns"
    )
    services: list[str] = Field(
        default_factory=lambda: ["nix-daemon.socket", "nix-daemon.service"]
    )
    unit_files: list[str] = Field(
        default_factory=lambda: [
            "/etc/systemd/system/nix-daemon.service",
            "/etc/systemd/system/nix-daemon.socket",
        ],
        alias="unit-files",
    )
    backup_files: list[str] = Field(
        default_factory=lambda: [
            "/etc/bash.bashrc",
            "/etc/bashrc",
            "/etc/profile.d/nix.sh",
            "/etc/zshrc",
            "/etc/zsh/zshrc",
        ],
        alias="backup-files",
    )
    user_backup_files: list[str] = Field(
        default_factory=lambda: ["~/.bash_profile", "~/.bashrc", "~/.zshrc", "~/.profile"],
        alias="user-backup-files",
    )
    build_group: str = Field("nixbld", alias="build-group")
    build_users: int = Field(32, alias="build-users")


class LlamaCppUnitConfig(UnitConfig):
    """llama.cpp cloned and built with CMake."""

    kind: Literal["llama-cpp"] = "llama-cpp"
    url: str = "https://github.com/ggerganov/llama.cpp.git"
    destination: str = "~/dev/llama.cpp"
    cuda_flag: str = Field("-DLLAMA_CUDA=ON", alias="cuda-flag")


class CudaUnitConfig(UnitConfig):
    """The CUDA toolkit, installed only on machines with an NVIDIA GPU."""

    kind: Literal["cuda"] = "cuda"
    keyring_url: str = Field(alias="keyring-url")
    packages: list[str] = Field(default_factory=lambda: ["cuda-toolkit"])
    extra_packages: list[str] = Field(default_factory=list, alias="extra-packages")


class DefaultShellUnitConfig(UnitConfig):
    """The real user's login shell."""

    kind: Literal["default-shell"] = "default-shell"
    shell: str = "zsh"


class GroupMembershipUnitConfig(UnitConfig):
    """The real user's membership of a supplementary group such as docker."""

    kind: Literal["group-membership"] = "group-membership"
    group: str


UnitSpec = Annotated[
    AptUnitConfig
    | AptRepositoryUnitConfig
    | ScriptUnitConfig
    | DownloadUnitConfig
    | ArchiveUnitConfig
    | DebUnitConfig
    | GitUnitConfig
    | PipUnitConfig
    | SymlinkUnitConfig
    | PyenvUnitConfig
    | NixUnitConfig
    | LlamaCppUnitConfig
    | CudaUnitConfig
    | DefaultShellUnitConfig
    | GroupMembershipUnitConfig,
    Field(discriminator="kind"),
]


class RunSettings(BaseModel):
    """Tunables for a provisioning run."""

    model_config = {"populate_by_name": True}

    grace_period: float = Field(2.0, alias="grace-period")
    fetch_attempts: int = Field(3, alias="fetch-attempts")
    fetch_timeout: float = Field(300.0, alias="fetch-timeout")
    stash_dir: str = Field("/tmp", alias="stash-dir")


class ConfigOverrides(BaseModel):
    """CLI flag and environment variable overrides for configuration."""

    only: list[str] = Field(default_factory=list)
    skip: list[str] = Field(default_factory=list)
    dry_run: bool = False


class OutfitterConfig(BaseModel):
    """Main configuration for Outfitter."""

    units: list[UnitSpec] = Field(default_factory=list)
    settings: RunSettings = Field(default_factory=RunSettings)

    # Runtime fields
    overrides: ConfigOverrides = Field(default_factory=ConfigOverrides)
    verbose: bool = False
    trace: bool = False

    @model_validator(mode="after")
    def _check_unique_names(self) -> "OutfitterConfig":
        seen: set[str] = set()
        for unit in self.units:
            if unit.name in seen:
                raise ValueError(f"duplicate unit name '{unit.name}'")
            seen.add(unit.name)
        return self

    def unit_names(self) -> list[str]:
        return [unit.name for unit in self.units]

    def selected_units(self) -> list[UnitSpec]:
        """Enabled units narrowed by the --only/--skip overrides, in declared order.

        Raises:
            UnitConfigError: If an override names an unknown unit
        """
        known = set(self.unit_names())
        unknown = sorted((set(self.overrides.only) | set(self.overrides.skip)) - known)
        if unknown:
            raise UnitConfigError(f"Unknown unit(s): {', '.join(unknown)}")

        selected = []
        for unit in self.units:
            if self.overrides.only:
                if unit.name not in self.overrides.only:
                    continue
            elif not unit.enable:
                continue
            if unit.name in self.overrides.skip:
                continue
            selected.append(unit)
        return selected
