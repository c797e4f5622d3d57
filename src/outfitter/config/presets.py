"""Built-in unit catalogues for Outfitter.

The workstation preset mirrors a scientific and creative development setup
on Debian: toolchains, package repositories, databases, scientific tools,
terminal utilities and, where an NVIDIA GPU is present, CUDA.
"""

from typing import Any

from outfitter.config.models import OutfitterConfig

FOUNDATION = "System Foundation & Core Tools"
LANGUAGES = "Development Languages & Runtimes"
PYTHON = "Python Ecosystem"
DEVOPS = "DevOps, Cloud & Containers"
DATABASES = "Databases & Data Stores"
SCIENCE = "Scientific & Creative Suite"
AI = "AI/ML & Kubernetes"
TERMINAL = "Terminal Modernization"
GPU = "GPU Computing"

BASE_PACKAGES = [
    "build-essential",
    "pkg-config",
    "libssl-dev",
    "git",
    "curl",
    "wget",
    "ca-certificates",
    "gnupg",
    "apt-transport-https",
    "unzip",
    "stow",
    "cmake",
    "clang",
    "zsh",
    "jq",
    "poppler-utils",
    "imagemagick",
    "valgrind",
    "lsb-release",
    "software-properties-common",
]

PYENV_BUILD_PACKAGES = [
    "make",
    "libbz2-dev",
    "libffi-dev",
    "libgdbm-dev",
    "liblzma-dev",
    "libncurses5-dev",
    "libreadline-dev",
    "libsqlite3-dev",
    "libxml2-dev",
    "libxmlsec1-dev",
    "llvm",
    "tk-dev",
    "uuid-dev",
    "zlib1g-dev",
]

_BASE_UNITS: list[dict[str, Any]] = [
    {
        "name": "base-packages",
        "kind": "apt",
        "section": FOUNDATION,
        "required": True,
        "packages": BASE_PACKAGES,
    },
    {
        "name": "java",
        "kind": "apt",
        "section": LANGUAGES,
        "required": True,
        "packages": ["openjdk-17-jdk"],
    },
    {
        "name": "rustup",
        "kind": "script",
        "section": LANGUAGES,
        "required": True,
        "url": "https://sh.rustup.rs",
        "args": ["-y"],
        "binary": "rustup",
        "artifacts": ["~/.rustup", "~/.cargo"],
        "as-user": True,
        "path": ["~/.cargo/bin"],
    },
    {
        "name": "nvm",
        "kind": "script",
        "section": LANGUAGES,
        "required": True,
        "url": "https://raw.githubusercontent.com/nvm-sh/nvm/v0.39.7/install.sh",
        "interpreter": "bash",
        "directory": "~/.nvm",
        "as-user": True,
        "env": {"PROFILE": "/dev/null"},
        "variables": {"NVM_DIR": "~/.nvm"},
        "post-install": [
            '. "$NVM_DIR/nvm.sh" && nvm install --lts && nvm use --lts '
            "&& npm install -g typescript",
        ],
    },
]

_PYENV_UNIT: dict[str, Any] = {
    "name": "pyenv",
    "kind": "pyenv",
    "section": PYTHON,
    "required": True,
    "build-packages": PYENV_BUILD_PACKAGES,
    "path": ["~/.pyenv/bin", "~/.pyenv/shims"],
    "variables": {"PYENV_ROOT": "~/.pyenv"},
}

_SHELL_UNIT: dict[str, Any] = {
    "name": "default-shell",
    "kind": "default-shell",
    "section": TERMINAL,
    "required": True,
    "shell": "zsh",
}

_WORKSTATION_EXTRA_LANGUAGES: list[dict[str, Any]] = [
    {
        "name": "clojure",
        "kind": "script",
        "section": LANGUAGES,
        "url": "https://download.clojure.org/install/linux-install.sh",
        "interpreter": "bash",
        "binary": "clojure",
        "artifacts": ["/usr/local/bin/clojure", "/usr/local/bin/clj", "/usr/local/lib/clojure"],
        "version-args": ["--version"],
    },
]

_WORKSTATION_PYTHON: list[dict[str, Any]] = [
    {
        "name": "poetry",
        "kind": "script",
        "section": PYTHON,
        "url": "https://install.python-poetry.org",
        "interpreter": "python3",
        "args": ["-"],
        "binary": "poetry",
        "artifacts": ["~/.local/bin/poetry", "~/.local/share/pypoetry"],
        "as-user": True,
        "path": ["~/.local/bin"],
    },
    {
        "name": "uv",
        "kind": "script",
        "section": PYTHON,
        "url": "https://astral.sh/uv/install.sh",
        "binary": "uv",
        "artifacts": ["~/.local/bin/uv", "~/.local/bin/uvx"],
        "as-user": True,
        "path": ["~/.local/bin"],
    },
    {
        "name": "python-packages",
        "kind": "pip",
        "section": PYTHON,
        "packages": ["qiskit", "openmm", "thefuck"],
    },
]

_WORKSTATION_DEVOPS: list[dict[str, Any]] = [
    {
        "name": "vscode-repo",
        "kind": "apt-repository",
        "section": DEVOPS,
        "target-file": "/etc/apt/sources.list.d/vscode.list",
        "keyring": "/usr/share/keyrings/microsoft-archive-keyring.gpg",
        "key-url": "https://packages.microsoft.com/keys/microsoft.asc",
        "repo-line": "deb [arch=amd64 signed-by=/usr/share/keyrings/microsoft-archive-keyring.gpg] "
        "https://packages.microsoft.com/repos/vscode stable main",
    },
    {
        "name": "docker-repo",
        "kind": "apt-repository",
        "section": DEVOPS,
        "target-file": "/etc/apt/sources.list.d/docker.list",
        "keyring": "/etc/apt/keyrings/docker.gpg",
        "key-url": "https://download.docker.com/linux/debian/gpg",
        "repo-line": "deb [arch={arch} signed-by=/etc/apt/keyrings/docker.gpg] "
        "https://download.docker.com/linux/debian {codename} stable",
    },
    {
        "name": "google-cloud-repo",
        "kind": "apt-repository",
        "section": DEVOPS,
        "target-file": "/etc/apt/sources.list.d/google-cloud-sdk.list",
        "keyring": "/usr/share/keyrings/cloud.google.gpg",
        "key-url": "https://packages.cloud.google.com/apt/doc/apt-key.gpg",
        "repo-line": "deb [signed-by=/usr/share/keyrings/cloud.google.gpg] "
        "https://packages.cloud.google.com/apt cloud-sdk main",
    },
    {
        "name": "editors-and-containers",
        "kind": "apt",
        "section": DEVOPS,
        "packages": [
            "code",
            "neovim",
            "emacs",
            "docker-ce",
            "docker-ce-cli",
            "containerd.io",
            "docker-buildx-plugin",
            "docker-compose-plugin",
            "google-cloud-sdk",
        ],
    },
    {
        "name": "docker-group",
        "kind": "group-membership",
        "section": DEVOPS,
        "group": "docker",
    },
    {
        "name": "aws-cli",
        "kind": "archive",
        "section": DEVOPS,
        "url": "https://awscli.amazonaws.com/awscli-exe-linux-x86_64.zip",
        "binary": "aws",
        "installer": "aws/install",
        "artifacts": ["/usr/local/aws-cli", "/usr/local/bin/aws", "/usr/local/bin/aws_completer"],
    },
    {
        "name": "nix",
        "kind": "nix",
        "section": DEVOPS,
        "path": ["/nix/var/nix/profiles/default/bin"],
    },
]

_WORKSTATION_DATABASES: list[dict[str, Any]] = [
    {
        "name": "postgresql-repo",
        "kind": "apt-repository",
        "section": DATABASES,
        "target-file": "/etc/apt/sources.list.d/pgdg.list",
        "keyring": "/usr/share/keyrings/postgresql.gpg",
        "key-url": "https://www.postgresql.org/media/keys/ACCC4CF8.asc",
        "repo-line": "deb [signed-by=/usr/share/keyrings/postgresql.gpg] "
        "http://apt.postgresql.org/pub/repos/apt {codename}-pgdg main",
    },
    {
        "name": "neo4j-repo",
        "kind": "apt-repository",
        "section": DATABASES,
        "target-file": "/etc/apt/sources.list.d/neo4j.list",
        "keyring": "/usr/share/keyrings/neo4j.gpg",
        "key-url": "https://debian.neo4j.com/neotechnology.gpg.key",
        "repo-line": "deb [signed-by=/usr/share/keyrings/neo4j.gpg] https://debian.neo4j.com stable 5",
    },
    {
        "name": "databases",
        "kind": "apt",
        "section": DATABASES,
        "packages": ["postgresql", "postgresql-contrib", "mysql-server", "redis-server"],
    },
    {
        "name": "neo4j",
        "kind": "apt",
        "section": DATABASES,
        "packages": ["neo4j"],
    },
]

_WORKSTATION_SCIENCE: list[dict[str, Any]] = [
    {
        "name": "bioinformatics",
        "kind": "apt",
        "section": SCIENCE,
        "packages": ["minimap2", "samtools", "bedtools", "sra-toolkit"],
    },
    {
        "name": "simulation",
        "kind": "apt",
        "section": SCIENCE,
        "individually": True,
        "packages": ["ncbi-blast+", "gromacs", "lammps", "cp2k", "entrez-direct", "star"],
    },
    {
        # NCBI's own installer for when apt has no entrez-direct; needs perl
        "name": "edirect",
        "kind": "script",
        "section": SCIENCE,
        "url": "https://ftp.ncbi.nlm.nih.gov/entrez/entrezdirect/install-edirect.sh",
        "interpreter": "bash",
        "binary": "esearch",
        "version-args": [],
        "as-user": True,
        "path": ["~/edirect"],
        "artifacts": ["~/edirect"],
    },
    {
        "name": "latex",
        "kind": "apt",
        "section": SCIENCE,
        "packages": [
            "texlive-latex-base",
            "texlive-latex-recommended",
            "texlive-latex-extra",
            "texlive-fonts-recommended",
        ],
    },
    {
        "name": "creative",
        "kind": "apt",
        "section": SCIENCE,
        "packages": ["gimp", "inkscape"],
    },
    {
        "name": "prusaslicer",
        "kind": "download",
        "section": SCIENCE,
        "url": "https://github.com/prusa3d/PrusaSlicer/releases/download/version_{version}/"
        "PrusaSlicer-{version}+linux-x64-GTK3.AppImage",
        "destination": "~/.local/bin/PrusaSlicer.AppImage",
        "as-user": True,
        "resolver": {
            "kind": "github-release",
            "repo": "prusa3d/PrusaSlicer",
            "tag-prefix": "version_",
            "fallback": "2.8.0",
        },
    },
]

_WORKSTATION_AI: list[dict[str, Any]] = [
    {
        "name": "kind",
        "kind": "download",
        "section": AI,
        "url": "https://kind.sigs.k8s.io/dl/v0.23.0/kind-linux-amd64",
        "destination": "/usr/local/bin/kind",
        "version-args": ["version"],
    },
    {
        "name": "kubectl",
        "kind": "download",
        "section": AI,
        "url": "https://dl.k8s.io/release/{version}/bin/linux/amd64/kubectl",
        "destination": "/usr/local/bin/kubectl",
        "version-args": ["version", "--client"],
        "resolver": {"kind": "url-text", "url": "https://dl.k8s.io/release/stable.txt"},
    },
    {
        "name": "rl-dependencies",
        "kind": "apt",
        "section": AI,
        "packages": ["libsdl2-dev", "libosmesa6-dev", "patchelf"],
    },
    {
        "name": "ollama",
        "kind": "script",
        "section": AI,
        "url": "https://ollama.com/install.sh",
        "binary": "ollama",
        "artifacts": ["/usr/local/bin/ollama"],
    },
    {
        "name": "llama-cpp",
        "kind": "llama-cpp",
        "section": AI,
    },
]

_WORKSTATION_TERMINAL: list[dict[str, Any]] = [
    {
        "name": "terminal-tools",
        "kind": "apt",
        "section": TERMINAL,
        "packages": ["bat", "fd-find", "ripgrep"],
    },
    {
        "name": "fastfetch",
        "kind": "deb",
        "section": TERMINAL,
        "url": "https://github.com/fastfetch-cli/fastfetch/releases/download/{version}/"
        "fastfetch-linux-amd64.deb",
        "binary": "fastfetch",
        "apt-package": "fastfetch",
        "resolver": {"kind": "github-release", "repo": "fastfetch-cli/fastfetch"},
    },
    {
        "name": "bat-link",
        "kind": "symlink",
        "section": TERMINAL,
        "target": "/usr/bin/batcat",
        "link": "~/.local/bin/bat",
    },
    {
        "name": "fd-link",
        "kind": "symlink",
        "section": TERMINAL,
        "target": "/usr/bin/fdfind",
        "link": "~/.local/bin/fd",
    },
    {
        "name": "eza-repo",
        "kind": "apt-repository",
        "section": TERMINAL,
        "target-file": "/etc/apt/sources.list.d/gierens.list",
        "keyring": "/etc/apt/keyrings/gierens.gpg",
        "key-url": "https://raw.githubusercontent.com/eza-community/eza/main/deb.asc",
        "repo-line": "deb [signed-by=/etc/apt/keyrings/gierens.gpg] http://deb.gierens.de stable main",
    },
    {
        "name": "eza",
        "kind": "apt",
        "section": TERMINAL,
        "packages": ["eza"],
    },
    {
        "name": "zoxide",
        "kind": "script",
        "section": TERMINAL,
        "url": "https://raw.githubusercontent.com/ajeetdsouza/zoxide/main/install.sh",
        "interpreter": "bash",
        "binary": "zoxide",
        "artifacts": ["~/.local/bin/zoxide"],
        "as-user": True,
        "path": ["~/.local/bin"],
    },
    {
        "name": "oh-my-zsh",
        "kind": "script",
        "section": TERMINAL,
        "url": "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh",
        "directory": "~/.oh-my-zsh",
        "as-user": True,
        "args": ["--unattended", "--keep-zshrc"],
        "env": {"RUNZSH": "no", "CHSH": "no"},
    },
    {
        "name": "zsh-autosuggestions",
        "kind": "git",
        "section": TERMINAL,
        "url": "https://github.com/zsh-users/zsh-autosuggestions",
        "destination": "~/.oh-my-zsh/custom/plugins/zsh-autosuggestions",
    },
    {
        "name": "zsh-syntax-highlighting",
        "kind": "git",
        "section": TERMINAL,
        "url": "https://github.com/zsh-users/zsh-syntax-highlighting.git",
        "destination": "~/.oh-my-zsh/custom/plugins/zsh-syntax-highlighting",
    },
    {
        "name": "powerlevel10k",
        "kind": "git",
        "section": TERMINAL,
        "url": "https://github.com/romkatv/powerlevel10k.git",
        "destination": "~/.oh-my-zsh/custom/themes/powerlevel10k",
        "depth": 1,
    },
]

_WORKSTATION_GPU: list[dict[str, Any]] = [
    {
        "name": "cuda",
        "kind": "cuda",
        "section": GPU,
        "keyring-url": "https://developer.download.nvidia.com/compute/cuda/repos/"
        "wsl-ubuntu/x86_64/cuda-keyring_1.1-1_all.deb",
        "extra-packages": ["nsight-systems", "nsight-compute"],
        "path": ["/usr/local/cuda/bin"],
        "variables": {
            "CUDA_HOME": "/usr/local/cuda",
            "LD_LIBRARY_PATH": "/usr/local/cuda/lib64",
        },
    },
]


def _workstation_preset() -> OutfitterConfig:
    """The full development workstation, in installation order."""
    units = [
        *_BASE_UNITS,
        *_WORKSTATION_EXTRA_LANGUAGES,
        _PYENV_UNIT,
        *_WORKSTATION_PYTHON,
        *_WORKSTATION_DEVOPS,
        *_WORKSTATION_DATABASES,
        *_WORKSTATION_SCIENCE,
        *_WORKSTATION_AI,
        *_WORKSTATION_TERMINAL,
        _SHELL_UNIT,
        *_WORKSTATION_GPU,
    ]
    return OutfitterConfig.model_validate({"units": units})


def _minimal_preset() -> OutfitterConfig:
    """Base packages, core toolchains and the default shell."""
    units = [*_BASE_UNITS, _PYENV_UNIT, _SHELL_UNIT]
    return OutfitterConfig.model_validate({"units": units})


PRESETS = {
    "workstation": _workstation_preset,
    "minimal": _minimal_preset,
}


def get_preset(name: str) -> OutfitterConfig:
    """Get a configuration preset by name.

    Args:
        name: Preset name

    Returns:
        A fresh configuration for the preset

    Raises:
        ValueError: If preset name is unknown
    """
    factory = PRESETS.get(name)
    if factory is None:
        available = ", ".join(get_available_presets())
        raise ValueError(f"Unknown preset '{name}'. Available presets: {available}")
    return factory()


def get_available_presets() -> list[str]:
    """Get list of available preset names."""
    return list(PRESETS.keys())
