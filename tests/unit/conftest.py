"""Shared fixtures for unit tests."""

import os
import shutil
from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from outfitter.config.models import RunSettings
from outfitter.core.environment import EnvironmentOverlay
from outfitter.packages.apt import AptHandler
from outfitter.system.command import Command, CommandError
from outfitter.system.fetch import Fetcher
from outfitter.units.base import UnitContext

Response = bytes | CommandError | Callable[[Command], bytes | None]


def command_line(cmd: Command) -> str:
    """Render a command without sudo or PATH resolution."""
    return " ".join([cmd.executable, *cmd.args])


def make_executable(path: Path, script: str = "#!/bin/sh\nexit 0\n") -> Path:
    """Create an executable file, including parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(script)
    path.chmod(0o755)
    return path


class FakeSystem:
    """Worker that records commands and answers them from registered responses.

    File operations act on the real (temporary) filesystem so tests can
    observe their effects. Commands never run; a response is looked up by
    the longest registered prefix of the command line.
    """

    def __init__(self, home: Path, username: str = "alice", root: bool = True) -> None:
        self.home = home
        self.user = username
        self.root = root
        self.commands: list[Command] = []
        self.responses: dict[str, Response] = {}
        self.executables: dict[str, str] = {}
        self.chowned: list[Path] = []

    def on(self, prefix: str, response: Response = b"") -> None:
        self.responses[prefix] = response

    def fail(self, prefix: str, output: str = "", returncode: int = 1) -> None:
        self.responses[prefix] = CommandError(prefix, returncode, output)

    def ran(self, prefix: str) -> bool:
        return any(command_line(c).startswith(prefix) for c in self.commands)

    def lines(self) -> list[str]:
        return [command_line(c) for c in self.commands]

    async def run(self, cmd: Command) -> bytes:
        self.commands.append(cmd)
        line = command_line(cmd)

        matches = [p for p in self.responses if line.startswith(p)]
        if not matches:
            return b""

        response = self.responses[max(matches, key=len)]
        if isinstance(response, CommandError):
            raise CommandError(line, response.returncode, response.output)
        if callable(response):
            return response(cmd) or b""
        return response

    async def run_with_retries(self, cmd: Command, max_duration_ms: int) -> bytes:
        return await self.run(cmd)

    async def succeeds(self, cmd: Command) -> bool:
        try:
            await self.run(cmd)
        except CommandError:
            return False
        return True

    def which(self, name: str, env: EnvironmentOverlay | None = None) -> str | None:
        if "/" in name:
            path = Path(name)
            return name if path.is_file() and os.access(path, os.X_OK) else None

        for prefix in env.path_prefixes if env else ():
            candidate = Path(prefix) / name
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return str(candidate)

        return self.executables.get(name)

    async def write_file(self, filepath: Path, contents: bytes, mode: int | None = None) -> None:
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_bytes(contents)
        if mode is not None:
            filepath.chmod(mode)

    async def remove_path(self, filepath: Path) -> bool:
        if filepath.is_symlink() or filepath.is_file():
            filepath.unlink()
            return True
        if filepath.is_dir():
            shutil.rmtree(filepath)
            return True
        return False

    async def move_path(self, source: Path, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(destination))

    async def copy_file(self, source: Path, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)

    async def read_file(self, filepath: Path) -> bytes:
        return filepath.read_bytes()

    async def chown_to_user(self, path: Path) -> None:
        self.chowned.append(path)

    def username(self) -> str:
        return self.user

    def home_dir(self) -> Path:
        return self.home

    def is_root(self) -> bool:
        return self.root


class FakeProcessController:
    """ProcessController over an in-memory set of running patterns."""

    def __init__(self, running: list[str] | None = None, stubborn: list[str] | None = None) -> None:
        self.running = set(running or [])
        self.stubborn = set(stubborn or [])
        self.signals: list[tuple[str, bool]] = []

    async def is_running(self, pattern: str) -> bool:
        return pattern in self.running

    async def terminate(self, pattern: str, force: bool = False) -> None:
        self.signals.append((pattern, force))
        if pattern not in self.stubborn:
            self.running.discard(pattern)


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home" / "alice"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def system(home: Path) -> FakeSystem:
    return FakeSystem(home)


@pytest.fixture
def fetcher() -> Mock:
    mock = Mock(spec=Fetcher)
    mock.fetch = AsyncMock(return_value=b"#!/bin/sh\n")
    mock.fetch_text = AsyncMock(return_value="")
    mock.fetch_json = AsyncMock(return_value={})
    mock.exists = AsyncMock(return_value=True)
    mock.download = AsyncMock()
    return mock


@pytest.fixture
def processes() -> FakeProcessController:
    return FakeProcessController()


@pytest.fixture
def context(
    system: FakeSystem,
    fetcher: Mock,
    processes: FakeProcessController,
    tmp_path: Path,
) -> UnitContext:
    settings = RunSettings(grace_period=0, stash_dir=str(tmp_path / "stash"))
    return UnitContext(
        system=system,
        fetcher=fetcher,
        apt=AptHandler(system),
        processes=processes,
        settings=settings,
    )
