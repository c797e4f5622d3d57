"""System command runner implementation."""

import asyncio
import os
import pwd
import shutil
from pathlib import Path

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_delay,
    wait_exponential,
)

from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.logging import get_logger
from outfitter.system.command import Command, CommandError

logger = get_logger(__name__)


def _get_shell_path() -> str:
    """Get path to the shell to use for command execution.

    Returns:
        Path to shell executable

    Raises:
        RuntimeError: If no shell can be found
    """
    for candidate in ["/bin/bash", "bash", "/bin/sh", "sh"]:
        if Path(candidate).exists():
            return candidate
        path = shutil.which(candidate)
        if path:
            return path

    raise RuntimeError("Could not find path to a shell")


def _get_real_user() -> tuple[str, str]:
    """Get the real username and home directory.

    When running with sudo, this returns the original user instead of root.

    Returns:
        Tuple of (username, home_directory)
    """
    sudo_user = os.getenv("SUDO_USER")
    username = sudo_user or os.getenv("USER") or "root"

    try:
        return username, pwd.getpwnam(username).pw_dir
    except KeyError:
        if sudo_user:
            return username, f"/home/{username}"
        return username, os.getenv("HOME", f"/home/{username}")


class System:
    """System implementation that executes commands on the local machine.

    This class implements the Worker protocol and provides methods for
    executing commands and managing files.
    """

    def __init__(self, trace: bool = False) -> None:
        """Initialize the System.

        Args:
            trace: Echo every command and its output
        """
        self._trace = trace
        self._shell = _get_shell_path()
        self._username, self._home_dir = _get_real_user()

    def username(self) -> str:
        """Get the real username."""
        return self._username

    def home_dir(self) -> Path:
        """Get the real user's home directory."""
        return Path(self._home_dir)

    def is_root(self) -> bool:
        """Check whether the process runs with root privileges."""
        return os.geteuid() == 0

    def which(self, name: str, env: EnvironmentOverlay | None = None) -> str | None:
        """Resolve an executable through PATH with an overlay applied."""
        overlay = env or EnvironmentOverlay()
        return shutil.which(name, path=overlay.path())

    async def run(self, cmd: Command) -> bytes:
        """Execute a command and return its output.

        Args:
            cmd: Command to execute

        Returns:
            Combined stdout/stderr output as bytes

        Raises:
            CommandError: If the command fails
        """
        command_string = cmd.command_string

        log_ctx = {}
        if cmd.user:
            log_ctx["user"] = cmd.user
        if cmd.cwd:
            log_ctx["cwd"] = cmd.cwd

        logger.debug("Starting command", command=command_string, **log_ctx)

        # Under sudo the environment travels on the command line instead
        env = None
        if cmd.env and not cmd.uses_sudo:
            env = {**os.environ, **cmd.env}

        process = await asyncio.create_subprocess_shell(
            command_string,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            executable=self._shell,
            env=env,
            cwd=cmd.cwd or None,
        )

        stdout, _ = await process.communicate()
        output_str = stdout.decode("utf-8", errors="replace")

        if self._trace:
            self._print_trace(command_string, output_str)

        if process.returncode != 0:
            returncode = process.returncode if process.returncode is not None else 1
            raise CommandError(command_string, returncode, output_str)

        logger.debug("Finished command", command=command_string)

        return stdout

    async def run_with_retries(self, cmd: Command, max_duration_ms: int) -> bytes:
        """Execute a command with exponential backoff retries.

        Args:
            cmd: Command to execute
            max_duration_ms: Maximum duration for retries in milliseconds

        Returns:
            Combined stdout/stderr output as bytes

        Raises:
            CommandError: If all retries fail
        """
        max_duration_sec = max_duration_ms / 1000.0

        try:
            async for attempt in AsyncRetrying(
                wait=wait_exponential(multiplier=1, min=1, max=30),
                stop=stop_after_delay(max_duration_sec),
                reraise=True,
                retry=retry_if_exception_type(CommandError),
            ):
                with attempt:
                    return await self.run(cmd)
        except RetryError as e:
            exc = e.last_attempt.exception()
            if exc is not None:
                raise exc from e
            raise

        # This should never be reached due to reraise=True
        raise RuntimeError("Unexpected retry error")

    async def succeeds(self, cmd: Command) -> bool:
        """Execute a command, reporting only whether it exited successfully."""
        try:
            await self.run(cmd)
        except CommandError:
            return False
        return True

    async def write_file(self, filepath: Path, contents: bytes, mode: int | None = None) -> None:
        """Write a file, creating parent directories.

        Args:
            filepath: Absolute path to write
            contents: File contents
            mode: Optional permission bits to apply

        Raises:
            OSError: If file cannot be written
        """
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_bytes(contents)
        if mode is not None:
            filepath.chmod(mode)

        logger.debug("Wrote file", path=str(filepath))

    async def remove_path(self, filepath: Path) -> bool:
        """Recursively remove a file, symlink or directory.

        Returns:
            True if something was removed, False if it was already absent

        Raises:
            OSError: If removal fails
        """
        if filepath.is_symlink() or filepath.is_file():
            filepath.unlink()
        elif filepath.is_dir():
            shutil.rmtree(filepath)
        elif filepath.exists():
            filepath.unlink()
        else:
            return False

        logger.debug("Removed path", path=str(filepath))
        return True

    async def move_path(self, source: Path, destination: Path) -> None:
        """Move a file, replacing the destination."""
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(destination))
        logger.debug("Moved path", source=str(source), destination=str(destination))

    async def copy_file(self, source: Path, destination: Path) -> None:
        """Copy a file, replacing the destination."""
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
        logger.debug("Copied file", source=str(source), destination=str(destination))

    async def read_file(self, filepath: Path) -> bytes:
        """Read a file from anywhere on the filesystem.

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        if not filepath.exists():
            raise FileNotFoundError(f"File '{filepath}' does not exist")

        return filepath.read_bytes()

    async def chown_to_user(self, path: Path) -> None:
        """Change ownership of a path recursively to the real user.

        Args:
            path: Path to change ownership of
        """
        # Only change ownership if running as sudo
        sudo_user = os.getenv("SUDO_USER")
        if not sudo_user or not path.exists():
            return

        try:
            user_info = pwd.getpwnam(sudo_user)
        except KeyError:
            logger.warning("Could not find user info", user=sudo_user)
            return

        uid, gid = user_info.pw_uid, user_info.pw_gid

        items = [path, *path.rglob("*")] if path.is_dir() else [path]
        for item in items:
            try:
                os.chown(item, uid, gid, follow_symlinks=False)
            except OSError as e:
                logger.warning("Failed to change ownership", path=str(item), error=str(e))

        logger.debug("Changed ownership", path=str(path), user=sudo_user)

    def _print_trace(self, command: str, output: str) -> None:
        """Print trace output for a command.

        Args:
            command: The command that was executed
            output: The command output
        """
        print(f"\n\033[1;32;4mCommand:\033[0m \033[1m{command}\033[0m")
        if output:
            print(f"\033[1;32mOutput:\033[0m\n{output}")
