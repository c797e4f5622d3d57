"""Worker protocol for system operations."""

from pathlib import Path
from typing import Protocol, runtime_checkable

from outfitter.core.environment import EnvironmentOverlay
from outfitter.system.command import Command


@runtime_checkable
class Worker(Protocol):
    """Protocol for a system that can execute commands and perform system operations.

    This protocol defines the interface that all system implementations must follow,
    allowing for both real system operations and fakes for testing.
    """

    async def run(self, cmd: Command) -> bytes:
        """Execute a command and return its output.

        Args:
            cmd: Command to execute

        Returns:
            Combined stdout/stderr output as bytes

        Raises:
            CommandError: If the command fails
        """
        ...

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
        ...

    async def succeeds(self, cmd: Command) -> bool:
        """Execute a command, reporting only whether it exited successfully."""
        ...

    def which(self, name: str, env: EnvironmentOverlay | None = None) -> str | None:
        """Resolve an executable through PATH with an overlay applied.

        Args:
            name: Executable name
            env: Overlay whose PATH prefixes are searched first

        Returns:
            Absolute path of the executable, or None
        """
        ...

    async def write_file(self, filepath: Path, contents: bytes, mode: int | None = None) -> None:
        """Write a file, creating parent directories.

        Args:
            filepath: Absolute path to write
            contents: File contents
            mode: Optional permission bits to apply

        Raises:
            OSError: If file cannot be written
        """
        ...

    async def remove_path(self, filepath: Path) -> bool:
        """Recursively remove a file, symlink or directory.

        Args:
            filepath: Path to remove

        Returns:
            True if something was removed, False if it was already absent

        Raises:
            OSError: If removal fails
        """
        ...

    async def move_path(self, source: Path, destination: Path) -> None:
        """Move a file, replacing the destination."""
        ...

    async def copy_file(self, source: Path, destination: Path) -> None:
        """Copy a file, replacing the destination."""
        ...

    async def read_file(self, filepath: Path) -> bytes:
        """Read a file from anywhere on the filesystem.

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        ...

    async def chown_to_user(self, path: Path) -> None:
        """Recursively hand a path over to the real user when running under sudo."""
        ...

    def username(self) -> str:
        """Get the real username (not root if running with sudo)."""
        ...

    def home_dir(self) -> Path:
        """Get the real user's home directory."""
        ...

    def is_root(self) -> bool:
        """Check whether the process runs with root privileges."""
        ...
