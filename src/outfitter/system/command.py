"""Command models for system execution."""

import shlex
from dataclasses import dataclass, field
from shutil import which


@dataclass
class Command:
    """Represents a command to be executed by Outfitter.

    Attributes:
        executable: The command to execute
        args: Arguments to pass to the executable
        user: Optional user to run the command as (via sudo)
        env: Extra environment variables for the command
        cwd: Working directory for the command
    """

    executable: str
    args: list[str] = field(default_factory=list)
    user: str = ""
    env: dict[str, str] = field(default_factory=dict)
    cwd: str = ""

    @property
    def uses_sudo(self) -> bool:
        """Whether the command is wrapped in sudo."""
        return bool(self.user) and self.user != "root"

    @property
    def full_command(self) -> list[str]:
        """Build the full command including sudo if needed.

        When running through sudo the extra environment is passed with
        ``env`` because sudo resets the caller's environment.

        Returns:
            List of command components
        """
        executable_path = which(self.executable, path=self.env.get("PATH"))
        if executable_path is None:
            executable_path = self.executable

        cmd: list[str] = []

        if self.uses_sudo:
            cmd.extend(["sudo", "-H", "-u", self.user])

            if self.env:
                cmd.append("env")
                cmd.extend(f"{k}={v}" for k, v in self.env.items())

        cmd.append(executable_path)
        cmd.extend(self.args)

        return cmd

    @property
    def command_string(self) -> str:
        """Build the command as a properly escaped shell string.

        Returns:
            Shell-escaped command string
        """
        return shlex.join(self.full_command)


class CommandError(Exception):
    """Raised when a command execution fails.

    Attributes:
        command: The command that failed
        returncode: Exit code from the command
        output: Combined stdout/stderr output
    """

    def __init__(self, command: str, returncode: int, output: str) -> None:
        """Initialize CommandError.

        Args:
            command: The command that failed
            returncode: Exit code from the command
            output: Combined stdout/stderr output
        """
        self.command = command
        self.returncode = returncode
        self.output = output
        super().__init__(f"Command failed with exit code {returncode}: {command}")

    def tail(self, lines: int = 5) -> str:
        """Return the last few lines of output for reporting."""
        return "\n".join(self.output.strip().splitlines()[-lines:])
