"""Unit tests for system command models."""

from outfitter.system.command import Command, CommandError

# Executable names that never resolve on PATH, so full_command keeps them verbatim
TOOL = "outfitter-test-tool"


class TestCommand:
    """Tests for Command dataclass."""

    def test_command_minimal(self) -> None:
        """Test creating a minimal Command."""
        cmd = Command(executable=TOOL)
        assert cmd.args == []
        assert cmd.user == ""
        assert cmd.group == ""
        assert cmd.env == {}
        assert cmd.cwd == ""

    def test_full_command_simple(self) -> None:
        """Test full_command property for simple command."""
        cmd = Command(executable=TOOL, args=["-l"])
        assert cmd.full_command == [TOOL, "-l"]

    def test_full_command_with_user(self) -> None:
        """Test full_command with a user runs through sudo with a login home."""
        cmd = Command(executable=TOOL, args=["-l"], user="alice")
        assert cmd.full_command == ["sudo", "-H", "-u", "alice", TOOL, "-l"]

    def test_full_command_root_user_no_sudo(self) -> None:
        """Test that root user doesn't add sudo prefix."""
        cmd = Command(executable=TOOL, args=["-l"], user="root")
        assert cmd.uses_sudo is False
        assert cmd.full_command == [TOOL, "-l"]

    def test_full_command_passes_env_through_sudo(self) -> None:
        """Test that extra variables survive sudo's environment reset."""
        cmd = Command(executable=TOOL, user="alice", env={"NVM_DIR": "/home/alice/.nvm"})
        assert cmd.full_command == [
            "sudo",
            "-H",
            "-u",
            "alice",
            "env",
            "NVM_DIR=/home/alice/.nvm",
            TOOL,
        ]

    def test_full_command_env_without_sudo(self) -> None:
        """Test that env is not rendered on the command line without sudo."""
        cmd = Command(executable=TOOL, env={"A": "1"})
        assert cmd.full_command == [TOOL]

    def test_full_command_resolves_through_env_path(self, tmp_path) -> None:
        """Test that the executable is resolved through the command's PATH."""
        tool = tmp_path / TOOL
        tool.write_text("#!/bin/sh\n")
        tool.chmod(0o755)

        cmd = Command(executable=TOOL, env={"PATH": str(tmp_path)})
        assert cmd.full_command == [str(tool)]

    def test_command_string_escapes(self) -> None:
        """Test command_string quotes arguments with spaces."""
        cmd = Command(executable=TOOL, args=["-m", "test message"])
        assert cmd.command_string == f"{TOOL} -m 'test message'"


class TestCommandError:
    """Tests for CommandError exception."""

    def test_command_error_attributes(self) -> None:
        """Test CommandError keeps command, exit code and output."""
        error = CommandError("apt-get install foo", 100, "E: Unable to locate package foo")
        assert error.command == "apt-get install foo"
        assert error.returncode == 100
        assert error.output == "E: Unable to locate package foo"
        assert "exit code 100" in str(error)

    def test_tail_returns_last_lines(self) -> None:
        """Test tail keeps only the last lines of output."""
        output = "\n".join(f"line {i}" for i in range(10))
        error = CommandError("make", 2, output)
        assert error.tail(2) == "line 8\nline 9"

    def test_tail_empty_output(self) -> None:
        """Test tail on empty output."""
        assert CommandError("true", 1, "").tail() == ""
