"""Unit tests for the command-line interface."""

from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from outfitter.cli.app import EXIT_INTERRUPTED, app
from outfitter.config.models import ConfigOverrides
from outfitter.core.errors import UnitConfigError
from outfitter.core.outcome import RunReport, UnitResult, UnitStatus

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("OUTFITTER_ONLY", "OUTFITTER_SKIP", "OUTFITTER_DRY_RUN"):
        monkeypatch.delenv(key, raising=False)


def failed_report() -> RunReport:
    report = RunReport()
    report.add(UnitResult(name="base-packages", status=UnitStatus.FAILED, required=True))
    return report


class TestRunCommand:
    """Tests for the run command."""

    def test_requires_root(self) -> None:
        """Test that a real run refuses to start without root."""
        with patch("outfitter.cli.app.os.geteuid", return_value=1000):
            result = runner.invoke(app, ["run"])

        assert result.exit_code == 1
        assert "requires root privileges" in result.output

    def test_unknown_preset(self) -> None:
        """Test that an unknown preset is rejected before anything runs."""
        result = runner.invoke(app, ["run", "--preset", "nope", "--dry-run"])

        assert result.exit_code == 1
        assert "Unknown preset 'nope'" in result.output

    def test_exit_code_from_report(self) -> None:
        """Test that a failed required unit gives exit code 1."""
        run_units = AsyncMock(return_value=failed_report())
        with (
            patch("outfitter.cli.app.os.geteuid", return_value=0),
            patch("outfitter.cli.app.run_units", run_units),
        ):
            result = runner.invoke(app, ["run", "--only", "base-packages,nvm", "--skip", "nix"])

        assert result.exit_code == 1
        overrides = run_units.await_args.args[2]
        assert overrides == ConfigOverrides(only=["base-packages", "nvm"], skip=["nix"])

    def test_dry_run_skips_root_check(self) -> None:
        """Test that a dry run works without root and passes the flag on."""
        run_units = AsyncMock(return_value=RunReport(dry_run=True))
        with (
            patch("outfitter.cli.app.os.geteuid", return_value=1000),
            patch("outfitter.cli.app.run_units", run_units),
        ):
            result = runner.invoke(app, ["run", "--dry-run"])

        assert result.exit_code == 0
        assert run_units.await_args.args[2].dry_run is True

    def test_env_overrides_combine(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that OUTFITTER_* variables add to the CLI flags."""
        monkeypatch.setenv("OUTFITTER_SKIP", "cuda")
        monkeypatch.setenv("OUTFITTER_DRY_RUN", "true")
        run_units = AsyncMock(return_value=RunReport(dry_run=True))
        with patch("outfitter.cli.app.run_units", run_units):
            result = runner.invoke(app, ["run", "--skip", "nix"])

        assert result.exit_code == 0
        overrides = run_units.await_args.args[2]
        assert overrides.skip == ["nix", "cuda"]
        assert overrides.dry_run is True

    def test_config_error(self) -> None:
        """Test that configuration errors are reported with exit code 1."""
        run_units = AsyncMock(side_effect=UnitConfigError("Unknown unit(s): nope"))
        with patch("outfitter.cli.app.run_units", run_units):
            result = runner.invoke(app, ["run", "--dry-run", "--only", "nope"])

        assert result.exit_code == 1
        assert "Error: Unknown unit(s): nope" in result.output

    def test_interrupted(self) -> None:
        """Test that Ctrl-C exits with the conventional code."""
        run_units = AsyncMock(side_effect=KeyboardInterrupt)
        with patch("outfitter.cli.app.run_units", run_units):
            result = runner.invoke(app, ["run", "--dry-run"])

        assert result.exit_code == EXIT_INTERRUPTED

    def test_list_flag(self) -> None:
        """Test that --list shows the listing instead of running."""
        list_units = AsyncMock(return_value=[])
        run_units = AsyncMock()
        with (
            patch("outfitter.cli.app.list_units", list_units),
            patch("outfitter.cli.app.run_units", run_units),
        ):
            result = runner.invoke(app, ["run", "--list", "--preset", "minimal"])

        assert result.exit_code == 0
        list_units.assert_awaited_once()
        run_units.assert_not_awaited()


class TestListCommand:
    """Tests for the list command."""

    def test_list(self) -> None:
        """Test that list probes without needing root."""
        list_units = AsyncMock(return_value=[])
        with (
            patch("outfitter.cli.app.os.geteuid", return_value=1000),
            patch("outfitter.cli.app.list_units", list_units),
        ):
            result = runner.invoke(app, ["list", "--only", "nvm"])

        assert result.exit_code == 0
        assert list_units.await_args.args[2].only == ["nvm"]
