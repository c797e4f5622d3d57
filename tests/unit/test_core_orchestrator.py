"""Unit tests for the orchestrator."""

import io

import pytest
from rich.console import Console

from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.errors import ProbeInconclusive, RepairFailed
from outfitter.core.orchestrator import Orchestrator, install_unit, probe_unit, repair_unit
from outfitter.core.outcome import InstallKind, RepairOutcome, UnitState, UnitStatus
from outfitter.core.reporter import Reporter
from outfitter.system.command import CommandError


class FakeUnit:
    """In-memory unit whose state changes as repair and install run."""

    def __init__(
        self,
        name: str,
        state: UnitState = UnitState.ABSENT,
        required: bool = False,
        section: str = "General",
        overlay: EnvironmentOverlay | None = None,
        applicable: bool = True,
        install_error: Exception | None = None,
        repair_error: Exception | None = None,
        state_after_install: UnitState = UnitState.HEALTHY,
        state_after_repair: UnitState = UnitState.ABSENT,
    ) -> None:
        self._name = name
        self.state = state
        self._required = required
        self._section = section
        self._overlay = overlay or EnvironmentOverlay()
        self._applicable = applicable
        self.install_error = install_error
        self.repair_error = repair_error
        self.state_after_install = state_after_install
        self.state_after_repair = state_after_repair
        self.calls: list[str] = []
        self.seen_envs: list[EnvironmentOverlay] = []

    def name(self) -> str:
        return self._name

    def section(self) -> str:
        return self._section

    def required(self) -> bool:
        return self._required

    def overlay(self) -> EnvironmentOverlay:
        return self._overlay

    async def applicable(self) -> bool:
        return self._applicable

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        self.calls.append("probe")
        self.seen_envs.append(env)
        return self.state

    async def repair(self, env: EnvironmentOverlay) -> None:
        self.calls.append("repair")
        if self.repair_error:
            raise self.repair_error
        self.state = self.state_after_repair

    async def install(self, env: EnvironmentOverlay) -> None:
        self.calls.append("install")
        self.seen_envs.append(env)
        if self.install_error:
            raise self.install_error
        self.state = self.state_after_install


class ExplodingProbe(FakeUnit):
    """Unit whose probe raises."""

    def __init__(self, name: str, error: Exception) -> None:
        super().__init__(name)
        self.error = error

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        raise self.error


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def reporter(output: io.StringIO) -> Reporter:
    return Reporter(Console(file=output, width=120, no_color=True))


class TestProbeUnit:
    """Tests for probe_unit function."""

    @pytest.mark.asyncio
    async def test_passes_through_state(self) -> None:
        """Test that a successful probe's state is returned."""
        unit = FakeUnit("git", UnitState.HEALTHY)
        assert await probe_unit(unit, EnvironmentOverlay()) == UnitState.HEALTHY

    @pytest.mark.asyncio
    async def test_inconclusive_is_broken(self) -> None:
        """Test that an inconclusive probe counts as broken."""
        unit = ExplodingProbe("nix", ProbeInconclusive("cannot read /nix"))
        assert await probe_unit(unit, EnvironmentOverlay()) == UnitState.BROKEN

    @pytest.mark.asyncio
    async def test_unexpected_error_is_broken(self) -> None:
        """Test that any probe exception counts as broken."""
        unit = ExplodingProbe("nix", PermissionError("denied"))
        assert await probe_unit(unit, EnvironmentOverlay()) == UnitState.BROKEN


class TestRepairUnit:
    """Tests for repair_unit function."""

    @pytest.mark.asyncio
    async def test_cleaned(self) -> None:
        """Test that a repair leaving the unit absent is CLEANED."""
        unit = FakeUnit("nix", UnitState.BROKEN)
        assert await repair_unit(unit, EnvironmentOverlay()) == RepairOutcome.CLEANED

    @pytest.mark.asyncio
    async def test_turned_out_healthy(self) -> None:
        """Test that a unit healthy after repair needs nothing further."""
        unit = FakeUnit("nix", UnitState.BROKEN, state_after_repair=UnitState.HEALTHY)
        assert await repair_unit(unit, EnvironmentOverlay()) == RepairOutcome.NOTHING_TO_DO

    @pytest.mark.asyncio
    async def test_still_broken(self) -> None:
        """Test that a unit still broken after repair is FAILED."""
        unit = FakeUnit("nix", UnitState.BROKEN, state_after_repair=UnitState.BROKEN)
        assert await repair_unit(unit, EnvironmentOverlay()) == RepairOutcome.FAILED

    @pytest.mark.asyncio
    async def test_repair_error(self) -> None:
        """Test that RepairFailed is turned into FAILED."""
        unit = FakeUnit(
            "nix",
            UnitState.BROKEN,
            repair_error=RepairFailed("nix", ["umount /nix/store: busy"]),
        )
        assert await repair_unit(unit, EnvironmentOverlay()) == RepairOutcome.FAILED


class TestInstallUnit:
    """Tests for install_unit function."""

    @pytest.mark.asyncio
    async def test_already_present(self) -> None:
        """Test that a healthy unit is not installed again."""
        unit = FakeUnit("git", UnitState.HEALTHY)
        outcome = await install_unit(unit, EnvironmentOverlay())

        assert outcome.kind == InstallKind.SKIPPED_ALREADY_PRESENT
        assert "install" not in unit.calls

    @pytest.mark.asyncio
    async def test_installed(self) -> None:
        """Test a successful install verified by a probe."""
        outcome = await install_unit(FakeUnit("git"), EnvironmentOverlay())
        assert outcome.kind == InstallKind.INSTALLED
        assert outcome.reason == ""

    @pytest.mark.asyncio
    async def test_command_error_reason_is_last_line(self) -> None:
        """Test that a failed command reports its last output line."""
        error = CommandError("sh installer.sh", 2, "downloading\nerror: checksum mismatch\n")
        unit = FakeUnit("rustup", install_error=error)

        outcome = await install_unit(unit, EnvironmentOverlay())

        assert outcome.kind == InstallKind.FAILED
        assert outcome.reason == "error: checksum mismatch"

    @pytest.mark.asyncio
    async def test_not_healthy_after_install(self) -> None:
        """Test that an install whose probe does not pass is a failure."""
        unit = FakeUnit("nvm", state_after_install=UnitState.ABSENT)
        outcome = await install_unit(unit, EnvironmentOverlay())
        assert outcome.reason == "not healthy after install"

    @pytest.mark.asyncio
    async def test_verification_sees_own_overlay(self) -> None:
        """Test that the post-install probe runs with the unit's overlay."""
        own = EnvironmentOverlay.of(["/home/alice/.cargo/bin"])
        unit = FakeUnit("rustup", overlay=own)

        await install_unit(unit, EnvironmentOverlay(), UnitState.ABSENT)

        assert unit.seen_envs[-1].path_prefixes == ("/home/alice/.cargo/bin",)

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates(self) -> None:
        """Test that programming errors are not swallowed."""
        unit = FakeUnit("git", install_error=KeyError("oops"))
        with pytest.raises(KeyError):
            await install_unit(unit, EnvironmentOverlay())


class TestOrchestrator:
    """Tests for Orchestrator."""

    @pytest.mark.asyncio
    async def test_second_run_is_all_skipped(self, reporter: Reporter) -> None:
        """Test that a converged system needs no further work."""
        units = [FakeUnit("git"), FakeUnit("nvm"), FakeUnit("rustup")]

        first = await Orchestrator(units, reporter).run()
        second = await Orchestrator(units, reporter).run()

        assert first.installed == ["git", "nvm", "rustup"]
        assert second.skipped == ["git", "nvm", "rustup"]
        assert all(r.reason == "already present" for r in second.results)
        assert [u.calls.count("install") for u in units] == [1, 1, 1]

    @pytest.mark.asyncio
    async def test_optional_failure_continues(self, reporter: Reporter) -> None:
        """Test that a failed optional unit does not stop the run."""
        units = [
            FakeUnit("ollama", install_error=CommandError("sh", 1, "no network")),
            FakeUnit("git", required=True),
        ]

        report = await Orchestrator(units, reporter).run()

        assert report.failed == ["ollama"]
        assert report.installed == ["git"]
        assert report.exit_code == 0
        assert report.aborted_by == ""

    @pytest.mark.asyncio
    async def test_required_failure_aborts(self, reporter: Reporter, output: io.StringIO) -> None:
        """Test that later units are not run after a required failure."""
        later = FakeUnit("nvm")
        units = [
            FakeUnit("base-packages", required=True, install_error=OSError("disk full")),
            later,
            FakeUnit("pyenv", required=True),
        ]

        report = await Orchestrator(units, reporter).run()

        assert report.exit_code == 1
        assert report.aborted_by == "base-packages"
        assert report.get("nvm").status == UnitStatus.NOT_RUN
        assert report.get("pyenv").reason == "aborted after base-packages"
        assert later.calls == []
        assert "remaining units were not run" in output.getvalue()

    @pytest.mark.asyncio
    async def test_dry_run_mutates_nothing(self, reporter: Reporter, output: io.StringIO) -> None:
        """Test that a dry run only probes."""
        units = [
            FakeUnit("git", UnitState.HEALTHY),
            FakeUnit("nvm"),
            FakeUnit("nix", UnitState.BROKEN),
        ]

        report = await Orchestrator(units, reporter, dry_run=True).run()

        assert [r.status for r in report.results] == [
            UnitStatus.SKIPPED,
            UnitStatus.PLANNED,
            UnitStatus.PLANNED,
        ]
        assert report.get("nvm").reason == "install"
        assert report.get("nix").reason == "repair, install"
        assert all(c == "probe" for u in units for c in u.calls)
        assert "Dry Run Summary" in output.getvalue()

    @pytest.mark.asyncio
    async def test_broken_is_repaired_then_installed(self, reporter: Reporter) -> None:
        """Test the repair-then-install path."""
        unit = FakeUnit("nix", UnitState.BROKEN)

        report = await Orchestrator([unit], reporter).run()

        assert report.installed == ["nix"]
        assert report.get("nix").state == UnitState.BROKEN
        assert unit.calls == ["probe", "repair", "probe", "install", "probe"]

    @pytest.mark.asyncio
    async def test_repair_failure_skips_install(self, reporter: Reporter) -> None:
        """Test that a failed repair never reaches install."""
        unit = FakeUnit("nix", UnitState.BROKEN, state_after_repair=UnitState.BROKEN)

        report = await Orchestrator([unit], reporter).run()

        assert report.get("nix").reason == "repair-failed"
        assert "install" not in unit.calls

    @pytest.mark.asyncio
    async def test_overlay_threads_to_later_units(self, reporter: Reporter) -> None:
        """Test that a unit sees the PATH contributed by earlier units."""
        rustup = FakeUnit("rustup", overlay=EnvironmentOverlay.of(["/home/alice/.cargo/bin"]))
        failing = FakeUnit(
            "nvm",
            overlay=EnvironmentOverlay.of(["/home/alice/.nvm/bin"]),
            install_error=CommandError("bash", 1, "boom"),
        )
        later = FakeUnit("cargo-tool")

        await Orchestrator([rustup, failing, later], reporter).run()

        assert later.seen_envs[0].path_prefixes == ("/home/alice/.cargo/bin",)

    @pytest.mark.asyncio
    async def test_not_applicable(self, reporter: Reporter) -> None:
        """Test that units that do not apply are skipped without probing."""
        unit = FakeUnit("cuda", applicable=False)

        report = await Orchestrator([unit], reporter).run()

        assert report.get("cuda").reason == "not applicable"
        assert report.get("cuda").state is None
        assert unit.calls == []

    @pytest.mark.asyncio
    async def test_sections_printed_once(self, reporter: Reporter, output: io.StringIO) -> None:
        """Test that a section header is printed when the section changes."""
        units = [
            FakeUnit("git", section="Base"),
            FakeUnit("jq", section="Base"),
            FakeUnit("nvm", section="Languages"),
        ]

        await Orchestrator(units, reporter).run()

        text = output.getvalue()
        assert text.count("Base") == 1
        assert text.count("Languages") == 1
