"""Console output for runs: section headers, per-unit results and the summary.

The reporter only observes; it never influences what the orchestrator does.
"""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from outfitter.core.outcome import RunReport, UnitListing, UnitResult, UnitState, UnitStatus

STATUS_STYLES = {
    UnitStatus.SKIPPED: ("✓", "green"),
    UnitStatus.INSTALLED: ("✓", "bold green"),
    UnitStatus.FAILED: ("✗", "bold red"),
    UnitStatus.PLANNED: ("•", "yellow"),
    UnitStatus.NOT_RUN: ("-", "dim"),
}

STATE_STYLES = {
    UnitState.ABSENT: "yellow",
    UnitState.HEALTHY: "green",
    UnitState.BROKEN: "red",
}


class Reporter:
    """Writes human-readable progress to a rich console."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the Reporter.

        Args:
            console: Console to write to (stdout by default)
        """
        self.console = console or Console()

    def section(self, title: str) -> None:
        self.console.print()
        self.console.rule(f"[bold cyan]{escape(title)}")

    def unit_result(self, result: UnitResult) -> None:
        symbol, style = STATUS_STYLES[result.status]
        line = f"[{style}]{symbol} {escape(result.name)}[/{style}] {result.status.value}"
        if result.reason:
            line += f" [dim]({escape(result.reason)})[/dim]"
        self.console.print(line)

    def summary(self, report: RunReport) -> None:
        """Print the final table and counts."""
        title = "Dry Run Summary" if report.dry_run else "Summary"
        table = Table(title=title, show_header=True, header_style="bold")
        table.add_column("Unit")
        table.add_column("Status")
        table.add_column("Detail")

        for result in report.results:
            _, style = STATUS_STYLES[result.status]
            table.add_row(
                escape(result.name),
                f"[{style}]{result.status.value}[/{style}]",
                escape(result.reason),
            )

        self.console.print()
        self.console.print(table)

        counts = (
            f"[green]{len(report.skipped)} skipped[/green], "
            f"[bold green]{len(report.installed)} installed[/bold green], "
            f"[bold red]{len(report.failed)} failed[/bold red]"
        )
        if report.dry_run:
            counts += f", [yellow]{len(report.names(UnitStatus.PLANNED))} planned[/yellow]"
        self.console.print(counts)

        if report.failed:
            self.console.print(f"Failed units: {escape(', '.join(report.failed))}")

        if report.aborted_by:
            self.console.print(
                Panel(
                    f"Required unit [bold]{escape(report.aborted_by)}[/bold] failed; "
                    "remaining units were not run.",
                    border_style="red",
                )
            )

    def unit_listing(self, listings: list[UnitListing]) -> None:
        """Print the units with their current state."""
        table = Table(show_header=True, header_style="bold")
        table.add_column("Unit")
        table.add_column("Section")
        table.add_column("Required")
        table.add_column("State")

        for listing in listings:
            if listing.state is None:
                state = "[dim]not applicable[/dim]"
            else:
                style = STATE_STYLES[listing.state]
                state = f"[{style}]{listing.state.value}[/{style}]"
            table.add_row(
                escape(listing.name),
                escape(listing.section),
                "yes" if listing.required else "",
                state,
            )

        self.console.print(table)
