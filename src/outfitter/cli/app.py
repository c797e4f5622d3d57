"""Main CLI application for Outfitter."""

import asyncio
import os
from typing import Annotated

import typer

from outfitter.cli.commands.list_units import list_units
from outfitter.cli.commands.run import run_units
from outfitter.config.loader import get_env_overrides, merge_overrides, split_comma_list
from outfitter.config.models import ConfigOverrides
from outfitter.config.presets import get_available_presets
from outfitter.core.errors import UnitConfigError
from outfitter.core.logging import setup_logging

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="outfitter",
    help="Idempotent provisioning of a development workstation",
    no_args_is_help=True,
)

ConfigOption = Annotated[
    str,
    typer.Option("--config", "-c", help="Path to configuration file"),
]
PresetOption = Annotated[
    str,
    typer.Option("--preset", "-p", help="Configuration preset (workstation, minimal)"),
]
OnlyOption = Annotated[
    list[str] | None,
    typer.Option("--only", help="Only run these units (comma-separated)"),
]
SkipOption = Annotated[
    list[str] | None,
    typer.Option("--skip", help="Skip these units (comma-separated)"),
]


@app.callback()
def main(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
    trace: Annotated[
        bool, typer.Option("--trace", help="Enable trace logging (most verbose)")
    ] = False,
) -> None:
    """Outfitter - workstation provisioning that is safe to re-run."""
    setup_logging(verbose=verbose, trace=trace)
    ctx.obj = {"trace": trace}


def _check_preset(preset: str) -> None:
    if preset:
        available = get_available_presets()
        if preset not in available:
            typer.echo(
                f"Error: Unknown preset '{preset}'. Available presets: {', '.join(available)}",
                err=True,
            )
            raise typer.Exit(code=1)


def _build_overrides(
    only: list[str] | None,
    skip: list[str] | None,
    dry_run: bool,
) -> ConfigOverrides:
    # CLI and environment lists combine rather than replace each other
    cli_overrides = ConfigOverrides(
        only=split_comma_list(only or []),
        skip=split_comma_list(skip or []),
        dry_run=dry_run,
    )
    return merge_overrides(cli_overrides, get_env_overrides())


def _show_listing(config: str, preset: str, overrides: ConfigOverrides) -> None:
    try:
        asyncio.run(list_units(config, preset, overrides))
    except KeyboardInterrupt:
        typer.echo("Interrupted.", err=True)
        raise typer.Exit(code=EXIT_INTERRUPTED) from None
    except (UnitConfigError, ValueError, FileNotFoundError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command()
def run(
    ctx: typer.Context,
    config: ConfigOption = "",
    preset: PresetOption = "",
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Probe units and report what would be done"),
    ] = False,
    only: OnlyOption = None,
    skip: SkipOption = None,
    list_only: Annotated[
        bool,
        typer.Option("--list", help="List units with their current state and exit"),
    ] = False,
) -> None:
    """Probe, repair and install every selected unit."""
    _check_preset(preset)
    overrides = _build_overrides(only, skip, dry_run)

    if list_only:
        _show_listing(config, preset, overrides)
        return

    if not overrides.dry_run and os.geteuid() != 0:
        typer.echo("This command requires root privileges. Please run with sudo.", err=True)
        raise typer.Exit(code=1)

    trace = bool(ctx.obj and ctx.obj.get("trace"))
    try:
        report = asyncio.run(run_units(config, preset, overrides, trace=trace))
    except KeyboardInterrupt:
        typer.echo("Interrupted.", err=True)
        raise typer.Exit(code=EXIT_INTERRUPTED) from None
    except (UnitConfigError, ValueError, FileNotFoundError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    raise typer.Exit(code=report.exit_code)


@app.command(name="list")
def list_command(
    config: ConfigOption = "",
    preset: PresetOption = "",
    only: OnlyOption = None,
) -> None:
    """List units with their current state."""
    _check_preset(preset)
    _show_listing(config, preset, _build_overrides(only, None, dry_run=False))


if __name__ == "__main__":
    app()
