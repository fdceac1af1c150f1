"""permutest CLI - inspect and manage stored permutation runs."""

from __future__ import annotations

import json
from typing import Any

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from permutest.config import configure_logging, load_config
from permutest.core.state import PermutationState
from permutest.errors import PermutestError, UnknownFormatError
from permutest.formatting import get_registry
from permutest.storage import PermutationSnapshot, RunCache, create_run_cache

console = Console()

OUTCOME_STYLES = {
    PermutationState.VERIFIED: "green",
    PermutationState.CANNOT_VERIFY: "yellow",
    PermutationState.SKIPPED: "dim",
    PermutationState.INVALID: "dim",
    PermutationState.VERIFICATION_FAILED: "red",
    PermutationState.SETUP_FAILED: "red",
    PermutationState.CLEANUP_FAILED: "red",
}


def _cache(ctx: click.Context) -> RunCache:
    """Create the configured run cache once per invocation."""
    obj: dict[str, Any] = ctx.ensure_object(dict)
    if "cache" not in obj:
        try:
            cache = create_run_cache(obj["settings"])
        except PermutestError as e:
            raise click.ClickException(e.message) from e
        obj["cache"] = cache
        ctx.call_on_close(cache.close)
    return obj["cache"]


def _outcome(outcome: PermutationState) -> str:
    style = OUTCOME_STYLES.get(outcome, "white")
    return f"[{style}]{outcome.value}[/{style}]"


def _flags(snapshot: PermutationSnapshot) -> str:
    return " ".join(
        name
        for name, value in (
            ("valid", snapshot.is_valid),
            ("can_verify", snapshot.can_verify),
            ("verified", snapshot.verified),
        )
        if value
    )


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to a permutest.yaml configuration file",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """Inspect permutation runs recorded in the run cache."""
    try:
        settings = load_config(config_path)
    except PermutestError as e:
        raise click.ClickException(e.message) from e
    configure_logging(settings.log_level)
    ctx.ensure_object(dict)["settings"] = settings


@cli.command()
@click.option("--scenario", "-s", default=None, help="Only show runs of this scenario")
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.pass_context
def runs(ctx: click.Context, scenario: str | None, output_json: bool) -> None:
    """List stored permutation runs.

    Examples:
        permutest runs
        permutest runs --scenario postgres.create_table
    """
    snapshots = _cache(ctx).list_runs(scenario)

    if output_json:
        click.echo(json.dumps([s.to_dict() for s in snapshots], indent=2))
        return

    if not snapshots:
        console.print("[dim]No runs recorded[/dim]")
        return

    table = Table(title="Permutation runs")
    table.add_column("Scenario", style="cyan")
    table.add_column("Key")
    table.add_column("Outcome")
    table.add_column("Description")
    table.add_column("Reason")
    for snapshot in snapshots:
        table.add_row(
            snapshot.scenario_key,
            snapshot.key[:12],
            _outcome(snapshot.outcome),
            snapshot.long_key,
            snapshot.skip_reason or snapshot.error or "",
        )
    console.print(table)

    counts: dict[str, int] = {}
    for snapshot in snapshots:
        counts[snapshot.outcome.value] = counts.get(snapshot.outcome.value, 0) + 1
    console.print(", ".join(f"{count} {name}" for name, count in sorted(counts.items())))


@cli.command()
@click.argument("scenario")
@click.argument("key")
@click.option("--json", "output_json", is_flag=True, help="Output the snapshot as JSON")
@click.pass_context
def show(ctx: click.Context, scenario: str, key: str, output_json: bool) -> None:
    """Show one stored permutation run."""
    snapshot = _cache(ctx).load(scenario, key)
    if snapshot is None:
        console.print(f"[red]No run recorded for {scenario}/{key}[/red]")
        raise SystemExit(1)

    if output_json:
        click.echo(json.dumps(snapshot.to_dict(), indent=2))
        return

    lines = [
        f"[bold]Outcome:[/bold] {_outcome(snapshot.outcome)}",
        f"[bold]Flags:[/bold] {_flags(snapshot) or '-'}",
        f"[bold]Saved:[/bold] {snapshot.saved_at.isoformat(timespec='seconds')}",
    ]
    if snapshot.skip_reason:
        lines.append(f"[bold]Reason:[/bold] {snapshot.skip_reason}")
    if snapshot.error:
        lines.append(f"[bold red]Error:[/bold red] {snapshot.error}")
    for title, values in (
        ("Description", snapshot.description),
        ("Notes", snapshot.notes),
        ("Data", snapshot.data),
    ):
        if values:
            lines.append(f"\n[bold]{title}[/bold]")
            lines.extend(f"  {name} = {value}" for name, value in values.items())

    console.print(Panel("\n".join(lines), title=f"{snapshot.scenario_key} / {snapshot.key}"))


@cli.command()
@click.argument("scenario")
@click.argument("key", required=False)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def forget(ctx: click.Context, scenario: str, key: str | None, yes: bool) -> None:
    """Delete stored runs of a scenario, or of a single permutation."""
    cache = _cache(ctx)
    if key is not None:
        if not cache.delete(scenario, key):
            console.print(f"[yellow]No run recorded for {scenario}/{key}[/yellow]")
            raise SystemExit(1)
        console.print(f"Forgot {scenario}/{key}")
        return

    if not yes:
        click.confirm(f"Forget every run of {scenario}?", abort=True)
    removed = cache.clear(scenario)
    console.print(f"Forgot {removed} run(s) of {scenario}")


@cli.command()
@click.pass_context
def formats(ctx: click.Context) -> None:
    """List the registered output formats. The configured default is starred."""
    registry = get_registry()
    default = ctx.obj["settings"].default_format
    if default not in registry:
        raise click.ClickException(UnknownFormatError(default, registry.names()).message)

    table = Table(title="Output formats")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    for fmt in registry.all():
        name = f"{fmt.name} *" if fmt.name == default else fmt.name
        table.add_row(name, fmt.description)
    console.print(table)
