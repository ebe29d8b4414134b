"""changetour tour / graph commands - build and print a tour."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from changetour.cli.utils import find_repo_root, load_cli_config
from changetour.core.errors import ChangeTourError
from changetour.git.errors import GitError
from changetour.ops import TourOps
from changetour.tour.models import Tour, TourStep


def _build(
    path: Path | None,
    config_path: Path | None,
    *,
    intent: str | None = None,
    offline: bool = True,
    overall: bool = False,
) -> tuple[TourOps, Tour]:
    repo_root = find_repo_root(path)
    config = load_cli_config(repo_root, config_path)
    try:
        ops = TourOps(repo_root, config)
        tour = ops.build(intent=intent, offline=offline, overall=overall)
    except GitError as e:
        raise click.ClickException(str(e)) from e
    except ChangeTourError as e:
        raise click.ClickException(str(e)) from e
    return ops, tour


def _step_label(step: TourStep) -> str:
    unit = step.unit
    if unit is None:
        return step.target.label or ""
    return unit.definition_name or unit.symbol_name or ""


def _kind(step: TourStep) -> str:
    unit = step.unit
    if unit is None:
        return "background"
    return unit.change_kind or "unknown"


def _make_steps_table(tour: Tour) -> Table:
    table = Table(box=None, padding=(0, 1), pad_edge=False)
    table.add_column("#", style="dim", justify="right")
    table.add_column("step", style="cyan")
    table.add_column("kind", style="magenta")
    table.add_column("location")
    table.add_column("symbol", style="bold")
    table.add_column("explanation", overflow="fold")

    for position, step in enumerate(tour.steps, start=1):
        target = step.target
        table.add_row(
            str(position),
            step.id,
            _kind(step),
            f"{target.file_path}:{target.range}",
            _step_label(step),
            step.explanation,
            style="dim" if step.type == "background" else None,
        )
    return table


config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML config file used instead of .changetour/config.yaml",
)


@click.command()
@click.argument("path", default=None, required=False, type=click.Path(exists=True, path_type=Path))
@click.option("--intent", default=None, help="What the change is meant to do")
@click.option("--json", "as_json", is_flag=True, help="Output steps and graph as JSON")
@click.option("--offline", is_flag=True, help="Do not call the explanation endpoint")
@click.option("--overall", is_flag=True, help="Show changes within every definition of the repository")
@click.option("--debug-log", is_flag=True, help="Write a plain-text dump of the tour")
@config_option
def tour_command(
    path: Path | None,
    intent: str | None,
    as_json: bool,
    offline: bool,
    overall: bool,
    debug_log: bool,
    config_path: Path | None,
) -> None:
    """Build a guided tour of the working-tree changes.

    PATH is the repository root. If not specified, auto-detects by walking
    up from the current directory to find the git root.
    """
    ops, tour = _build(path, config_path, intent=intent, offline=offline, overall=overall)

    if debug_log:
        written = ops.write_debug_log(tour)
        Console(stderr=True).print(f"[dim]Debug log written to {written}[/dim]")

    if as_json:
        click.echo(json.dumps(tour.to_dict(), indent=2))
        return

    console = Console()
    if not tour.steps:
        console.print("[yellow]No changes to tour[/yellow]")
        return
    console.print(_make_steps_table(tour))


@click.command()
@click.argument("path", default=None, required=False, type=click.Path(exists=True, path_type=Path))
@click.option("--overall", is_flag=True, help="Graph every definition of the repository")
@config_option
def graph_command(path: Path | None, overall: bool, config_path: Path | None) -> None:
    """Print the tour graph (nodes and edges) as JSON.

    Built offline: no explanation requests are made.
    """
    _, tour = _build(path, config_path, offline=True, overall=overall)
    click.echo(json.dumps(tour.graph.to_dict(), indent=2))
