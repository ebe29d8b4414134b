"""changetour clear command - remove stored explanations."""

from pathlib import Path

import click
import questionary
from rich.console import Console

from changetour.cli.utils import find_repo_root, load_cli_config
from changetour.tour.store import ExplanationStore


@click.command()
@click.argument("path", default=None, required=False, type=click.Path(exists=True, path_type=Path))
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
def clear_command(path: Path | None, yes: bool) -> None:
    """Remove cached explanations of a repository.

    PATH is the repository root. If not specified, auto-detects by walking
    up from the current directory to find the git root.
    """
    console = Console(stderr=True)
    repo_root = find_repo_root(path)
    config = load_cli_config(repo_root)
    store = ExplanationStore(repo_root, config.store)

    if not store.path.exists():
        console.print("[yellow]Nothing to clear[/yellow] - no stored explanations")
        return

    if not yes:
        answer = questionary.confirm(
            f"Delete {store.path}?",
            default=False,
        ).ask()
        if not answer:
            console.print("[dim]Cancelled[/dim]")
            return

    try:
        store.clear()
    except OSError as e:
        raise click.ClickException(f"Failed to remove {store.path}: {e}") from e
    console.print(f"  [green]✓[/green] Removed {store.path}")
