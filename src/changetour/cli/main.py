"""ChangeTour CLI - changetour command."""

import click

from changetour.cli.clear import clear_command
from changetour.cli.tour import graph_command, tour_command
from changetour.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="changetour")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """ChangeTour - guided tours of uncommitted changes."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "INFO")


cli.add_command(tour_command, name="tour")
cli.add_command(graph_command, name="graph")
cli.add_command(clear_command, name="clear")


if __name__ == "__main__":
    cli()
