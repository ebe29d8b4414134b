"""CLI utilities."""

from pathlib import Path

import click

from changetour.config.loader import load_config
from changetour.config.models import ChangeTourConfig
from changetour.core.errors import ConfigError
from changetour.core.logging import configure_logging


def find_repo_root(start_path: Path | None = None) -> Path:
    """Find the git repository root from the given path.

    Walks up the directory tree looking for a .git entry.
    If start_path is None, uses the current working directory.

    Raises:
        click.ClickException: If not inside a git repository
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while current != current.parent:
        if (current / ".git").exists():
            return current
        current = current.parent

    if (current / ".git").exists():
        return current

    raise click.ClickException(
        f"Not inside a git repository: {start_path}\n"
        "ChangeTour commands must be run from within a git repository."
    )


def load_cli_config(repo_root: Path, config_path: Path | None = None) -> ChangeTourConfig:
    """Load config for a command and apply its logging section.

    ``-v`` on the group raises the root level to DEBUG. Config errors become
    CLI errors.
    """
    try:
        config = load_config(repo_root, config_path=config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    logging_config = config.logging
    ctx = click.get_current_context(silent=True)
    if ctx is not None and (ctx.find_root().obj or {}).get("verbose"):
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    configure_logging(config=logging_config)
    return config
