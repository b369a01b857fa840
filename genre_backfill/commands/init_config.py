"""Initialize configuration file for genre-backfill."""

from __future__ import annotations

from importlib import resources
from pathlib import Path

import click

from genre_backfill.cli import Context, pass_context
from genre_backfill.config import get_default_config_path
from genre_backfill.utils.fileops import secure_atomic_write
from genre_backfill.utils.output import error, info, success


def _load_example_config() -> str:
    """Load the example configuration from package data."""
    return resources.files("genre_backfill").joinpath("config.example.toml").read_text()


@click.command("init-config")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    default=False,
    help="Overwrite existing config file",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output path for config file (default: ~/.config/genre-backfill/config.toml)",
)
@pass_context
def cli(ctx: Context, force: bool, output: Path | None) -> None:
    """Create a new configuration file with default settings.

    The file holds API credentials, so it is created readable by the
    owner only.

    Examples:

    \b
      # Create config at default location
      genre-backfill init-config

    \b
      # Create config at custom location
      genre-backfill init-config --output ./my-config.toml
    """
    config_path = output if output is not None else get_default_config_path()
    config_path = config_path.expanduser().resolve()

    if config_path.exists() and not force:
        error(
            f"Config file already exists: {config_path}",
            hint="Use --force to overwrite",
        )
        raise SystemExit(1)

    try:
        secure_atomic_write(config_path, _load_example_config())
    except OSError as e:
        error(f"Failed to write config file: {e}")
        raise SystemExit(1)

    success(f"Created config file: {config_path}")
    info("Fill in your Spotify client id and secret before running 'genre-backfill backfill'.")
