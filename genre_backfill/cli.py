"""Entry point for the ``genre-backfill`` command.

The group callback settles output (colour, verbosity, logging) and loads
the configuration once; subcommands receive both through :class:`Context`.
Subcommands are picked up from ``genre_backfill.commands``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

import click

from genre_backfill import __version__
from genre_backfill.config import Config, load_config
from genre_backfill.exceptions import ConfigError
from genre_backfill.utils.output import (
    error,
    set_color,
    set_verbosity,
    setup_logging,
    warning,
)

EXIT_CONFIG_ERROR = 1


class Context:
    """Settings shared by every subcommand."""

    def __init__(self) -> None:
        self.config: Config | None = None
        self.verbose: bool = False
        self.debug: bool = False
        self.quiet: bool = False


pass_context = click.make_pass_decorator(Context, ensure=True)


def color_requested(no_color: bool, env: Mapping[str, str] | None = None) -> bool:
    """False when ``--no-color`` is given or ``NO_COLOR`` is set (any value)."""
    env = os.environ if env is None else env
    return not no_color and "NO_COLOR" not in env


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: ~/.config/genre-backfill/config.toml)",
)
@click.option("--no-color", is_flag=True, help="Plain output, no colours")
@click.option("--verbose", "-v", is_flag=True, help="Print every updated or failed album")
@click.option("--debug", is_flag=True, help="Log provider requests (implies --verbose)")
@click.option("--quiet", "-q", is_flag=True, help="Only print errors")
@click.version_option(version=__version__, prog_name="genre-backfill")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path | None,
    no_color: bool,
    verbose: bool,
    debug: bool,
    quiet: bool,
) -> None:
    """Fill in missing album genres from Spotify, Last.fm and MusicBrainz.

    Albums with an empty genre are looked up in a fixed order of sources
    and updated with a normalized, comma-separated tag list. Credentials
    come from the config file or from SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET and LASTFM_API_KEY.

    Examples:

    \b
      # Write a starter config, then preview the first 50 albums
      genre-backfill init-config
      genre-backfill backfill --dry-run --limit 50
    """
    app = ctx.ensure_object(Context)
    app.verbose = verbose or debug
    app.debug = debug
    app.quiet = quiet

    set_verbosity(verbose=verbose, debug=debug)
    setup_logging(verbose=verbose, debug=debug, quiet=quiet)

    use_color = color_requested(no_color)
    if not use_color:
        set_color(False)

    try:
        app.config, warnings = load_config(config_path)
    except ConfigError as e:
        error(str(e), hint="Fix the file or run 'genre-backfill init-config --force'")
        ctx.exit(EXIT_CONFIG_ERROR)

    # [display] colored_output only narrows what the flags allow.
    if use_color and not app.config.colored_output:
        set_color(False)

    if not quiet:
        for message in warnings:
            warning(message)


@cli.command("help")
@click.argument("names", nargs=-1)
@click.pass_context
def help_cmd(ctx: click.Context, names: tuple[str, ...]) -> None:
    """Show help for the tool or one of its commands."""
    target: click.Command = cli
    for name in names:
        sub = target.get_command(ctx, name) if isinstance(target, click.Group) else None
        if sub is None:
            error(f"Unknown command: {' '.join(names)}", hint="Run 'genre-backfill help'")
            ctx.exit(1)
        target = sub
    click.echo(target.get_help(ctx))


def register_commands() -> None:
    from genre_backfill.commands import discover_commands

    for command in discover_commands():
        cli.add_command(command)


register_commands()
