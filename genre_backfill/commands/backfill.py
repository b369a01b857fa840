"""Backfill missing album genres."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from genre_backfill.cli import Context, pass_context
from genre_backfill.config import Config
from genre_backfill.db.queries import SqlRecordStore
from genre_backfill.db.session import get_session
from genre_backfill.exceptions import (
    ConfigError,
    DatabaseError,
    DatabaseNotFoundError,
    FatalError,
    ProviderSetupError,
)
from genre_backfill.providers import LastfmClient, MusicBrainzClient, SpotifyClient
from genre_backfill.resolve.backfill import (
    BackfillOptions,
    BackfillResult,
    BackfillSummary,
    ProgressCallback,
    run_backfill,
    write_unresolved_report,
)
from genre_backfill.resolve.pipeline import AlbumOutcome, AlbumStatus, GenreResolver
from genre_backfill.utils.genres import format_genre_value
from genre_backfill.utils.output import (
    console,
    create_table,
    error,
    info,
    is_verbose,
    print_album,
    success,
    warning,
)

EXIT_SUCCESS = 0
EXIT_FATAL = 1


@click.command("backfill")
@click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Album database (overrides config)",
)
@click.option(
    "--limit",
    "-l",
    type=click.IntRange(min=0),
    default=None,
    help="Process at most N albums (0 = all)",
)
@click.option(
    "--dry-run",
    "-n",
    is_flag=True,
    default=False,
    help="Resolve genres without writing to the database",
)
@click.option("--artist", default=None, help="Only albums whose artist contains this text")
@click.option("--album", default=None, help="Only albums whose title contains this text")
@click.option(
    "--report",
    "report_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Unresolved report path (default: unresolved_album_genres.json)",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Per-request HTTP timeout in seconds",
)
@pass_context
def cli(
    ctx: Context,
    db_path: Path | None,
    limit: int | None,
    dry_run: bool,
    artist: str | None,
    album: str | None,
    report_path: Path | None,
    timeout: float | None,
) -> None:
    """Fill in genres for albums that have none.

    Each album is tried against the artist's stored genres, Spotify,
    Last.fm and MusicBrainz, in that order. Albums that stay unresolved
    are listed in a JSON report.

    Examples:

    \b
      # Backfill everything
      genre-backfill backfill

    \b
      # Preview a single artist without touching the database
      genre-backfill backfill --dry-run --artist "Kult"

    \b
      # First 100 albums, report next to the database
      genre-backfill backfill --limit 100 --report ./unresolved.json
    """
    config = ctx.config
    if config is None:
        error("Configuration not loaded")
        raise SystemExit(EXIT_FATAL)

    if db_path is not None:
        config.db_path = db_path.expanduser().resolve()
    if limit is not None:
        config.limit = limit
    if dry_run:
        config.dry_run = True
    if artist is not None:
        config.target_artist = artist.strip()
    if album is not None:
        config.target_album = album.strip()
    if report_path is not None:
        config.report_path = report_path
    if timeout is not None:
        config.request_timeout = timeout

    if not ctx.quiet:
        # Progress lines are logged at INFO by the runner.
        logging.getLogger("genre_backfill.resolve.backfill").setLevel(logging.INFO)
        info(
            f"Starting genre backfill | DRY_RUN={'1' if config.dry_run else '0'} "
            f"| LIMIT={config.limit}"
        )
        info(
            "Fallback sources | LASTFM_API_KEY="
            f"{'present' if config.lastfm_api_key else 'missing'} | MusicBrainz=enabled"
        )

    partial = BackfillResult(summary=BackfillSummary())
    try:
        result = backfill_genres(config, on_progress=_print_outcome, result=partial)
    except FatalError as e:
        _print_fatal(e)
        _save_partial_report(config.report_path, partial)
        raise SystemExit(EXIT_FATAL)

    if not ctx.quiet:
        print_backfill_summary(result.summary)

    try:
        write_unresolved_report(config.report_path, result.unresolved)
    except OSError as e:
        error(f"Failed to write unresolved report: {e}")
        raise SystemExit(EXIT_FATAL)
    raise SystemExit(EXIT_SUCCESS)


def backfill_genres(
    config: Config,
    on_progress: ProgressCallback | None = None,
    result: BackfillResult | None = None,
) -> BackfillResult:
    """Build the provider clients and the store, then run the batch.

    Raises:
        MissingCredentialsError: If Spotify credentials are not configured.
        ProviderSetupError: If the Spotify token cannot be obtained.
        DatabaseError: If the database is missing or unreadable.
    """
    config.require_credentials()
    assert config.spotify_client_id is not None and config.spotify_client_secret is not None

    spotify = SpotifyClient(
        config.spotify_client_id, config.spotify_client_secret, timeout=config.request_timeout
    )
    lastfm = LastfmClient(config.lastfm_api_key, timeout=config.request_timeout)
    musicbrainz = MusicBrainzClient(config.musicbrainz_user_agent, timeout=config.request_timeout)
    try:
        # Fail on bad credentials before reading any records.
        spotify.get_token()

        with get_session(config.db_path) as session:
            store = SqlRecordStore(session)

            def make_resolver(artist_genres):
                return GenreResolver(
                    store,
                    spotify,
                    lastfm,
                    musicbrainz,
                    artist_genres=artist_genres,
                    dry_run=config.dry_run,
                )

            options = BackfillOptions(
                limit=config.limit,
                dry_run=config.dry_run,
                target_artist=config.target_artist,
                target_album=config.target_album,
                page_size=config.page_size,
            )
            return run_backfill(store, make_resolver, options, on_progress, result)
    finally:
        spotify.close()
        lastfm.close()
        musicbrainz.close()


def _print_fatal(e: FatalError) -> None:
    if isinstance(e, DatabaseNotFoundError):
        error(
            f"Database not found: {e.path}",
            hint="Set database.path in the config or pass --db",
        )
    elif isinstance(e, ConfigError):
        error(str(e), hint="Run 'genre-backfill init-config' and fill in the credentials")
    elif isinstance(e, ProviderSetupError):
        error(str(e), hint="Check the Spotify client id and secret")
    elif isinstance(e, DatabaseError):
        error(f"Database error: {e}")
    else:
        error(str(e))


def _save_partial_report(path: Path, partial: BackfillResult) -> None:
    """Keep the unresolved rows gathered before a run was aborted."""
    if not partial.unresolved:
        return
    try:
        write_unresolved_report(path, partial.unresolved)
    except OSError as e:
        error(f"Failed to write unresolved report: {e}")
        return
    warning(f"Run aborted; {len(partial.unresolved)} unresolved albums saved to {path}")


def _print_outcome(processed: int, total: int, outcome: AlbumOutcome) -> None:
    if not is_verbose():
        return
    album = outcome.album
    if outcome.status is AlbumStatus.UPDATED:
        genres = format_genre_value(outcome.result.genres)
        print_album(
            outcome.artist_name,
            album.title,
            f"{genres} ({outcome.result.source.value})",
            prefix=f"[{processed}/{total}]",
        )
    elif outcome.status is AlbumStatus.FAILED:
        warning(f"[{processed}/{total}] {album.id}: {outcome.error}")


def print_backfill_summary(summary: BackfillSummary) -> None:
    """Display the run counters as a table."""
    title = "Backfill Summary (dry run)" if summary.dry_run else "Backfill Summary"
    table = create_table(title=title, show_header=True, header_style="bold")
    table.add_column("Status", style="cyan", no_wrap=True)
    table.add_column("Count", justify="right", style="bold")

    table.add_row("Albums with empty genre", str(summary.total_targets))
    table.add_row("Updated", str(summary.updated))
    table.add_row("  from artist genres", str(summary.updated_from_artist_db))
    table.add_row("  from Spotify", str(summary.updated_from_spotify))
    table.add_row("  from Last.fm", str(summary.updated_from_lastfm))
    table.add_row("  from MusicBrainz", str(summary.updated_from_musicbrainz))
    table.add_row("Spotify ids resolved", str(summary.resolved_spotify_id))
    table.add_row("No genres found", str(summary.no_genres))
    table.add_row("Skipped", str(summary.skipped))
    table.add_row(
        "Failed",
        str(summary.failed),
        style="error" if summary.failed else None,
    )

    console.print(table)

    if summary.failed:
        warning(f"{summary.failed} albums failed; see the unresolved report")
    else:
        success("Done.")
