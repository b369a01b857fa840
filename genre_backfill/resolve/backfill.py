"""Batch runner: resolve genres for every album that has none.

Albums are processed sequentially. The runner only counts outcomes and
collects unresolved rows; all per-album decisions live in
``GenreResolver.process``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from genre_backfill.db.queries import AlbumRecord, RecordStore
from genre_backfill.resolve.pipeline import (
    AlbumOutcome,
    AlbumStatus,
    GenreResolver,
    ResolutionSource,
    UnresolvedReason,
)
from genre_backfill.utils.fileops import atomic_write
from genre_backfill.utils.genres import GenreTagSet, normalize_genres
from genre_backfill.utils.text import normalize_for_comparison

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000
DEFAULT_PROGRESS_EVERY = 25
DEFAULT_REPORT_NAME = "unresolved_album_genres.json"

ResolverFactory = Callable[[dict[str, GenreTagSet]], GenreResolver]
ProgressCallback = Callable[[int, int, AlbumOutcome], None]


@dataclass
class BackfillOptions:
    limit: int = 0  # 0 = no limit
    dry_run: bool = False
    target_artist: str = ""
    target_album: str = ""
    page_size: int = DEFAULT_PAGE_SIZE
    progress_every: int = DEFAULT_PROGRESS_EVERY


@dataclass
class BackfillSummary:
    """Counters for one run."""

    total_targets: int = 0
    updated: int = 0
    updated_from_artist_db: int = 0
    updated_from_spotify: int = 0
    updated_from_lastfm: int = 0
    updated_from_musicbrainz: int = 0
    resolved_spotify_id: int = 0
    no_genres: int = 0
    skipped: int = 0
    failed: int = 0
    dry_run: bool = False

    def record(self, outcome: AlbumOutcome) -> None:
        """Fold one album outcome into the counters."""
        if outcome.resolved_new_id:
            self.resolved_spotify_id += 1
        if outcome.status is AlbumStatus.UPDATED:
            self.updated += 1
            source = outcome.result.source
            if source is ResolutionSource.ARTIST_CACHE:
                self.updated_from_artist_db += 1
            elif source in (ResolutionSource.LASTFM_ALBUM, ResolutionSource.LASTFM_ARTIST):
                self.updated_from_lastfm += 1
            elif source is ResolutionSource.MUSICBRAINZ_ARTIST:
                self.updated_from_musicbrainz += 1
            else:
                self.updated_from_spotify += 1
        elif outcome.status is AlbumStatus.NO_GENRES:
            self.no_genres += 1
        elif outcome.status is AlbumStatus.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_targets": self.total_targets,
            "updated": self.updated,
            "updated_from_artist_db": self.updated_from_artist_db,
            "updated_from_spotify": self.updated_from_spotify,
            "updated_from_lastfm": self.updated_from_lastfm,
            "updated_from_musicbrainz": self.updated_from_musicbrainz,
            "resolved_spotify_id": self.resolved_spotify_id,
            "no_genres": self.no_genres,
            "skipped": self.skipped,
            "failed": self.failed,
            "dry_run": self.dry_run,
        }


@dataclass
class UnresolvedEntry:
    """One row of the unresolved report."""

    reason: UnresolvedReason
    album_id: str
    title: str | None = None
    artist_name: str | None = None
    spotify_id: str | None = None
    error: str | None = None

    @classmethod
    def from_outcome(cls, outcome: AlbumOutcome) -> UnresolvedEntry:
        assert outcome.reason is not None
        return cls(
            reason=outcome.reason,
            album_id=outcome.album.id,
            title=outcome.album.title or None,
            artist_name=outcome.artist_name or None,
            spotify_id=outcome.spotify_id or None,
            error=outcome.error,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "reason": self.reason.value,
            "album_id": self.album_id,
            "title": self.title,
            "artist_name": self.artist_name,
            "spotify_id": self.spotify_id,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class BackfillResult:
    summary: BackfillSummary
    unresolved: list[UnresolvedEntry] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_artist_genres(
    store: RecordStore, page_size: int = DEFAULT_PAGE_SIZE
) -> dict[str, GenreTagSet]:
    """Page through the artists table and keep artists that have genres."""
    genres_by_artist: dict[str, GenreTagSet] = {}
    offset = 0
    scanned = 0
    while True:
        rows = store.list_artist_genres(offset, page_size)
        for row in rows:
            genres = normalize_genres(row.genres)
            if genres:
                genres_by_artist[str(row.id)] = genres
        scanned += len(rows)
        if len(rows) < page_size:
            break
        offset += page_size
    logger.info(
        "Loaded artist genres map for %d artists (rows scanned: %d)",
        len(genres_by_artist),
        scanned,
    )
    return genres_by_artist


def load_targets(
    store: RecordStore, limit: int = 0, page_size: int = DEFAULT_PAGE_SIZE
) -> list[AlbumRecord]:
    """Albums with an empty genre, oldest first, at most ``limit`` (0 = all)."""
    targets: list[AlbumRecord] = []
    offset = 0
    while True:
        rows = store.list_empty_genre_albums(offset, page_size)
        for row in rows:
            targets.append(row)
            if limit > 0 and len(targets) >= limit:
                return targets
        if len(rows) < page_size:
            break
        offset += page_size
    return targets


def filter_targets(
    targets: Iterable[AlbumRecord], artist: str = "", album: str = ""
) -> list[AlbumRecord]:
    """Keep albums whose artist and title contain the given filters.

    Matching is done on comparison keys, so case, accents and punctuation
    are ignored. An empty filter matches everything.
    """
    wanted_artist = normalize_for_comparison(artist)
    wanted_album = normalize_for_comparison(album)
    return [
        row
        for row in targets
        if wanted_artist in normalize_for_comparison(row.artist_name)
        and wanted_album in normalize_for_comparison(row.title)
    ]


# ---------------------------------------------------------------------------
# Running
# ---------------------------------------------------------------------------


def format_progress(summary: BackfillSummary, processed: int, total: int) -> str:
    return (
        f"Progress {processed}/{total} | updated={summary.updated} "
        f"(artist_db={summary.updated_from_artist_db}, spotify={summary.updated_from_spotify}, "
        f"lastfm={summary.updated_from_lastfm}, musicbrainz={summary.updated_from_musicbrainz}) "
        f"resolvedSpotifyId={summary.resolved_spotify_id} noGenres={summary.no_genres} "
        f"skipped={summary.skipped} failed={summary.failed}"
    )


def run_backfill(
    store: RecordStore,
    resolver_factory: ResolverFactory,
    options: BackfillOptions | None = None,
    on_progress: ProgressCallback | None = None,
    result: BackfillResult | None = None,
) -> BackfillResult:
    """Resolve genres for all empty-genre albums.

    Args:
        store: Record store to read targets from.
        resolver_factory: Builds the resolver from the pre-loaded
            ``artist_id -> genres`` map.
        options: Limit, filters, dry run and paging.
        on_progress: Called after each album with (processed, total, outcome).
        result: Collects counters and unresolved entries as the run goes.
            A caller that passes its own keeps whatever was collected
            when a fatal error cuts the run short.

    Returns:
        Counters and the unresolved entries, in processing order.

    Raises:
        FatalError: Store or provider setup failures abort the run.
    """
    options = options or BackfillOptions()
    if result is None:
        result = BackfillResult(summary=BackfillSummary())
    summary = result.summary
    summary.dry_run = options.dry_run

    artist_genres = load_artist_genres(store, options.page_size)
    targets = load_targets(store, options.limit, options.page_size)
    if options.target_artist or options.target_album:
        targets = filter_targets(targets, options.target_artist, options.target_album)
        logger.info(
            'Filtered targets | artist="%s" album="%s" => %d',
            options.target_artist or "-",
            options.target_album or "-",
            len(targets),
        )
    summary.total_targets = len(targets)
    logger.info("Albums with empty genre: %d", len(targets))

    resolver = resolver_factory(artist_genres)
    total = len(targets)
    for index, album in enumerate(targets, start=1):
        logger.debug("Processing %d/%d | album_id=%s", index, total, album.id)
        outcome = resolver.process(album)
        summary.record(outcome)
        if outcome.reason is not None:
            result.unresolved.append(UnresolvedEntry.from_outcome(outcome))

        if on_progress is not None:
            on_progress(index, total, outcome)
        every = options.progress_every
        if (every > 0 and index % every == 0) or index == total:
            logger.info(format_progress(summary, index, total))

    return result


def write_unresolved_report(path: Path, entries: Iterable[UnresolvedEntry]) -> int:
    """Write the unresolved entries as a JSON array; returns the row count."""
    rows = [entry.to_dict() for entry in entries]
    atomic_write(path, json.dumps(rows, indent=2, ensure_ascii=False) + "\n")
    logger.info("Saved unresolved report: %s (%d rows)", path, len(rows))
    return len(rows)
