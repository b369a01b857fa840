"""Multi-source genre resolution for a single album.

Sources are tried in a fixed order and the first one that yields a
non-empty tag set wins:

1. genres already stored on the album's artist (no network)
2. the Spotify album, falling back to its primary artist
3. a Spotify artist-name search (only when no Spotify album id is known)
4. Last.fm album tags
5. Last.fm artist top tags
6. MusicBrainz artist genres and tags

Every remote lookup is memoized on the resolver, so a batch touching the
same artist many times only pays for it once.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field

from genre_backfill.db.queries import AlbumRecord, RecordStore
from genre_backfill.exceptions import DatabaseError, FatalError
from genre_backfill.providers.lastfm import LastfmClient
from genre_backfill.providers.models import AlbumCandidate, SpotifyArtist
from genre_backfill.providers.musicbrainz import MusicBrainzClient
from genre_backfill.providers.spotify import SpotifyClient
from genre_backfill.resolve.queries import (
    build_album_search_queries,
    build_artist_search_queries,
    build_musicbrainz_artist_queries,
)
from genre_backfill.utils.genres import GenreTagSet, format_genre_value, normalize_genres
from genre_backfill.utils.matching import (
    DEFAULT_WEIGHTS,
    ScoringWeights,
    pick_best_artist,
    pick_best_match,
    score_name_similarity,
)
from genre_backfill.utils.text import normalize_for_comparison, repair_mojibake

logger = logging.getLogger(__name__)

MUSICBRAINZ_MAX_GENRES = 10


class ResolutionSource(enum.Enum):
    """Where a resolved tag set came from."""

    ARTIST_CACHE = "artist_cache"
    SPOTIFY = "spotify"
    SPOTIFY_NAME_SEARCH = "spotify_name_search"
    LASTFM_ALBUM = "lastfm_album"
    LASTFM_ARTIST = "lastfm_artist"
    MUSICBRAINZ_ARTIST = "musicbrainz_artist"
    NONE = "none"


class AlbumStatus(enum.Enum):
    UPDATED = "updated"
    NO_GENRES = "no_genres"
    SKIPPED = "skipped"
    FAILED = "failed"


class UnresolvedReason(enum.Enum):
    """Why an album ended up in the unresolved report."""

    ARTIST_DB_GENRES_UPDATE_FAILED = "artist_db_genres_update_failed"
    SPOTIFY_ID_LOOKUP_FAILED = "spotify_id_lookup_failed"
    SPOTIFY_ID_UPDATE_FAILED = "spotify_id_update_failed"
    EXTERNAL_GENRE_LOOKUP_FAILED = "external_genre_lookup_failed"
    GENRE_FETCH_OR_UPDATE_FAILED = "genre_fetch_or_update_failed"
    NO_GENRES_FROM_ALL_SOURCES = "no_genres_from_all_sources"
    NO_SPOTIFY_ID_AND_NO_EXTERNAL_GENRES = "no_spotify_id_and_no_external_genres"


@dataclass(frozen=True)
class ResolutionResult:
    genres: GenreTagSet = ()
    source: ResolutionSource = ResolutionSource.NONE

    @property
    def found(self) -> bool:
        return bool(self.genres)


NO_RESULT = ResolutionResult()


@dataclass
class LookupCaches:
    """Per-run memoization of remote lookups, keyed as noted per field."""

    spotify_artist_by_id: dict[str, GenreTagSet] = field(default_factory=dict)
    # normalized artist name
    spotify_artist_by_name: dict[str, GenreTagSet] = field(default_factory=dict)
    # "artist::title", both normalized
    lastfm_album: dict[str, GenreTagSet] = field(default_factory=dict)
    lastfm_artist: dict[str, GenreTagSet] = field(default_factory=dict)
    musicbrainz_artist: dict[str, GenreTagSet] = field(default_factory=dict)
    artist_names: dict[str, str | None] = field(default_factory=dict)


@dataclass
class AlbumOutcome:
    """What ``GenreResolver.process`` did with one album."""

    album: AlbumRecord
    status: AlbumStatus
    result: ResolutionResult = NO_RESULT
    artist_name: str = ""
    spotify_id: str | None = None
    resolved_new_id: bool = False
    reason: UnresolvedReason | None = None
    error: str | None = None


class GenreResolver:
    """Resolves and stores genres for albums, one at a time.

    Args:
        store: Record store used for writes and artist-name lookups.
        spotify: Spotify client (primary source).
        lastfm: Last.fm client; a client without an API key returns no tags.
        musicbrainz: MusicBrainz client.
        artist_genres: Pre-loaded ``artist_id -> tags`` map from the store.
        dry_run: Resolve everything but skip all store writes.
        weights: Candidate scoring constants.
    """

    def __init__(
        self,
        store: RecordStore,
        spotify: SpotifyClient,
        lastfm: LastfmClient,
        musicbrainz: MusicBrainzClient,
        *,
        artist_genres: dict[str, GenreTagSet] | None = None,
        dry_run: bool = False,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
    ) -> None:
        self.store = store
        self.spotify = spotify
        self.lastfm = lastfm
        self.musicbrainz = musicbrainz
        self.artist_genres = artist_genres or {}
        self.dry_run = dry_run
        self.weights = weights
        self.caches = LookupCaches()

    # -- store-backed helpers -------------------------------------------------

    def artist_name_for(self, album: AlbumRecord) -> str:
        """The album's artist name, falling back to the artists table by id."""
        name = (album.artist_name or "").strip()
        if name or not album.artist_id:
            return name
        artist_id = album.artist_id
        if artist_id not in self.caches.artist_names:
            try:
                self.caches.artist_names[artist_id] = self.store.get_artist_name_by_id(artist_id)
            except DatabaseError as e:
                logger.warning("Artist name lookup failed for %s: %s", artist_id, e)
                self.caches.artist_names[artist_id] = None
        return (self.caches.artist_names[artist_id] or "").strip()

    def cached_artist_genres(self, album: AlbumRecord) -> GenreTagSet:
        if not album.artist_id:
            return ()
        return self.artist_genres.get(str(album.artist_id), ())

    def _write_genres(self, album: AlbumRecord, genres: GenreTagSet) -> None:
        if self.dry_run:
            logger.info("[dry run] %s -> %s", album.id, format_genre_value(genres))
            return
        self.store.update_album_genre(album.id, format_genre_value(genres))

    # -- Spotify --------------------------------------------------------------

    def find_spotify_album_id(self, title: str, artist_name: str) -> str | None:
        """Search Spotify with every query variant and pick the best album."""
        candidates: dict[str, AlbumCandidate] = {}
        for query in build_album_search_queries(title, artist_name):
            for candidate in self.spotify.search_albums(query):
                candidates.setdefault(candidate.id, candidate)
        if not candidates:
            return None
        best = pick_best_match(
            list(candidates.values()),
            repair_mojibake(title),
            repair_mojibake(artist_name),
            self.weights,
        )
        return best.id if best else None

    def spotify_artist_genres(self, artist_id: str) -> GenreTagSet:
        if artist_id not in self.caches.spotify_artist_by_id:
            artist = self.spotify.get_artist(artist_id)
            self.caches.spotify_artist_by_id[artist_id] = normalize_genres(
                artist.genres if artist else []
            )
        return self.caches.spotify_artist_by_id[artist_id]

    def spotify_album_genres(self, spotify_id: str) -> GenreTagSet:
        """Album genres, or its primary artist's genres when the album has none."""
        album = self.spotify.get_album(spotify_id)
        if album is None:
            return ()
        genres = normalize_genres(album.genres)
        if not genres and album.primary_artist_id:
            genres = self.spotify_artist_genres(album.primary_artist_id)
        return genres

    def spotify_genres_by_artist_name(self, artist_name: str) -> GenreTagSet:
        key = normalize_for_comparison(artist_name)
        if not key:
            return ()
        if key not in self.caches.spotify_artist_by_name:
            candidates: list[SpotifyArtist] = []
            for query in build_artist_search_queries(artist_name):
                candidates.extend(self.spotify.search_artists(query))
            best = pick_best_artist(candidates, repair_mojibake(artist_name), self.weights)
            self.caches.spotify_artist_by_name[key] = normalize_genres(
                best.genres if best else []
            )
        return self.caches.spotify_artist_by_name[key]

    # -- Last.fm / MusicBrainz ------------------------------------------------

    def lastfm_album_genres(self, title: str, artist_name: str) -> GenreTagSet:
        if not self.lastfm.enabled:
            return ()
        title = repair_mojibake(title).strip()
        artist_name = repair_mojibake(artist_name).strip()
        key = f"{normalize_for_comparison(artist_name)}::{normalize_for_comparison(title)}"
        if key not in self.caches.lastfm_album:
            self.caches.lastfm_album[key] = normalize_genres(
                self.lastfm.get_album_tags(artist_name, title)
            )
        return self.caches.lastfm_album[key]

    def lastfm_artist_genres(self, artist_name: str) -> GenreTagSet:
        artist_name = repair_mojibake(artist_name).strip()
        if not self.lastfm.enabled or not artist_name:
            return ()
        key = normalize_for_comparison(artist_name)
        if key not in self.caches.lastfm_artist:
            self.caches.lastfm_artist[key] = normalize_genres(
                self.lastfm.get_artist_top_tags(artist_name)
            )
        return self.caches.lastfm_artist[key]

    def musicbrainz_artist_genres(self, artist_name: str) -> GenreTagSet:
        """Genres and tags of the best MusicBrainz artist match, at most 10."""
        artist_name = repair_mojibake(artist_name).strip()
        key = normalize_for_comparison(artist_name)
        if not key:
            return ()
        if key in self.caches.musicbrainz_artist:
            return self.caches.musicbrainz_artist[key]

        best_id = None
        best_score = float("-inf")
        for query in build_musicbrainz_artist_queries(artist_name):
            for candidate in self.musicbrainz.search_artists(query):
                score = candidate.score / self.weights.relevance_divisor + score_name_similarity(
                    candidate.name, artist_name, self.weights
                )
                if score > best_score:
                    best_id = candidate.id
                    best_score = score

        genres: GenreTagSet = ()
        if best_id:
            detail = self.musicbrainz.get_artist(best_id)
            if detail is not None:
                genres = normalize_genres(detail.genres + detail.tags)[:MUSICBRAINZ_MAX_GENRES]
        self.caches.musicbrainz_artist[key] = genres
        return genres

    def external_genres(self, title: str, artist_name: str) -> ResolutionResult:
        """Non-Spotify fallbacks: Last.fm album, Last.fm artist, MusicBrainz."""
        title = (title or "").strip()
        artist_name = (artist_name or "").strip()
        if not artist_name:
            return NO_RESULT

        if title:
            genres = self.lastfm_album_genres(title, artist_name)
            if genres:
                return ResolutionResult(genres, ResolutionSource.LASTFM_ALBUM)

        genres = self.lastfm_artist_genres(artist_name)
        if genres:
            return ResolutionResult(genres, ResolutionSource.LASTFM_ARTIST)

        genres = self.musicbrainz_artist_genres(artist_name)
        if genres:
            return ResolutionResult(genres, ResolutionSource.MUSICBRAINZ_ARTIST)
        return NO_RESULT

    def lookup_genres(
        self, title: str, artist_name: str, spotify_id: str | None
    ) -> ResolutionResult:
        """Remote lookups (everything after the artist cache) in source order."""
        if spotify_id:
            genres = self.spotify_album_genres(spotify_id)
            if genres:
                return ResolutionResult(genres, ResolutionSource.SPOTIFY)
        elif artist_name:
            genres = self.spotify_genres_by_artist_name(artist_name)
            if genres:
                return ResolutionResult(genres, ResolutionSource.SPOTIFY_NAME_SEARCH)
        return self.external_genres(title, artist_name)

    # -- entry points ---------------------------------------------------------

    def process(self, album: AlbumRecord) -> AlbumOutcome:
        """Resolve genres for one album and persist them.

        Provider and store failures are reported on the outcome; only
        ``FatalError`` escapes.
        """
        artist_name = self.artist_name_for(album)
        outcome = AlbumOutcome(
            album=album,
            status=AlbumStatus.FAILED,
            artist_name=artist_name,
            spotify_id=album.spotify_id,
        )

        cached = self.cached_artist_genres(album)
        if cached:
            try:
                self._write_genres(album, cached)
            except FatalError:
                raise
            except Exception as e:
                return self._failed(outcome, UnresolvedReason.ARTIST_DB_GENRES_UPDATE_FAILED, e)
            outcome.status = AlbumStatus.UPDATED
            outcome.result = ResolutionResult(cached, ResolutionSource.ARTIST_CACHE)
            return outcome

        if not outcome.spotify_id:
            try:
                outcome.spotify_id = self.find_spotify_album_id(album.title, artist_name)
            except FatalError:
                raise
            except Exception as e:
                return self._failed(outcome, UnresolvedReason.SPOTIFY_ID_LOOKUP_FAILED, e)
            if outcome.spotify_id:
                outcome.resolved_new_id = True
                logger.debug("Resolved Spotify id %s for album %s", outcome.spotify_id, album.id)
                if not self.dry_run:
                    try:
                        self.store.update_album_spotify_id(album.id, outcome.spotify_id)
                    except FatalError:
                        raise
                    except Exception as e:
                        return self._failed(outcome, UnresolvedReason.SPOTIFY_ID_UPDATE_FAILED, e)

        try:
            result = self.lookup_genres(album.title, artist_name, outcome.spotify_id)
            if result.found:
                self._write_genres(album, result.genres)
        except FatalError:
            raise
        except Exception as e:
            reason = (
                UnresolvedReason.GENRE_FETCH_OR_UPDATE_FAILED
                if outcome.spotify_id
                else UnresolvedReason.EXTERNAL_GENRE_LOOKUP_FAILED
            )
            return self._failed(outcome, reason, e)

        outcome.result = result
        if result.found:
            outcome.status = AlbumStatus.UPDATED
        elif outcome.spotify_id:
            outcome.status = AlbumStatus.NO_GENRES
            outcome.reason = UnresolvedReason.NO_GENRES_FROM_ALL_SOURCES
        else:
            outcome.status = AlbumStatus.SKIPPED
            outcome.reason = UnresolvedReason.NO_SPOTIFY_ID_AND_NO_EXTERNAL_GENRES
        return outcome

    def _failed(
        self, outcome: AlbumOutcome, reason: UnresolvedReason, exc: Exception
    ) -> AlbumOutcome:
        logger.warning("Failed album %s (%s): %s", outcome.album.id, reason.value, exc)
        outcome.status = AlbumStatus.FAILED
        outcome.reason = reason
        outcome.error = str(exc)
        return outcome
