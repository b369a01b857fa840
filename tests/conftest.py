"""Shared pytest fixtures."""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from genre_backfill.db.queries import AlbumRecord, ArtistRecord
from genre_backfill.exceptions import StoreWriteError

if TYPE_CHECKING:
    from collections.abc import Generator


ENV_VARS = (
    "SPOTIFY_CLIENT_ID",
    "SPOTIFY_CLIENT_SECRET",
    "LASTFM_API_KEY",
    "MUSICBRAINZ_USER_AGENT",
    "GENRE_BACKFILL_DB",
    "GENRE_BACKFILL_LIMIT",
    "DRY_RUN",
    "GENRE_TARGET_ARTIST",
    "GENRE_TARGET_ALBUM",
    "GENRE_FETCH_TIMEOUT_MS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's credentials out of config-loading tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    path = Path(tempfile.mkdtemp())
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def sample_config(temp_dir: Path) -> Path:
    """Create a sample config file."""
    config_path = temp_dir / "config.toml"
    config_path.write_text(f"""[database]
path = "{temp_dir / "albums.sqlite"}"

[spotify]
client_id = "file-client-id"
client_secret = "file-client-secret"

[lastfm]
api_key = "file-lastfm-key"

[backfill]
limit = 10
report_path = "report.json"

[display]
colored_output = false
""")
    return config_path


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instead of blocking."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


class FakeStore:
    """In-memory ``RecordStore`` that records every write."""

    def __init__(
        self,
        albums: list[AlbumRecord] | None = None,
        artists: list[ArtistRecord] | None = None,
    ) -> None:
        self.albums = {a.id: a for a in albums or []}
        self.artists = {a.id: a for a in artists or []}
        self.genre_writes: list[tuple[str, str]] = []
        self.spotify_id_writes: list[tuple[str, str]] = []
        self.fail_genre_writes = False
        self.fail_spotify_id_writes = False
        self.name_lookups = 0

    def list_empty_genre_albums(self, offset: int, limit: int) -> list[AlbumRecord]:
        empty = [a for a in self.albums.values() if not a.genre.strip()]
        return empty[offset : offset + limit]

    def list_artist_genres(self, offset: int, limit: int) -> list[ArtistRecord]:
        return list(self.artists.values())[offset : offset + limit]

    def get_artist_name_by_id(self, artist_id: str) -> str | None:
        self.name_lookups += 1
        artist = self.artists.get(artist_id)
        return artist.name if artist else None

    def update_album_genre(self, album_id: str, genre: str) -> None:
        if self.fail_genre_writes:
            raise StoreWriteError(album_id, "disk full")
        self.genre_writes.append((album_id, genre))
        self.albums[album_id].genre = genre

    def update_album_spotify_id(self, album_id: str, spotify_id: str) -> None:
        if self.fail_spotify_id_writes:
            raise StoreWriteError(album_id, "disk full")
        self.spotify_id_writes.append((album_id, spotify_id))
        self.albums[album_id].spotify_id = spotify_id


@pytest.fixture
def make_store() -> type[FakeStore]:
    """The ``FakeStore`` class, for tests that seed their own rows."""
    return FakeStore
