"""Database layer for the album catalogue."""

from genre_backfill.db.models import Album, Artist, Base
from genre_backfill.db.queries import AlbumRecord, ArtistRecord, RecordStore, SqlRecordStore
from genre_backfill.db.session import get_session

__all__ = [
    # Models
    "Album",
    "Artist",
    "Base",
    # Session
    "get_session",
    # Store
    "AlbumRecord",
    "ArtistRecord",
    "RecordStore",
    "SqlRecordStore",
]
