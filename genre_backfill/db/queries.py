"""Record store access: the queries the backfill job runs against the catalogue."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from genre_backfill.db.models import Album, Artist
from genre_backfill.exceptions import DatabaseError, StoreWriteError

logger = logging.getLogger(__name__)


@dataclass
class AlbumRecord:
    """An album row as the resolver sees it."""

    id: str
    title: str = ""
    artist_name: str = ""
    artist_id: str | None = None
    spotify_id: str | None = None
    genre: str = ""


@dataclass
class ArtistRecord:
    """An artist row with its stored genre list (raw, not yet normalized)."""

    id: str
    name: str = ""
    genres: list = field(default_factory=list)


class RecordStore(Protocol):
    """The narrow store interface the backfill job depends on."""

    def list_empty_genre_albums(self, offset: int, limit: int) -> list[AlbumRecord]: ...

    def update_album_genre(self, album_id: str, genre: str) -> None: ...

    def update_album_spotify_id(self, album_id: str, spotify_id: str) -> None: ...

    def list_artist_genres(self, offset: int, limit: int) -> list[ArtistRecord]: ...

    def get_artist_name_by_id(self, artist_id: str) -> str | None: ...


def _album_record(album: Album) -> AlbumRecord:
    return AlbumRecord(
        id=album.id,
        title=album.title or "",
        artist_name=(album.artist_name or "").strip(),
        artist_id=album.artist_id or None,
        spotify_id=(album.spotify_id or "").strip() or None,
        genre=(album.genre or "").strip(),
    )


class SqlRecordStore:
    """``RecordStore`` over an SQLAlchemy session.

    Reads page in ``created_at`` order (ties broken by id). Every write
    commits on its own so a later failure never loses earlier updates.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_empty_genre_albums(self, offset: int, limit: int) -> list[AlbumRecord]:
        stmt = (
            select(Album)
            .where(or_(Album.genre.is_(None), func.trim(Album.genre) == ""))
            .order_by(Album.created_at, Album.id)
            .offset(offset)
            .limit(limit)
        )
        try:
            rows = self.session.scalars(stmt).all()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to list albums: {e}") from e
        return [_album_record(row) for row in rows]

    def list_artist_genres(self, offset: int, limit: int) -> list[ArtistRecord]:
        stmt = select(Artist).order_by(Artist.created_at, Artist.id).offset(offset).limit(limit)
        try:
            rows = self.session.scalars(stmt).all()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to list artists: {e}") from e
        return [
            ArtistRecord(
                id=row.id,
                name=row.name or "",
                genres=row.genres if isinstance(row.genres, list) else [],
            )
            for row in rows
        ]

    def get_artist_name_by_id(self, artist_id: str) -> str | None:
        try:
            name = self.session.scalar(select(Artist.name).where(Artist.id == artist_id))
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to look up artist {artist_id}: {e}") from e
        return str(name) if name else None

    def _update_album(self, album_id: str, **values: str) -> None:
        try:
            result = self.session.execute(
                update(Album).where(Album.id == album_id).values(**values)
            )
            if result.rowcount == 0:
                self.session.rollback()
                raise StoreWriteError(album_id, "no such album")
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreWriteError(album_id, str(e)) from e
        logger.debug("Updated album %s: %s", album_id, values)

    def update_album_genre(self, album_id: str, genre: str) -> None:
        self._update_album(album_id, genre=genre)

    def update_album_spotify_id(self, album_id: str, spotify_id: str) -> None:
        self._update_album(album_id, spotify_id=spotify_id)
