"""SQLAlchemy ORM models for the album catalogue."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class Base(DeclarativeBase):
    """Base class for catalogue ORM models."""

    pass


class Album(Base):
    """An album row; ``genre`` is a comma-joined tag list, empty when unresolved."""

    __tablename__ = "albums"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    artist_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    artist_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    spotify_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    genre: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(String(64), nullable=False, default=_utcnow)

    __table_args__ = (
        Index("ix_albums_created_at", "created_at"),
        Index("ix_albums_artist_id", "artist_id"),
    )

    def __repr__(self) -> str:
        return f"<Album(id='{self.id}', title='{self.title}', artist='{self.artist_name}')>"


class Artist(Base):
    """An artist row with genres resolved by earlier imports."""

    __tablename__ = "artists"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    genres: Mapped[list | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[str] = mapped_column(String(64), nullable=False, default=_utcnow)

    __table_args__ = (Index("ix_artists_created_at", "created_at"),)

    def __repr__(self) -> str:
        return f"<Artist(id='{self.id}', name='{self.name}')>"
