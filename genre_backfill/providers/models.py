"""Typed views of provider JSON responses.

Each ``from_json`` accepts whatever the provider returned and falls back
to empty defaults for missing or mistyped fields, so nothing downstream
has to touch raw dictionaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def _str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    # Last.fm collapses single-element arrays into a bare object.
    if isinstance(value, dict):
        return [value]
    return []


def _names(value: Any) -> list[str]:
    """Extract ``name`` fields (or bare strings) from a list of tag objects."""
    names = []
    for item in _list(value):
        name = _str(item) if isinstance(item, str) else _str(_dict(item).get("name"))
        if name:
            names.append(name)
    return names


# ---------------------------------------------------------------------------
# Spotify
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AlbumCandidate:
    """An album returned by a Spotify album search."""

    id: str
    title: str
    artist: str = ""
    artist_id: str = ""
    popularity: float = 0.0

    @classmethod
    def from_json(cls, data: Any) -> AlbumCandidate:
        item = _dict(data)
        artists = _list(item.get("artists"))
        first = _dict(artists[0]) if artists else {}
        return cls(
            id=_str(item.get("id")),
            title=_str(item.get("name")),
            artist=_str(first.get("name")),
            artist_id=_str(first.get("id")),
            popularity=_float(item.get("popularity")),
        )


@dataclass(frozen=True)
class SpotifyAlbum:
    """Album detail: its own genres and the contributing artist ids in order."""

    id: str
    genres: list[str] = field(default_factory=list)
    artist_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> SpotifyAlbum:
        item = _dict(data)
        return cls(
            id=_str(item.get("id")),
            genres=_names(item.get("genres")),
            artist_ids=[
                _str(_dict(a).get("id")) for a in _list(item.get("artists")) if _dict(a).get("id")
            ],
        )

    @property
    def primary_artist_id(self) -> str | None:
        return self.artist_ids[0] if self.artist_ids else None


@dataclass(frozen=True)
class SpotifyArtist:
    """Artist from a search result or detail lookup."""

    id: str
    name: str
    genres: list[str] = field(default_factory=list)
    popularity: float = 0.0

    @classmethod
    def from_json(cls, data: Any) -> SpotifyArtist:
        item = _dict(data)
        return cls(
            id=_str(item.get("id")),
            name=_str(item.get("name")),
            genres=_names(item.get("genres")),
            popularity=_float(item.get("popularity")),
        )


# ---------------------------------------------------------------------------
# MusicBrainz
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MusicBrainzArtistCandidate:
    """Artist search hit with MusicBrainz's own 0-100 relevance score."""

    id: str
    name: str
    score: float = 0.0

    @classmethod
    def from_json(cls, data: Any) -> MusicBrainzArtistCandidate:
        item = _dict(data)
        return cls(
            id=_str(item.get("id")),
            name=_str(item.get("name")),
            score=_float(item.get("score")),
        )


@dataclass(frozen=True)
class MusicBrainzArtist:
    """Artist detail with curated genres and free-form user tags."""

    id: str
    name: str = ""
    genres: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> MusicBrainzArtist:
        item = _dict(data)
        return cls(
            id=_str(item.get("id")),
            name=_str(item.get("name")),
            genres=_names(item.get("genres")),
            tags=_names(item.get("tags")),
        )


# ---------------------------------------------------------------------------
# Last.fm
# ---------------------------------------------------------------------------


def lastfm_tag_names(data: Any, *path: str) -> list[str]:
    """Walk ``path`` into a Last.fm payload and return the tag names found there.

    ``lastfm_tag_names(data, "album", "tags", "tag")`` handles the
    album.getinfo shape; ``("toptags", "tag")`` handles artist.gettoptags.
    """
    node: Any = _dict(data)
    if "error" in node:
        return []
    for key in path[:-1]:
        node = _dict(_dict(node).get(key))
    return _names(_dict(node).get(path[-1])) if path else []
