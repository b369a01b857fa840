"""Genre tag normalization.

A genre tag set is a sorted tuple of unique lowercase strings, each
between ``MIN_GENRE_LENGTH`` and ``MAX_GENRE_LENGTH`` characters and not
in ``GENRE_BLACKLIST``.
"""

from __future__ import annotations

from collections.abc import Iterable

GenreTagSet = tuple[str, ...]

MIN_GENRE_LENGTH = 2
MAX_GENRE_LENGTH = 40
GENRE_SEPARATOR = ", "

# User-library tags that Last.fm and MusicBrainz report next to real genres.
GENRE_BLACKLIST = frozenset(
    {
        "seen live",
        "favorites",
        "favourites",
        "favorite",
        "favourite",
        "my favorites",
        "under 2000 listeners",
        "albums i own",
        "spotify",
        "unknown",
        "misc",
    }
)


def normalize_genres(raw: Iterable[object] | None) -> GenreTagSet:
    """Clean a raw list of genre/tag strings into a ``GenreTagSet``.

    Entries are trimmed and lowercased, empty values dropped, duplicates
    merged, then length bounds and the blacklist applied. The result is
    sorted, so input order and repetition never matter.

    Args:
        raw: Any iterable of tag values. Strings and ``None`` are not
            treated as lists and yield an empty set.

    Returns:
        Sorted tuple of unique genre tags.
    """
    if raw is None or isinstance(raw, (str, bytes)):
        return ()
    cleaned = {str(value if value is not None else "").strip().lower() for value in raw}
    return tuple(
        sorted(
            g
            for g in cleaned
            if g
            and MIN_GENRE_LENGTH <= len(g) <= MAX_GENRE_LENGTH
            and g not in GENRE_BLACKLIST
        )
    )


def format_genre_value(genres: Iterable[str]) -> str:
    """Join a tag set into the string stored on the album row."""
    return GENRE_SEPARATOR.join(genres)
