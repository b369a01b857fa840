"""Search query variants for provider lookups.

Each builder returns the native-spelling queries first and then the
accent-stripped ones, so a catalogue entry typed with or without
diacritics can still be found. Duplicates are dropped, order is kept.
"""

from __future__ import annotations

from collections.abc import Iterable

from genre_backfill.utils.text import remove_diacritics, repair_mojibake, strip_featuring


def _clean(text: str | None) -> str:
    return strip_featuring(repair_mojibake(text)).strip()


def _unique(queries: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for query in queries:
        query = query.strip()
        if query and query not in seen:
            seen.add(query)
            result.append(query)
    return result


def build_album_search_queries(title: str | None, artist: str | None) -> list[str]:
    """Album search queries for ``title`` by ``artist``, most specific first.

    An empty title yields no queries; the artist is optional.
    """
    title = _clean(title)
    artist = _clean(artist)
    if not title:
        return []

    queries = []
    if artist:
        queries += [f"album:{title} artist:{artist}", f'"{title}" "{artist}"', f"{title} {artist}"]
    queries += [f"album:{title}", title]

    ascii_title = remove_diacritics(title)
    ascii_artist = remove_diacritics(artist)
    if ascii_title != title:
        if ascii_artist and ascii_artist != artist:
            queries += [
                f"album:{ascii_title} artist:{ascii_artist}",
                f'"{ascii_title}" "{ascii_artist}"',
                f"{ascii_title} {ascii_artist}",
            ]
        elif ascii_artist:
            queries += [
                f"album:{ascii_title} artist:{ascii_artist}",
                f"{ascii_title} {ascii_artist}",
            ]
        queries += [f"album:{ascii_title}", ascii_title]

    return _unique(queries)


def build_artist_search_queries(artist: str | None) -> list[str]:
    """Spotify artist search queries: field-qualified, then bare."""
    artist = _clean(artist)
    if not artist:
        return []
    queries = [f"artist:{artist}", artist]
    ascii_artist = remove_diacritics(artist)
    if ascii_artist != artist:
        queries += [f"artist:{ascii_artist}", ascii_artist]
    return _unique(queries)


def build_musicbrainz_artist_queries(artist: str | None) -> list[str]:
    """Lucene artist queries for the MusicBrainz search endpoint."""
    artist = _clean(artist)
    if not artist:
        return []
    queries = [f'artist:"{artist}"', artist]
    ascii_artist = remove_diacritics(artist)
    if ascii_artist != artist:
        queries.append(f'artist:"{ascii_artist}"')
    return _unique(queries)
