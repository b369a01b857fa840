"""Unit tests for the per-album genre resolution pipeline."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from genre_backfill.db.queries import AlbumRecord, ArtistRecord
from genre_backfill.exceptions import (
    ProviderRateLimitError,
    ProviderRequestError,
    ProviderSetupError,
)
from genre_backfill.providers.lastfm import LastfmClient
from genre_backfill.providers.models import (
    AlbumCandidate,
    MusicBrainzArtist,
    MusicBrainzArtistCandidate,
    SpotifyAlbum,
    SpotifyArtist,
)
from genre_backfill.providers.musicbrainz import MusicBrainzClient
from genre_backfill.providers.spotify import SpotifyClient
from genre_backfill.resolve.pipeline import (
    AlbumStatus,
    GenreResolver,
    ResolutionSource,
    UnresolvedReason,
)


def _clients() -> tuple[MagicMock, MagicMock, MagicMock]:
    """Provider mocks that find nothing unless a test says otherwise."""
    spotify = MagicMock(spec=SpotifyClient)
    spotify.search_albums.return_value = []
    spotify.search_artists.return_value = []
    spotify.get_album.return_value = None
    spotify.get_artist.return_value = None

    lastfm = MagicMock(spec=LastfmClient)
    lastfm.enabled = True
    lastfm.get_album_tags.return_value = []
    lastfm.get_artist_top_tags.return_value = []

    musicbrainz = MagicMock(spec=MusicBrainzClient)
    musicbrainz.search_artists.return_value = []
    musicbrainz.get_artist.return_value = None
    return spotify, lastfm, musicbrainz


def _resolver(store, clients, **kwargs) -> GenreResolver:
    spotify, lastfm, musicbrainz = clients
    return GenreResolver(store, spotify, lastfm, musicbrainz, **kwargs)


class TestArtistCache:
    def test_cached_artist_genres_need_no_network(self, make_store):
        album = AlbumRecord("al1", "Nevermind", "Nirvana", artist_id="a1")
        store = make_store([album])
        clients = _clients()
        resolver = _resolver(store, clients, artist_genres={"a1": ("grunge", "rock")})

        outcome = resolver.process(album)

        assert outcome.status is AlbumStatus.UPDATED
        assert outcome.result.source is ResolutionSource.ARTIST_CACHE
        assert store.genre_writes == [("al1", "grunge, rock")]
        for client in clients:
            assert client.method_calls == []

    def test_write_failure(self, make_store):
        album = AlbumRecord("al1", "Nevermind", "Nirvana", artist_id="a1")
        store = make_store([album])
        store.fail_genre_writes = True
        resolver = _resolver(store, _clients(), artist_genres={"a1": ("grunge",)})

        outcome = resolver.process(album)

        assert outcome.status is AlbumStatus.FAILED
        assert outcome.reason is UnresolvedReason.ARTIST_DB_GENRES_UPDATE_FAILED
        assert "disk full" in outcome.error


class TestSpotify:
    def _nevermind_clients(self):
        spotify, lastfm, musicbrainz = _clients()
        spotify.search_albums.return_value = [
            AlbumCandidate("sp2", "Nevermind (Remastered)", "Tribute Band", "ar2", 90),
            AlbumCandidate("sp1", "Nevermind", "Nirvana", "ar1", 80),
        ]
        spotify.get_album.return_value = SpotifyAlbum("sp1", [], ["ar1"])
        spotify.get_artist.return_value = SpotifyArtist(
            "ar1", "Nirvana", ["Grunge", "alternative rock"], 80
        )
        return spotify, lastfm, musicbrainz

    def test_nevermind_end_to_end(self, make_store):
        album = AlbumRecord("al1", "Nevermind", "Nirvana")
        store = make_store([album])
        clients = self._nevermind_clients()
        spotify, lastfm, musicbrainz = clients

        outcome = _resolver(store, clients).process(album)

        assert outcome.status is AlbumStatus.UPDATED
        assert outcome.result.genres == ("alternative rock", "grunge")
        assert outcome.result.source is ResolutionSource.SPOTIFY
        assert outcome.resolved_new_id is True
        assert outcome.spotify_id == "sp1"
        assert store.spotify_id_writes == [("al1", "sp1")]
        assert store.genre_writes == [("al1", "alternative rock, grunge")]
        spotify.get_album.assert_called_once_with("sp1")
        spotify.get_artist.assert_called_once_with("ar1")
        spotify.search_artists.assert_not_called()
        assert lastfm.method_calls == []
        assert musicbrainz.method_calls == []

    def test_searches_every_query_variant(self, make_store):
        album = AlbumRecord("al1", "Nevermind", "Nirvana")
        clients = self._nevermind_clients()

        _resolver(make_store([album]), clients).process(album)

        queries = [c.args[0] for c in clients[0].search_albums.call_args_list]
        assert queries[0] == "album:Nevermind artist:Nirvana"
        assert len(queries) == 5

    def test_album_genres_preferred_over_artist(self, make_store):
        album = AlbumRecord("al1", "Nevermind", "Nirvana", spotify_id="sp1")
        clients = _clients()
        clients[0].get_album.return_value = SpotifyAlbum("sp1", ["Grunge"], ["ar1"])

        outcome = _resolver(make_store([album]), clients).process(album)

        assert outcome.result.genres == ("grunge",)
        assert outcome.resolved_new_id is False
        clients[0].search_albums.assert_not_called()
        clients[0].get_artist.assert_not_called()

    def test_artist_name_search_when_no_id(self, make_store):
        album = AlbumRecord("al1", "Unknown Demo", "Nirvana")
        clients = _clients()
        clients[0].search_artists.return_value = [
            SpotifyArtist("x", "Nirvana Tribute", ["covers"], 90),
            SpotifyArtist("ar1", "Nirvana", ["grunge"], 70),
        ]
        store = make_store([album])

        outcome = _resolver(store, clients).process(album)

        assert outcome.result.source is ResolutionSource.SPOTIFY_NAME_SEARCH
        assert outcome.result.genres == ("grunge",)
        assert store.spotify_id_writes == []

    def test_artist_name_search_skipped_when_id_known(self, make_store):
        album = AlbumRecord("al1", "Nevermind", "Nirvana", spotify_id="sp1")
        clients = _clients()

        outcome = _resolver(make_store([album]), clients).process(album)

        assert outcome.status is AlbumStatus.NO_GENRES
        assert outcome.reason is UnresolvedReason.NO_GENRES_FROM_ALL_SOURCES
        clients[0].search_artists.assert_not_called()

    def test_artist_genres_cached_across_albums(self, make_store):
        albums = [
            AlbumRecord("al1", "Demo One", "Nirvana"),
            AlbumRecord("al2", "Demo Two", "NIRVANA"),
        ]
        clients = _clients()
        clients[0].search_artists.return_value = [SpotifyArtist("ar1", "Nirvana", ["grunge"])]
        resolver = _resolver(make_store(albums), clients)

        for album in albums:
            assert resolver.process(album).result.genres == ("grunge",)

        # two query variants for the first album, none for the second
        assert clients[0].search_artists.call_count == 2


class TestFallbacks:
    def test_lastfm_album_tags(self, make_store):
        album = AlbumRecord("al1", "Souvlaki", "Slowdive", spotify_id="sp1")
        clients = _clients()
        clients[1].get_album_tags.return_value = ["Shoegaze", "seen live", "Dream Pop"]

        outcome = _resolver(make_store([album]), clients).process(album)

        assert outcome.result.source is ResolutionSource.LASTFM_ALBUM
        assert outcome.result.genres == ("dream pop", "shoegaze")
        clients[1].get_album_tags.assert_called_once_with("Slowdive", "Souvlaki")
        clients[1].get_artist_top_tags.assert_not_called()

    def test_lastfm_artist_tags(self, make_store):
        album = AlbumRecord("al1", "Souvlaki", "Slowdive", spotify_id="sp1")
        clients = _clients()
        clients[1].get_artist_top_tags.return_value = ["shoegaze"]

        outcome = _resolver(make_store([album]), clients).process(album)

        assert outcome.result.source is ResolutionSource.LASTFM_ARTIST
        clients[2].search_artists.assert_not_called()

    def test_lastfm_disabled_goes_to_musicbrainz(self, make_store):
        album = AlbumRecord("al1", "Spokój", "Kult", spotify_id="sp1")
        clients = _clients()
        clients[1].enabled = False
        clients[2].search_artists.return_value = [
            MusicBrainzArtistCandidate("mb2", "Kult Band", 100),
            MusicBrainzArtistCandidate("mb1", "Kult", 100),
        ]
        tags = [f"tag {n:02d}" for n in range(12)]
        clients[2].get_artist.return_value = MusicBrainzArtist("mb1", "Kult", ["punk rock"], tags)

        outcome = _resolver(make_store([album]), clients).process(album)

        assert outcome.status is AlbumStatus.UPDATED
        assert outcome.result.source is ResolutionSource.MUSICBRAINZ_ARTIST
        assert len(outcome.result.genres) == 10
        assert outcome.result.genres == tuple(sorted(["punk rock"] + tags))[:10]
        clients[2].get_artist.assert_called_once_with("mb1")
        clients[1].get_album_tags.assert_not_called()

    def test_musicbrainz_cached_by_name(self, make_store):
        albums = [
            AlbumRecord("al1", "One", "Kult", spotify_id="sp1"),
            AlbumRecord("al2", "Two", "kult", spotify_id="sp2"),
        ]
        clients = _clients()
        clients[2].search_artists.return_value = [MusicBrainzArtistCandidate("mb1", "Kult", 100)]
        clients[2].get_artist.return_value = MusicBrainzArtist("mb1", "Kult", ["punk rock"])
        resolver = _resolver(make_store(albums), clients)

        for album in albums:
            resolver.process(album)

        assert clients[2].get_artist.call_count == 1

    def test_all_sources_empty_without_id(self, make_store):
        album = AlbumRecord("al1", "Nothing", "Nobody")
        store = make_store([album])
        clients = _clients()
        spotify, lastfm, musicbrainz = clients

        outcome = _resolver(store, clients).process(album)

        assert outcome.status is AlbumStatus.SKIPPED
        assert outcome.reason is UnresolvedReason.NO_SPOTIFY_ID_AND_NO_EXTERNAL_GENRES
        assert outcome.spotify_id is None
        assert store.genre_writes == []
        assert spotify.search_albums.called
        assert spotify.search_artists.called
        lastfm.get_album_tags.assert_called_once()
        lastfm.get_artist_top_tags.assert_called_once()
        assert musicbrainz.search_artists.called

    def test_no_artist_name_skips_artist_sources(self, make_store):
        album = AlbumRecord("al1", "Untitled", "")
        clients = _clients()

        outcome = _resolver(make_store([album]), clients).process(album)

        assert outcome.status is AlbumStatus.SKIPPED
        clients[0].search_artists.assert_not_called()
        assert clients[1].method_calls == []
        assert clients[2].method_calls == []


class TestFailures:
    def test_id_lookup_failure(self, make_store):
        album = AlbumRecord("al1", "Nevermind", "Nirvana")
        clients = _clients()
        clients[0].search_albums.side_effect = ProviderRateLimitError(
            "Spotify", "https://api.spotify.com/v1/search", 5
        )

        outcome = _resolver(make_store([album]), clients).process(album)

        assert outcome.status is AlbumStatus.FAILED
        assert outcome.reason is UnresolvedReason.SPOTIFY_ID_LOOKUP_FAILED
        assert "rate limited" in outcome.error

    def test_id_update_failure(self, make_store):
        album = AlbumRecord("al1", "Nevermind", "Nirvana")
        store = make_store([album])
        store.fail_spotify_id_writes = True
        clients = _clients()
        clients[0].search_albums.return_value = [AlbumCandidate("sp1", "Nevermind", "Nirvana")]

        outcome = _resolver(store, clients).process(album)

        assert outcome.reason is UnresolvedReason.SPOTIFY_ID_UPDATE_FAILED
        assert outcome.spotify_id == "sp1"
        clients[0].get_album.assert_not_called()

    def test_external_failure_without_id(self, make_store):
        album = AlbumRecord("al1", "Nothing", "Nobody")
        clients = _clients()
        clients[1].get_album_tags.side_effect = ProviderRequestError(
            "Last.fm", "https://ws.audioscrobbler.com/2.0/", 3, "timed out"
        )

        outcome = _resolver(make_store([album]), clients).process(album)

        assert outcome.status is AlbumStatus.FAILED
        assert outcome.reason is UnresolvedReason.EXTERNAL_GENRE_LOOKUP_FAILED
        clients[2].search_artists.assert_not_called()

    def test_fetch_failure_with_id(self, make_store):
        album = AlbumRecord("al1", "Nevermind", "Nirvana", spotify_id="sp1")
        clients = _clients()
        clients[0].get_album.side_effect = ProviderRateLimitError("Spotify", "url", 5)

        outcome = _resolver(make_store([album]), clients).process(album)

        assert outcome.reason is UnresolvedReason.GENRE_FETCH_OR_UPDATE_FAILED
        assert outcome.spotify_id == "sp1"

    def test_genre_write_failure_with_id(self, make_store):
        album = AlbumRecord("al1", "Nevermind", "Nirvana", spotify_id="sp1")
        store = make_store([album])
        store.fail_genre_writes = True
        clients = _clients()
        clients[0].get_album.return_value = SpotifyAlbum("sp1", ["grunge"])

        outcome = _resolver(store, clients).process(album)

        assert outcome.reason is UnresolvedReason.GENRE_FETCH_OR_UPDATE_FAILED

    def test_fatal_errors_propagate(self, make_store):
        album = AlbumRecord("al1", "Nevermind", "Nirvana")
        clients = _clients()
        clients[0].search_albums.side_effect = ProviderSetupError("Spotify", "HTTP 400")

        with pytest.raises(ProviderSetupError):
            _resolver(make_store([album]), clients).process(album)

    def test_next_album_unaffected(self, make_store):
        albums = [
            AlbumRecord("al1", "Broken", "Nobody"),
            AlbumRecord("al2", "Nevermind", "Nirvana", spotify_id="sp1"),
        ]
        clients = _clients()
        clients[0].search_albums.side_effect = ProviderRequestError("Spotify", "url", 3, "reset")
        clients[0].get_album.return_value = SpotifyAlbum("sp1", ["grunge"])
        resolver = _resolver(make_store(albums), clients)

        statuses = [resolver.process(album).status for album in albums]

        assert statuses == [AlbumStatus.FAILED, AlbumStatus.UPDATED]


class TestDryRunAndLookups:
    def test_dry_run_writes_nothing(self, make_store):
        album = AlbumRecord("al1", "Nevermind", "Nirvana")
        store = make_store([album])
        clients = _clients()
        clients[0].search_albums.return_value = [AlbumCandidate("sp1", "Nevermind", "Nirvana")]
        clients[0].get_album.return_value = SpotifyAlbum("sp1", ["grunge"])

        outcome = _resolver(store, clients, dry_run=True).process(album)

        assert outcome.status is AlbumStatus.UPDATED
        assert outcome.resolved_new_id is True
        assert store.genre_writes == []
        assert store.spotify_id_writes == []

    def test_artist_name_from_store(self, make_store):
        albums = [
            AlbumRecord("al1", "One", "", artist_id="a9", spotify_id="sp1"),
            AlbumRecord("al2", "Two", "", artist_id="a9", spotify_id="sp2"),
        ]
        store = make_store(albums, [ArtistRecord("a9", "Kult", [])])
        clients = _clients()
        clients[1].get_artist_top_tags.return_value = ["punk"]
        resolver = _resolver(store, clients)

        outcomes = [resolver.process(album) for album in albums]

        assert [o.artist_name for o in outcomes] == ["Kult", "Kult"]
        clients[1].get_artist_top_tags.assert_called_once_with("Kult")
        assert store.name_lookups == 1
