"""Metadata provider clients (Spotify, Last.fm, MusicBrainz)."""

from genre_backfill.providers.http import (
    CourtesyLimiter,
    ProviderHttpClient,
    RetryPolicy,
    TokenCache,
)
from genre_backfill.providers.lastfm import LastfmClient
from genre_backfill.providers.musicbrainz import MusicBrainzClient
from genre_backfill.providers.spotify import SpotifyClient

__all__ = [
    "CourtesyLimiter",
    "LastfmClient",
    "MusicBrainzClient",
    "ProviderHttpClient",
    "RetryPolicy",
    "SpotifyClient",
    "TokenCache",
]
