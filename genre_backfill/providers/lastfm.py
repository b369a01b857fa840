"""Last.fm tag lookups.

Last.fm is a fallback source: without an API key every lookup simply
returns no tags.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from genre_backfill.providers.http import DEFAULT_TIMEOUT, ProviderHttpClient, RetryPolicy
from genre_backfill.providers.models import lastfm_tag_names

logger = logging.getLogger(__name__)

PROVIDER_NAME = "Last.fm"
API_URL = "https://ws.audioscrobbler.com/2.0/"


class LastfmClient:
    """Album and artist tag lookups against the Last.fm 2.0 API.

    Args:
        api_key: Last.fm API key. None or empty disables the client.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        policy: RetryPolicy | None = None,
        http: ProviderHttpClient | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.api_key = (api_key or "").strip() or None
        if http is None:
            http = ProviderHttpClient(
                PROVIDER_NAME, timeout=timeout, policy=policy, sleep=sleep or time.sleep
            )
        self.http = http

    @property
    def enabled(self) -> bool:
        return self.api_key is not None

    def _call(self, method: str, **params: str) -> dict | None:
        return self.http.get_json(
            API_URL,
            {
                "method": method,
                "api_key": self.api_key,
                "autocorrect": "1",
                "format": "json",
                **params,
            },
        )

    def get_album_tags(self, artist: str, album: str) -> list[str]:
        """Raw tag names for an album (album.getinfo)."""
        if not self.enabled or not artist or not album:
            return []
        data = self._call("album.getinfo", artist=artist, album=album)
        return lastfm_tag_names(data, "album", "tags", "tag")

    def get_artist_top_tags(self, artist: str) -> list[str]:
        """Raw top tag names for an artist (artist.gettoptags)."""
        if not self.enabled or not artist:
            return []
        data = self._call("artist.gettoptags", artist=artist)
        return lastfm_tag_names(data, "toptags", "tag")

    def close(self) -> None:
        self.http.close()
