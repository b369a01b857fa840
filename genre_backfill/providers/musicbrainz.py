"""MusicBrainz artist search and genre lookup.

MusicBrainz asks clients to identify themselves with a descriptive
User-Agent and to stay around one request per second. Every request goes
through a ``CourtesyLimiter`` with a 1.1s spacing.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from genre_backfill.providers.http import (
    DEFAULT_TIMEOUT,
    CourtesyLimiter,
    ProviderHttpClient,
    RetryPolicy,
)
from genre_backfill.providers.models import MusicBrainzArtist, MusicBrainzArtistCandidate

logger = logging.getLogger(__name__)

PROVIDER_NAME = "MusicBrainz"
API_BASE = "https://musicbrainz.org/ws/2"
DEFAULT_USER_AGENT = "GenreBackfill/0.1 (local)"
MIN_REQUEST_INTERVAL = 1.1
SEARCH_LIMIT = 5


class MusicBrainzClient:
    """Artist search and artist detail (genres + tags).

    Args:
        user_agent: Descriptive client identifier sent on every request.
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        policy: RetryPolicy | None = None,
        http: ProviderHttpClient | None = None,
        sleep: Callable[[float], None] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        if http is None:
            sleep = sleep or time.sleep
            clock = clock or time.monotonic
            http = ProviderHttpClient(
                PROVIDER_NAME,
                timeout=timeout,
                policy=policy,
                limiter=CourtesyLimiter(MIN_REQUEST_INTERVAL, sleep=sleep, clock=clock),
                headers={
                    "User-Agent": user_agent or DEFAULT_USER_AGENT,
                    "Accept": "application/json",
                },
                sleep=sleep,
                clock=clock,
            )
        self.http = http

    def search_artists(
        self, query: str, limit: int = SEARCH_LIMIT
    ) -> list[MusicBrainzArtistCandidate]:
        """Lucene-syntax artist search; hits carry MusicBrainz's relevance score."""
        data = self.http.get_json(
            f"{API_BASE}/artist/",
            {"query": query, "fmt": "json", "limit": limit},
        )
        items = (data or {}).get("artists")
        if not isinstance(items, list):
            return []
        candidates = [c for c in map(MusicBrainzArtistCandidate.from_json, items) if c.id]
        logger.debug("MusicBrainz artist search %r: %d candidates", query, len(candidates))
        return candidates

    def get_artist(self, artist_id: str) -> MusicBrainzArtist | None:
        # "+" is the inc separator and must not be percent-encoded.
        data = self.http.get_json(f"{API_BASE}/artist/{artist_id}?inc=genres+tags", {"fmt": "json"})
        if data is None:
            return None
        return MusicBrainzArtist.from_json(data)

    def close(self) -> None:
        self.http.close()
