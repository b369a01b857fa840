"""Spotify Web API client (client-credentials flow)."""

from __future__ import annotations

import base64
import logging
import time
from collections.abc import Callable
from typing import Any

import requests

from genre_backfill.exceptions import ProviderSetupError
from genre_backfill.providers.http import (
    DEFAULT_TIMEOUT,
    Authenticator,
    ProviderHttpClient,
    RetryPolicy,
)
from genre_backfill.providers.models import AlbumCandidate, SpotifyAlbum, SpotifyArtist

logger = logging.getLogger(__name__)

PROVIDER_NAME = "Spotify"
TOKEN_URL = "https://accounts.spotify.com/api/token"
API_BASE = "https://api.spotify.com/v1"
SEARCH_LIMIT = 10


def _search_items(data: dict[str, Any] | None, key: str) -> list[Any]:
    section = (data or {}).get(key)
    if not isinstance(section, dict):
        return []
    items = section.get("items")
    return items if isinstance(items, list) else []


def client_credentials_authenticator(client_id: str, client_secret: str) -> Authenticator:
    """Build an authenticator that exchanges client credentials for a token."""
    basic = base64.b64encode(f"{client_id}:{client_secret}".encode()).decode("ascii")

    def authenticate(session: requests.Session, timeout: float) -> tuple[str, float]:
        resp = session.post(
            TOKEN_URL,
            headers={
                "Authorization": f"Basic {basic}",
                "Content-Type": "application/x-www-form-urlencoded",
            },
            data={"grant_type": "client_credentials"},
            timeout=timeout,
        )
        if resp.status_code != 200:
            raise ProviderSetupError(
                PROVIDER_NAME, f"token endpoint returned HTTP {resp.status_code}: {resp.text}"
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderSetupError(PROVIDER_NAME, "token endpoint returned invalid JSON") from e
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise ProviderSetupError(PROVIDER_NAME, "token response has no access_token")
        try:
            expires_in = float(data.get("expires_in") or 3600)
        except (TypeError, ValueError):
            expires_in = 3600.0
        return str(token), expires_in

    return authenticate


class SpotifyClient:
    """Search and detail lookups against the Spotify catalogue.

    Args:
        client_id: Spotify application client id.
        client_secret: Spotify application client secret.
        http: Pre-built HTTP client (tests); built from the other
            arguments when omitted.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        policy: RetryPolicy | None = None,
        http: ProviderHttpClient | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        if http is None:
            http = ProviderHttpClient(
                PROVIDER_NAME,
                timeout=timeout,
                policy=policy,
                authenticator=client_credentials_authenticator(client_id, client_secret),
                sleep=sleep or time.sleep,
            )
        self.http = http

    def get_token(self) -> str:
        return self.http.get_token()

    def search_albums(self, query: str, limit: int = SEARCH_LIMIT) -> list[AlbumCandidate]:
        """Search albums; candidates without an id are dropped."""
        data = self.http.get_json(
            f"{API_BASE}/search",
            {"q": query, "type": "album", "limit": limit},
            authenticated=True,
        )
        items = _search_items(data, "albums")
        candidates = [c for c in map(AlbumCandidate.from_json, items) if c.id]
        logger.debug("Spotify album search %r: %d candidates", query, len(candidates))
        return candidates

    def search_artists(self, query: str, limit: int = SEARCH_LIMIT) -> list[SpotifyArtist]:
        """Search artists; candidates without an id are dropped."""
        data = self.http.get_json(
            f"{API_BASE}/search",
            {"q": query, "type": "artist", "limit": limit},
            authenticated=True,
        )
        items = _search_items(data, "artists")
        artists = [a for a in map(SpotifyArtist.from_json, items) if a.id]
        logger.debug("Spotify artist search %r: %d candidates", query, len(artists))
        return artists

    def get_album(self, album_id: str) -> SpotifyAlbum | None:
        data = self.http.get_json(f"{API_BASE}/albums/{album_id}", authenticated=True)
        if data is None:
            return None
        return SpotifyAlbum.from_json(data)

    def get_artist(self, artist_id: str) -> SpotifyArtist | None:
        data = self.http.get_json(f"{API_BASE}/artists/{artist_id}", authenticated=True)
        if data is None:
            return None
        return SpotifyArtist.from_json(data)

    def close(self) -> None:
        self.http.close()
