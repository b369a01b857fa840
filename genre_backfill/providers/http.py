"""Rate-limited HTTP client shared by all metadata providers.

Wraps a ``requests.Session`` with:
  - a per-request timeout
  - bounded retry on HTTP 429, honoring Retry-After
  - a single silent re-authentication on HTTP 401
  - bounded linear-backoff retry on timeouts and connection errors
  - a cached bearer token for providers that need one

Sleep and clock are injectable so retry schedules can be tested without
waiting on real time.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import requests

from genre_backfill import __version__
from genre_backfill.exceptions import (
    ProviderAuthError,
    ProviderRateLimitError,
    ProviderRequestError,
    ProviderSetupError,
)

logger = logging.getLogger(__name__)

USER_AGENT = f"genre-backfill/{__version__}"
DEFAULT_TIMEOUT = 15.0
TOKEN_EXPIRY_MARGIN = 10.0

_IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

# (session, timeout) -> (access token, lifetime in seconds)
Authenticator = Callable[[requests.Session, float], tuple[str, float]]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budgets and backoff schedule for one provider."""

    max_rate_limit_retries: int = 5
    max_attempts: int = 3
    transient_backoff: float = 0.75
    max_retry_after: float = 10.0
    default_retry_after: float = 1.0

    def rate_limit_delay(self, retry_after: str | None, retry: int) -> float:
        """Seconds to wait before the ``retry``-th (0-based) retry after a 429.

        The provider's hint gets one second of headroom; without a usable
        hint the wait doubles per retry. Either way it is capped at
        ``max_retry_after``.
        """
        hint: float | None = None
        if retry_after:
            try:
                hint = float(retry_after)
            except ValueError:
                hint = None
        if hint is None or not math.isfinite(hint) or hint < 0:
            hint = self.default_retry_after * (2**retry)
        return min(hint + 1.0, self.max_retry_after)

    def transient_delay(self, attempt: int) -> float:
        """Linear backoff after the ``attempt``-th (1-based) failed attempt."""
        return self.transient_backoff * attempt


@dataclass
class TokenCache:
    """Bearer token and the monotonic time it stops being usable."""

    token: str | None = None
    expires_at: float = 0.0

    def valid(self, now: float) -> bool:
        return self.token is not None and now < self.expires_at

    def store(self, token: str, expires_in: float, now: float) -> None:
        self.token = token
        self.expires_at = now + expires_in - TOKEN_EXPIRY_MARGIN

    def clear(self) -> None:
        self.token = None
        self.expires_at = 0.0


class CourtesyLimiter:
    """Fixed minimum spacing between consecutive requests.

    Used for providers that publish a request-rate etiquette instead of
    signalling limits. The lock keeps the spacing even when several
    threads share one limiter.
    """

    def __init__(
        self,
        min_interval: float,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._interval = min_interval
        self._sleep = sleep
        self._clock = clock
        self._last_request: float | None = None
        self._lock = threading.Lock()

    def wait(self) -> None:
        """Sleep if needed so this request starts at least ``interval`` after the last."""
        with self._lock:
            if self._last_request is not None:
                elapsed = self._clock() - self._last_request
                if elapsed < self._interval:
                    self._sleep(self._interval - elapsed)
            self._last_request = self._clock()

    @property
    def interval(self) -> float:
        return self._interval


class ProviderHttpClient:
    """HTTP access to one named provider.

    Args:
        name: Provider name used in logs and errors.
        timeout: Per-request timeout in seconds.
        policy: Retry budgets.
        authenticator: Token fetcher for providers using bearer tokens.
        limiter: Optional courtesy limiter applied before every attempt.
        session: Session to use (a new one is created if omitted).
        headers: Extra default headers (e.g. a provider-mandated User-Agent).
        sleep: Sleep function, injectable for tests.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        name: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        policy: RetryPolicy | None = None,
        authenticator: Authenticator | None = None,
        limiter: CourtesyLimiter | None = None,
        session: requests.Session | None = None,
        headers: dict[str, str] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.timeout = timeout
        self.policy = policy or RetryPolicy()
        self._authenticator = authenticator
        self._limiter = limiter
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})
        if headers:
            self._session.headers.update(headers)
        self._sleep = sleep
        self._clock = clock
        self._token = TokenCache()

    # -- token handling ----------------------------------------------------

    def get_token(self) -> str:
        """Return the cached token, fetching a new one when it is near expiry.

        Raises:
            ProviderSetupError: If the token endpoint cannot be reached or
                rejects the credentials. This is fatal for the run.
        """
        if self._token.valid(self._clock()):
            return self._token.token  # type: ignore[return-value]
        if self._authenticator is None:
            raise ProviderSetupError(self.name, "no authenticator configured")

        for attempt in range(1, self.policy.max_attempts + 1):
            try:
                token, expires_in = self._authenticator(self._session, self.timeout)
                break
            except (requests.Timeout, requests.ConnectionError) as e:
                if attempt == self.policy.max_attempts:
                    raise ProviderSetupError(self.name, str(e)) from e
                wait = self.policy.transient_delay(attempt)
                logger.warning("%s token request failed, retrying in %.2fs: %s", self.name, wait, e)
                self._sleep(wait)
            except requests.RequestException as e:
                raise ProviderSetupError(self.name, str(e)) from e

        self._token.store(token, expires_in, self._clock())
        logger.debug("%s token refreshed (valid for %.0fs)", self.name, expires_in)
        return token

    def invalidate_token(self) -> None:
        self._token.clear()

    # -- requests ------------------------------------------------------------

    def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        authenticated: bool = False,
    ) -> requests.Response | None:
        """Make a request with retry, backoff and token refresh.

        Returns:
            The response for a 2xx status, None for any other final status.

        Raises:
            ProviderRateLimitError: Still throttled after the retry budget.
            ProviderAuthError: 401 again right after re-authenticating.
            ProviderRequestError: Network failure or timeout on every attempt.
            ProviderSetupError: Token could not be obtained.
        """
        retry_transient = method.upper() in _IDEMPOTENT_METHODS
        rate_limit_retries = 0
        failed_attempts = 0
        reauthenticated = False

        while True:
            if self._limiter is not None:
                self._limiter.wait()

            request_headers = dict(headers or {})
            if authenticated:
                request_headers["Authorization"] = f"Bearer {self.get_token()}"

            try:
                resp = self._session.request(
                    method,
                    url,
                    params=params,
                    headers=request_headers,
                    timeout=self.timeout,
                )
            except (requests.Timeout, requests.ConnectionError) as e:
                failed_attempts += 1
                if not retry_transient or failed_attempts >= self.policy.max_attempts:
                    raise ProviderRequestError(self.name, url, failed_attempts, str(e)) from e
                wait = self.policy.transient_delay(failed_attempts)
                logger.warning("%s request failed, retrying in %.2fs: %s", self.name, wait, e)
                self._sleep(wait)
                continue
            except requests.RequestException as e:
                raise ProviderRequestError(self.name, url, failed_attempts + 1, str(e)) from e

            if resp.status_code == 401 and authenticated:
                if reauthenticated:
                    raise ProviderAuthError(self.name, url)
                reauthenticated = True
                logger.info("%s token rejected, re-authenticating", self.name)
                self.invalidate_token()
                continue

            if resp.status_code == 429:
                if rate_limit_retries >= self.policy.max_rate_limit_retries:
                    raise ProviderRateLimitError(self.name, url, rate_limit_retries)
                wait = self.policy.rate_limit_delay(
                    resp.headers.get("Retry-After"), rate_limit_retries
                )
                rate_limit_retries += 1
                logger.warning(
                    "%s rate limit detected (HTTP 429), waiting %.1fs (retry %d/%d)",
                    self.name,
                    wait,
                    rate_limit_retries,
                    self.policy.max_rate_limit_retries,
                )
                self._sleep(wait)
                continue

            if 200 <= resp.status_code < 300:
                return resp

            logger.debug("%s returned HTTP %d for %s", self.name, resp.status_code, url)
            return None

    def get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        *,
        authenticated: bool = False,
    ) -> dict[str, Any] | None:
        """GET a JSON object; None when the status or payload is unusable."""
        resp = self.request("GET", url, params=params, authenticated=authenticated)
        if resp is None:
            return None
        try:
            data = resp.json()
        except ValueError:
            logger.debug("%s returned a non-JSON body for %s", self.name, url)
            return None
        if not isinstance(data, dict):
            return None
        return data

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> ProviderHttpClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
