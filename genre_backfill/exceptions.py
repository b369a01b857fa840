"""Exception hierarchy for genre-backfill."""

from pathlib import Path


class GenreBackfillError(Exception):
    """Base exception for all genre-backfill errors.

    All exceptions in this package inherit from this class,
    allowing callers to catch all genre-backfill errors with
    a single except clause.
    """

    pass


class FatalError(GenreBackfillError):
    """Error that aborts the whole run instead of a single album."""

    pass


# Configuration Errors
class ConfigError(FatalError):
    """Configuration-related errors."""

    pass


class ConfigParseError(ConfigError):
    """Configuration file has invalid syntax."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid config at {path}: {detail}")


class ConfigValidationError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: object, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid config value for '{key}': {reason}")


class MissingCredentialsError(ConfigError):
    """Required provider credentials are not configured."""

    def __init__(self, provider: str, keys: list[str]) -> None:
        self.provider = provider
        self.keys = keys
        super().__init__(f"Missing {provider} credentials: {', '.join(keys)}")


# Database Errors
class DatabaseError(FatalError):
    """Database-related errors."""

    pass


class DatabaseNotFoundError(DatabaseError):
    """Database file doesn't exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Database not found: {path}")


class DatabaseConnectionError(DatabaseError):
    """Failed to connect to database."""

    pass


class StoreWriteError(GenreBackfillError):
    """The record store rejected a single-row write."""

    def __init__(self, album_id: str, detail: str) -> None:
        self.album_id = album_id
        self.detail = detail
        super().__init__(f"Failed to update album {album_id}: {detail}")


# Provider Errors
class ProviderSetupError(FatalError):
    """Provider authentication could not be established (e.g. token endpoint failed)."""

    def __init__(self, provider: str, detail: str) -> None:
        self.provider = provider
        self.detail = detail
        super().__init__(f"{provider} authentication failed: {detail}")


class ProviderError(GenreBackfillError):
    """A provider request failed after its retry budget was spent."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class ProviderRateLimitError(ProviderError):
    """Provider kept answering HTTP 429."""

    def __init__(self, provider: str, url: str, retries: int) -> None:
        self.url = url
        self.retries = retries
        super().__init__(provider, f"rate limited after {retries} retries: {url}")


class ProviderAuthError(ProviderError):
    """Provider rejected the token again after a refresh."""

    def __init__(self, provider: str, url: str) -> None:
        self.url = url
        super().__init__(provider, f"authentication rejected after token refresh: {url}")


class ProviderRequestError(ProviderError):
    """Network failure or timeout persisted through all attempts."""

    def __init__(self, provider: str, url: str, attempts: int, detail: str) -> None:
        self.url = url
        self.attempts = attempts
        self.detail = detail
        super().__init__(provider, f"request to {url} failed after {attempts} attempts: {detail}")
