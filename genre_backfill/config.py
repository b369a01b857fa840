"""Configuration management for genre-backfill."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from genre_backfill.exceptions import (
    ConfigParseError,
    ConfigValidationError,
    MissingCredentialsError,
)
from genre_backfill.providers.http import DEFAULT_TIMEOUT
from genre_backfill.providers.musicbrainz import DEFAULT_USER_AGENT
from genre_backfill.resolve.backfill import DEFAULT_PAGE_SIZE, DEFAULT_REPORT_NAME


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".config" / "genre-backfill" / "config.toml"


def get_default_db_path() -> Path:
    """Get the default catalogue database path."""
    return Path.home() / ".local" / "share" / "genre-backfill" / "albums.sqlite"


@dataclass
class Config:
    """Application configuration.

    Attributes:
        db_path: Path to the album catalogue SQLite database.
        spotify_client_id: Spotify application client id (required).
        spotify_client_secret: Spotify application client secret (required).
        lastfm_api_key: Last.fm API key; Last.fm lookups are skipped without it.
        musicbrainz_user_agent: User-Agent sent to MusicBrainz.
        limit: Maximum number of albums per run (0 = all).
        dry_run: Resolve genres without writing to the database.
        target_artist: Only process albums whose artist contains this text.
        target_album: Only process albums whose title contains this text.
        report_path: Where the unresolved-albums JSON report is written.
        request_timeout: Per-request HTTP timeout in seconds.
        page_size: Rows fetched per database page.
        colored_output: Whether to use colored terminal output.
        config_path: Path where config was loaded from (None if defaults).
    """

    db_path: Path = field(default_factory=get_default_db_path)
    spotify_client_id: str | None = None
    spotify_client_secret: str | None = None
    lastfm_api_key: str | None = None
    musicbrainz_user_agent: str = DEFAULT_USER_AGENT
    limit: int = 0
    dry_run: bool = False
    target_artist: str = ""
    target_album: str = ""
    report_path: Path = field(default_factory=lambda: Path(DEFAULT_REPORT_NAME))
    request_timeout: float = DEFAULT_TIMEOUT
    page_size: int = DEFAULT_PAGE_SIZE
    colored_output: bool = True
    config_path: Path | None = None

    def validate(self) -> list[str]:
        """Validate configuration values.

        Returns:
            List of warning messages for non-fatal issues.

        Raises:
            ConfigValidationError: If a critical validation fails.
        """
        warnings: list[str] = []

        self.db_path = self.db_path.expanduser().resolve()
        self.report_path = self.report_path.expanduser()

        if self.limit < 0:
            raise ConfigValidationError("backfill.limit", self.limit, "must be >= 0")
        if self.request_timeout <= 0:
            raise ConfigValidationError(
                "backfill.request_timeout", self.request_timeout, "must be positive"
            )
        if self.page_size <= 0:
            raise ConfigValidationError("backfill.page_size", self.page_size, "must be positive")

        if not self.db_path.exists():
            warnings.append(f"Album database not found: {self.db_path}")
        if not self.lastfm_api_key:
            warnings.append("No Last.fm API key configured; Last.fm fallback is disabled")

        return warnings

    def require_credentials(self) -> None:
        """Fail fast when the Spotify credentials are missing.

        Raises:
            MissingCredentialsError: If client id or secret is empty.
        """
        missing = []
        if not self.spotify_client_id:
            missing.append("spotify.client_id")
        if not self.spotify_client_secret:
            missing.append("spotify.client_secret")
        if missing:
            raise MissingCredentialsError("Spotify", missing)


def load_config(
    config_path: Path | None = None, env: Mapping[str, str] | None = None
) -> tuple[Config, list[str]]:
    """Load configuration from file, then apply environment overrides.

    Args:
        config_path: Explicit config file path. If None, uses default location.
        env: Environment mapping (default: ``os.environ``).

    Returns:
        Tuple of (Config object, list of warning messages).

    Raises:
        ConfigParseError: If config file exists but has invalid syntax.
        ConfigValidationError: If config values are invalid.
    """
    warnings: list[str] = []

    if config_path is None:
        config_path = get_default_config_path()

    config_path = config_path.expanduser().resolve()

    if not config_path.exists():
        config = Config()
        warnings.append(
            f"No config file found at {config_path}. Using defaults. "
            f"Create config with: genre-backfill init-config"
        )
    else:
        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except (tomllib.TOMLDecodeError, OSError) as e:
            raise ConfigParseError(config_path, str(e)) from e
        config = _parse_config_dict(data, config_path)

    apply_env_overrides(config, os.environ if env is None else env)
    config_warnings = config.validate()

    return config, warnings + config_warnings


def _expect(section: dict[str, Any], name: str, key: str, types: type | tuple, what: str) -> Any:
    """Return ``section[key]`` or raise if it is not one of ``types``."""
    value = section[key]
    allowed = types if isinstance(types, tuple) else (types,)
    # bool is an int subclass; only accept it where a boolean is wanted
    if not isinstance(value, allowed) or (isinstance(value, bool) and bool not in allowed):
        raise ConfigValidationError(f"{name}.{key}", value, f"must be {what}")
    return value


def _parse_config_dict(data: dict[str, Any], config_path: Path) -> Config:
    """Parse configuration dictionary into Config object."""
    config = Config(config_path=config_path)

    # Parse [database] section
    database = data.get("database", {})
    if "path" in database:
        config.db_path = Path(_expect(database, "database", "path", str, "a string path"))

    # Parse [spotify] section
    spotify = data.get("spotify", {})
    if "client_id" in spotify:
        config.spotify_client_id = _expect(spotify, "spotify", "client_id", str, "a string") or None
    if "client_secret" in spotify:
        config.spotify_client_secret = (
            _expect(spotify, "spotify", "client_secret", str, "a string") or None
        )

    # Parse [lastfm] section
    lastfm = data.get("lastfm", {})
    if "api_key" in lastfm:
        config.lastfm_api_key = _expect(lastfm, "lastfm", "api_key", str, "a string") or None

    # Parse [musicbrainz] section
    musicbrainz = data.get("musicbrainz", {})
    if "user_agent" in musicbrainz:
        value = _expect(musicbrainz, "musicbrainz", "user_agent", str, "a string")
        config.musicbrainz_user_agent = value or DEFAULT_USER_AGENT

    # Parse [backfill] section
    backfill = data.get("backfill", {})
    if "limit" in backfill:
        config.limit = _expect(backfill, "backfill", "limit", int, "an integer")
    if "dry_run" in backfill:
        config.dry_run = _expect(backfill, "backfill", "dry_run", bool, "a boolean")
    if "target_artist" in backfill:
        config.target_artist = _expect(backfill, "backfill", "target_artist", str, "a string")
    if "target_album" in backfill:
        config.target_album = _expect(backfill, "backfill", "target_album", str, "a string")
    if "report_path" in backfill:
        config.report_path = Path(
            _expect(backfill, "backfill", "report_path", str, "a string path")
        )
    if "request_timeout" in backfill:
        config.request_timeout = float(
            _expect(backfill, "backfill", "request_timeout", (int, float), "a number")
        )
    if "page_size" in backfill:
        config.page_size = _expect(backfill, "backfill", "page_size", int, "an integer")

    # Parse [display] section
    display = data.get("display", {})
    if "colored_output" in display:
        config.colored_output = _expect(display, "display", "colored_output", bool, "a boolean")

    return config


def apply_env_overrides(config: Config, env: Mapping[str, str]) -> None:
    """Apply environment variables on top of file settings.

    Raises:
        ConfigValidationError: If a numeric variable cannot be parsed.
    """
    if env.get("SPOTIFY_CLIENT_ID"):
        config.spotify_client_id = env["SPOTIFY_CLIENT_ID"].strip()
    if env.get("SPOTIFY_CLIENT_SECRET"):
        config.spotify_client_secret = env["SPOTIFY_CLIENT_SECRET"].strip()
    if env.get("LASTFM_API_KEY"):
        config.lastfm_api_key = env["LASTFM_API_KEY"].strip()
    if env.get("MUSICBRAINZ_USER_AGENT"):
        config.musicbrainz_user_agent = env["MUSICBRAINZ_USER_AGENT"].strip()
    if env.get("GENRE_BACKFILL_DB"):
        config.db_path = Path(env["GENRE_BACKFILL_DB"])

    if env.get("GENRE_BACKFILL_LIMIT"):
        value = env["GENRE_BACKFILL_LIMIT"]
        try:
            config.limit = int(value)
        except ValueError as e:
            raise ConfigValidationError("GENRE_BACKFILL_LIMIT", value, "must be an integer") from e

    if "DRY_RUN" in env:
        config.dry_run = env["DRY_RUN"].strip() == "1"
    if env.get("GENRE_TARGET_ARTIST"):
        config.target_artist = env["GENRE_TARGET_ARTIST"].strip()
    if env.get("GENRE_TARGET_ALBUM"):
        config.target_album = env["GENRE_TARGET_ALBUM"].strip()

    if env.get("GENRE_FETCH_TIMEOUT_MS"):
        value = env["GENRE_FETCH_TIMEOUT_MS"]
        try:
            config.request_timeout = int(value) / 1000.0
        except ValueError as e:
            raise ConfigValidationError(
                "GENRE_FETCH_TIMEOUT_MS", value, "must be an integer (milliseconds)"
            ) from e
