"""genre-backfill: resolve missing album genres from Spotify, Last.fm and MusicBrainz."""

__version__ = "0.1.0"
