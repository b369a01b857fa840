"""Utility modules for genre-backfill."""

from genre_backfill.utils.genres import (
    GenreTagSet,
    format_genre_value,
    normalize_genres,
)
from genre_backfill.utils.matching import (
    ScoringWeights,
    pick_best_artist,
    pick_best_match,
    score_name_similarity,
)
from genre_backfill.utils.text import (
    normalize_for_comparison,
    remove_diacritics,
    repair_mojibake,
    strip_featuring,
)

__all__ = [
    "GenreTagSet",
    "ScoringWeights",
    "format_genre_value",
    "normalize_for_comparison",
    "normalize_genres",
    "pick_best_artist",
    "pick_best_match",
    "remove_diacritics",
    "repair_mojibake",
    "score_name_similarity",
    "strip_featuring",
]
