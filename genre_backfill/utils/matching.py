"""Candidate scoring for provider search results.

Scores are additive: a title term, an artist term and a small popularity
nudge. The weights were tuned by hand against the catalogue and live in
``ScoringWeights`` so they can be adjusted without touching the logic.
"""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, TypeVar

from genre_backfill.utils.text import normalize_for_comparison


class AlbumLike(Protocol):
    title: str
    artist: str
    popularity: float


class ArtistLike(Protocol):
    name: str
    popularity: float


AlbumT = TypeVar("AlbumT", bound=AlbumLike)
ArtistT = TypeVar("ArtistT", bound=ArtistLike)


@dataclass(frozen=True)
class ScoringWeights:
    """Tunable scoring constants."""

    title_exact: float = 8.0
    title_prefix: float = 5.0
    title_substring: float = 3.0
    artist_exact: float = 6.0
    artist_prefix: float = 3.0
    artist_substring: float = 2.0
    name_exact: float = 10.0
    name_prefix: float = 6.0
    name_substring: float = 3.0
    popularity_factor: float = 0.01
    relevance_divisor: float = 20.0


DEFAULT_WEIGHTS = ScoringWeights()


# ---------------------------------------------------------------------------
# Relation classification
# ---------------------------------------------------------------------------


class MatchRelation(enum.Enum):
    """How two normalized strings relate to each other."""

    EXACT = "exact"
    PREFIX = "prefix"
    SUBSTRING = "substring"
    NONE = "none"


def classify_relation(candidate: str, wanted: str) -> MatchRelation:
    """Classify two already-normalized strings.

    Prefix and substring are checked in both directions, so a wanted
    title that is a longer form of the candidate still counts. An empty
    side never matches.
    """
    if not candidate or not wanted:
        return MatchRelation.NONE
    if candidate == wanted:
        return MatchRelation.EXACT
    if candidate.startswith(wanted) or wanted.startswith(candidate):
        return MatchRelation.PREFIX
    if wanted in candidate or candidate in wanted:
        return MatchRelation.SUBSTRING
    return MatchRelation.NONE


def _relation_score(
    relation: MatchRelation, exact: float, prefix: float, substring: float
) -> float:
    if relation is MatchRelation.EXACT:
        return exact
    if relation is MatchRelation.PREFIX:
        return prefix
    if relation is MatchRelation.SUBSTRING:
        return substring
    return 0.0


def _popularity(value: float | None) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


# ---------------------------------------------------------------------------
# Standalone scoring functions
# ---------------------------------------------------------------------------


def score_album_candidate(
    candidate: AlbumLike,
    wanted_title: str,
    wanted_artist: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Score one album candidate against normalized wanted title/artist."""
    title = normalize_for_comparison(candidate.title)
    artist = normalize_for_comparison(candidate.artist)

    score = _relation_score(
        classify_relation(title, wanted_title),
        weights.title_exact,
        weights.title_prefix,
        weights.title_substring,
    )
    if wanted_artist:
        score += _relation_score(
            classify_relation(artist, wanted_artist),
            weights.artist_exact,
            weights.artist_prefix,
            weights.artist_substring,
        )
    return score + _popularity(candidate.popularity) * weights.popularity_factor


def score_name_similarity(
    candidate_name: str,
    wanted_name: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Name-only similarity term; 0 when either side normalizes to nothing."""
    return _relation_score(
        classify_relation(
            normalize_for_comparison(candidate_name), normalize_for_comparison(wanted_name)
        ),
        weights.name_exact,
        weights.name_prefix,
        weights.name_substring,
    )


def score_artist_candidate(
    candidate: ArtistLike,
    wanted_name: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Name similarity plus the popularity nudge."""
    return score_name_similarity(candidate.name, wanted_name, weights) + (
        _popularity(candidate.popularity) * weights.popularity_factor
    )


# ---------------------------------------------------------------------------
# Best-match selection
# ---------------------------------------------------------------------------


def pick_best_match(
    candidates: Sequence[AlbumT],
    wanted_title: str,
    wanted_artist: str | None = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> AlbumT | None:
    """Return the highest-scoring album candidate.

    Ties keep the earliest candidate, so callers should pass candidates
    in discovery order. Returns None for an empty list.
    """
    title = normalize_for_comparison(wanted_title)
    artist = normalize_for_comparison(wanted_artist)

    best: AlbumT | None = None
    best_score = float("-inf")
    for candidate in candidates:
        score = score_album_candidate(candidate, title, artist, weights)
        if score > best_score:
            best = candidate
            best_score = score
    return best


def pick_best_artist(
    candidates: Sequence[ArtistT],
    wanted_name: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ArtistT | None:
    """Return the highest-scoring artist candidate (first wins on ties)."""
    best: ArtistT | None = None
    best_score = float("-inf")
    for candidate in candidates:
        score = score_artist_candidate(candidate, wanted_name, weights)
        if score > best_score:
            best = candidate
            best_score = score
    return best
