"""Unit tests for candidate scoring and selection."""

from __future__ import annotations

import pytest

from genre_backfill.providers.models import AlbumCandidate, SpotifyArtist
from genre_backfill.utils.matching import (
    MatchRelation,
    ScoringWeights,
    classify_relation,
    pick_best_artist,
    pick_best_match,
    score_album_candidate,
    score_name_similarity,
)


class TestClassifyRelation:
    @pytest.mark.parametrize(
        ("candidate", "wanted", "expected"),
        [
            ("nevermind", "nevermind", MatchRelation.EXACT),
            ("nevermind remastered", "nevermind", MatchRelation.PREFIX),
            ("nevermind", "nevermind remastered", MatchRelation.PREFIX),
            ("the best of nevermind", "nevermind", MatchRelation.SUBSTRING),
            ("in utero", "nevermind", MatchRelation.NONE),
            ("", "nevermind", MatchRelation.NONE),
            ("nevermind", "", MatchRelation.NONE),
        ],
    )
    def test_relations(self, candidate, wanted, expected):
        assert classify_relation(candidate, wanted) is expected


class TestScoreAlbumCandidate:
    def test_exact_title_and_artist(self):
        candidate = AlbumCandidate("1", "Nevermind", "Nirvana", popularity=80)
        assert score_album_candidate(candidate, "nevermind", "nirvana") == pytest.approx(14.8)

    def test_artist_term_only_when_wanted(self):
        candidate = AlbumCandidate("1", "Nevermind", "Nirvana", popularity=0)
        assert score_album_candidate(candidate, "nevermind", "") == pytest.approx(8.0)

    def test_custom_weights(self):
        weights = ScoringWeights(title_exact=1.0, artist_exact=1.0, popularity_factor=0.0)
        candidate = AlbumCandidate("1", "Nevermind", "Nirvana", popularity=80)
        assert score_album_candidate(candidate, "nevermind", "nirvana", weights) == 2.0


class TestPickBestMatch:
    def test_prefers_exact_over_popular(self):
        exact = AlbumCandidate("a", "Nevermind", "Nirvana", popularity=10)
        popular = AlbumCandidate("b", "Nevermind (Deluxe)", "Tribute Band", popularity=100)
        assert pick_best_match([popular, exact], "Nevermind", "Nirvana") is exact

    def test_popularity_breaks_equal_relation(self):
        low = AlbumCandidate("a", "Nevermind", "Nirvana", popularity=10)
        high = AlbumCandidate("b", "Nevermind", "Nirvana", popularity=90)
        assert pick_best_match([low, high], "Nevermind", "Nirvana") is high

    def test_tie_keeps_first(self):
        first = AlbumCandidate("a", "Nevermind", "Nirvana", popularity=50)
        second = AlbumCandidate("b", "Nevermind", "Nirvana", popularity=50)
        assert pick_best_match([first, second], "Nevermind", "Nirvana") is first

    def test_normalizes_wanted_values(self):
        accented = AlbumCandidate("a", "Lodz", "Kult")
        other = AlbumCandidate("b", "Warszawa", "Kult")
        assert pick_best_match([other, accented], "ŁÓDŹ!", "kult") is accented

    def test_empty(self):
        assert pick_best_match([], "Nevermind", "Nirvana") is None


class TestArtistScoring:
    def test_name_similarity_terms(self):
        assert score_name_similarity("Nirvana", "nirvana") == 10
        assert score_name_similarity("Nirvana UK", "Nirvana") == 6
        assert score_name_similarity("The Nirvana Band", "Nirvana") == 3
        assert score_name_similarity("Pearl Jam", "Nirvana") == 0

    def test_name_similarity_empty_side(self):
        assert score_name_similarity("", "Nirvana") == 0
        assert score_name_similarity("Nirvana", "!!") == 0

    def test_pick_best_artist(self):
        cover = SpotifyArtist("x", "Nirvana Tribute", popularity=90)
        real = SpotifyArtist("y", "Nirvana", popularity=70)
        assert pick_best_artist([cover, real], "Nirvana") is real

    def test_pick_best_artist_empty(self):
        assert pick_best_artist([], "Nirvana") is None
