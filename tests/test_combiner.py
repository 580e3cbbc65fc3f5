"""
Tests de la combinación de scores.
"""

from decimal import Decimal, ROUND_HALF_UP

import pytest

from tauschmatch.matching.combiner import MatchCombiner, ScoredCandidate, combine_scores

from conftest import make_listing


def candidate(listing_id: str, structured: int, semantic: int = 1, **reasons) -> ScoredCandidate:
    return ScoredCandidate(
        listing=make_listing(listing_id),
        structured_score=structured,
        semantic_score=semantic,
        **reasons,
    )


class TestCombineScores:
    def test_weighting(self):
        assert combine_scores(10, 10) == 10
        assert combine_scores(0, 0) == 0
        assert combine_scores(10, 0) == 6
        assert combine_scores(0, 10) == 4

    def test_rounding_near_boundaries(self):
        # 0.6 * 5 + 0.4 * 6 = 5.4
        assert combine_scores(5, 6) == 5
        # 0.6 * 4 + 0.4 * 8 = 5.6
        assert combine_scores(4, 8) == 6
        # 0.6 * 5 + 0.4 * 4 = 4.6
        assert combine_scores(5, 4) == 5
        # 0.6 * 8 + 0.4 * 1 = 5.2
        assert combine_scores(8, 1) == 5

    def test_exact_decimal_sum(self):
        # 0.6 * 7 + 0.4 * 2 = 5.0
        assert combine_scores(7, 2) == 5

    @pytest.mark.parametrize("structured", range(11))
    @pytest.mark.parametrize("semantic", range(11))
    def test_matches_decimal_half_up(self, structured, semantic):
        exact = Decimal("0.6") * structured + Decimal("0.4") * semantic
        expected = int(exact.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        assert combine_scores(structured, semantic) == expected


class TestMatchCombiner:
    def test_threshold_is_inclusive(self):
        combiner = MatchCombiner(min_score=5)
        # (5, 5) -> 5 entra ; (4, 5) -> 4.4 -> 4 queda afuera
        results = combiner.combine([candidate("in", 5, 5), candidate("out", 4, 5)], limit=10)

        assert [r.listing_id for r in results] == ["in"]
        assert results[0].score == 5

    def test_sorted_descending_and_stable(self):
        candidates = [
            candidate("a", 6, 6),
            candidate("b", 9, 9),
            candidate("c", 6, 6),
            candidate("d", 6, 6),
        ]
        results = MatchCombiner().combine(candidates, limit=10)

        assert [r.listing_id for r in results] == ["b", "a", "c", "d"]

    def test_truncates_to_limit(self):
        candidates = [candidate(f"l{i}", 8, 8) for i in range(5)]
        results = MatchCombiner().combine(candidates, limit=2)
        assert [r.listing_id for r in results] == ["l0", "l1"]

    def test_assembles_reason_breakdown(self):
        c = candidate(
            "a", 8, 7,
            their_structured=["Within your budget: €950 (your max: €1000)"],
            their_semantic=["You want light, and they offer a bright flat"],
            your_structured=["You have 3 rooms, and they want at least 2"],
            your_semantic=["You have a balcony, and they want outdoor space"],
        )
        result = MatchCombiner().combine([c], limit=1)[0]

        assert result.structured_score == 8
        assert result.semantic_score == 7
        assert result.score == 8
        assert result.reason_breakdown.their_apartment.structured == c.their_structured
        assert result.reason_breakdown.their_apartment.semantic == c.their_semantic
        assert result.reason_breakdown.your_apartment.structured == c.your_structured
        assert result.reason_breakdown.your_apartment.semantic == c.your_semantic
