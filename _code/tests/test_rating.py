"""Tests for Elo rating calculations."""

import pytest

from reelrank.engine_config import KFactorTiers
from reelrank.rating import (
    EloResult,
    calculate_new_ratings,
    compute_elo,
    expected_score,
    k_factor,
    round_half_up,
)


class TestExpectedScore:
    def test_equal_elo(self):
        assert expected_score(1200, 1200) == 0.5

    def test_higher_elo_favored(self):
        assert expected_score(1400, 1200) > 0.5

    def test_lower_elo_disadvantaged(self):
        assert expected_score(1000, 1200) < 0.5

    def test_symmetry(self):
        s_a = expected_score(1300, 1100)
        s_b = expected_score(1100, 1300)
        assert abs(s_a + s_b - 1.0) < 1e-10

    def test_large_gap(self):
        # 400-point gap -> ~91% expected
        score = expected_score(1600, 1200)
        assert 0.90 < score < 0.92


class TestKFactor:
    @pytest.mark.parametrize(
        "matches,expected",
        [(0, 80), (4, 80), (5, 40), (14, 40), (15, 20), (200, 20)],
    )
    def test_tier_boundaries(self, matches, expected):
        assert k_factor(matches) == expected

    def test_custom_tiers(self):
        tiers = KFactorTiers(placement=64, placement_matches=2)
        assert k_factor(1, tiers) == 64
        assert k_factor(2, tiers) == 40


class TestRoundHalfUp:
    def test_halves_round_up(self):
        assert round_half_up(1240.5) == 1241
        assert round_half_up(-0.5) == 0

    def test_below_half_rounds_down(self):
        assert round_half_up(997.49) == 997


class TestCalculateNewRatings:
    def test_placement_equal_ratings(self):
        assert calculate_new_ratings(1200, 0, 1200, 0) == (1240, 1160)

    def test_established_favourite_wins(self):
        assert calculate_new_ratings(1400, 20, 1000, 20) == (1402, 998)

    def test_independent_k_factors(self):
        # Newcomer (K=80) beats an established participant (K=20)
        new_winner, new_loser = calculate_new_ratings(1200, 0, 1200, 30)
        assert new_winner == 1240
        assert new_loser == 1190

    def test_upset_moves_more(self):
        upset_winner, _ = calculate_new_ratings(1000, 20, 1400, 20)
        favourite_winner, _ = calculate_new_ratings(1400, 20, 1000, 20)
        assert upset_winner - 1000 > favourite_winner - 1400

    @pytest.mark.parametrize(
        "winner,loser",
        [(1200, 1200), (1600, 1000), (1000, 1600), (1410, 1390), (-100, 300)],
    )
    @pytest.mark.parametrize("matches", [0, 7, 40])
    def test_winner_strictly_up_loser_strictly_down(self, winner, loser, matches):
        new_winner, new_loser = calculate_new_ratings(winner, matches, loser, matches)
        assert new_winner > winner
        assert new_loser < loser

    def test_lopsided_win_rounds_to_no_change(self):
        # E(2000 vs 1000) ~ 0.9968, so K=20 moves each side ~0.06 points
        assert calculate_new_ratings(2000, 20, 1000, 20) == (2000, 1000)

    @pytest.mark.parametrize("winner,loser", [(3000, 0), (2500, -500), (0, 3000)])
    def test_never_moves_the_wrong_way(self, winner, loser):
        new_winner, new_loser = calculate_new_ratings(winner, 40, loser, 40)
        assert new_winner >= winner
        assert new_loser <= loser

    def test_matches_unrounded_formula(self):
        e = 1 / (1 + 10 ** ((1100 - 1300) / 400))
        expected_winner = round_half_up(1300 + 40 * (1 - e))
        expected_loser = round_half_up(1100 - 40 * (1 - e))
        assert calculate_new_ratings(1300, 10, 1100, 10) == (expected_winner, expected_loser)

    def test_ratings_may_go_negative(self):
        _, new_loser = calculate_new_ratings(0, 0, 10, 0)
        assert new_loser < 0

    def test_returns_integers(self):
        new_winner, new_loser = calculate_new_ratings(1234.7, 3, 1187.2, 9)
        assert isinstance(new_winner, int)
        assert isinstance(new_loser, int)


class TestComputeElo:
    def test_returns_elo_result(self):
        result = compute_elo(1200, 0, 1200, 0)
        assert isinstance(result, EloResult)

    def test_deltas_and_k(self):
        result = compute_elo(1200, 0, 1200, 20)
        assert result.winner_delta == 40
        assert result.loser_delta == -10
        assert result.winner_k == 80
        assert result.loser_k == 20
