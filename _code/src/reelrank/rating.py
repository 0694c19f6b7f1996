"""Elo rating calculations with experience-tiered K-factors.

Pure math module with no I/O and no side effects.
Each side of a match uses its own K-factor, so a newcomer beating an
established participant gains a lot while the established one loses little.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from reelrank.engine_config import KFactorTiers

DEFAULT_TIERS = KFactorTiers()


@dataclass
class EloResult:
    """Result of an Elo rating update."""

    winner_new: int
    loser_new: int
    winner_delta: float
    loser_delta: float
    winner_k: float
    loser_k: float


def expected_score(elo_a: float, elo_b: float) -> float:
    """Compute expected score for player A against player B.

    Returns probability in [0, 1] that A wins.
    """
    return 1.0 / (1.0 + math.pow(10, (elo_b - elo_a) / 400.0))


def k_factor(matches: int, tiers: KFactorTiers = DEFAULT_TIERS) -> float:
    """K-factor for a participant with ``matches`` judged matches."""
    return tiers.for_matches(matches)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward positive infinity."""
    return math.floor(value + 0.5)


def calculate_new_ratings(
    winner_elo: float,
    winner_matches: int,
    loser_elo: float,
    loser_matches: int,
    tiers: KFactorTiers = DEFAULT_TIERS,
) -> tuple[int, int]:
    """Compute both sides' new ratings after a win/loss.

    Args:
        winner_elo: Current rating of the winner.
        winner_matches: Matches the winner has played before this one.
        loser_elo: Current rating of the loser.
        loser_matches: Matches the loser has played before this one.
        tiers: K-factor tiers.

    Returns:
        (new_winner_elo, new_loser_elo), each rounded half up. For a very
        lopsided pair the adjustment can round to no change.
    """
    expected_winner = expected_score(winner_elo, loser_elo)
    expected_loser = expected_score(loser_elo, winner_elo)

    new_winner = winner_elo + k_factor(winner_matches, tiers) * (1.0 - expected_winner)
    new_loser = loser_elo + k_factor(loser_matches, tiers) * (0.0 - expected_loser)

    return round_half_up(new_winner), round_half_up(new_loser)


def compute_elo(
    winner_elo: float,
    winner_matches: int,
    loser_elo: float,
    loser_matches: int,
    tiers: KFactorTiers = DEFAULT_TIERS,
) -> EloResult:
    """Like :func:`calculate_new_ratings`, with deltas and K-factors."""
    winner_new, loser_new = calculate_new_ratings(
        winner_elo, winner_matches, loser_elo, loser_matches, tiers
    )
    return EloResult(
        winner_new=winner_new,
        loser_new=loser_new,
        winner_delta=winner_new - winner_elo,
        loser_delta=loser_new - loser_elo,
        winner_k=k_factor(winner_matches, tiers),
        loser_k=k_factor(loser_matches, tiers),
    )
