"""Per-participant match ledger.

Every judged match appends one reciprocal MatchRecord to each side. The
ledger is append-only: records are never reordered or rewritten, and a
participant's rating can always be rebuilt by replaying its records.
"""

from __future__ import annotations

import logging
import time

from reelrank.engine_config import KFactorTiers
from reelrank.models import INITIAL_ELO, LOSS, WIN, MatchRecord, Participant, Pool
from reelrank.rating import DEFAULT_TIERS, calculate_new_ratings

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def _check_order(participant: Participant, timestamp: int) -> None:
    if participant.history and timestamp < participant.history[-1].timestamp:
        raise ValueError(
            f"timestamp {timestamp} precedes last record of {participant.id!r}"
        )


def record(
    winner: Participant,
    loser: Participant,
    new_winner_elo: float,
    new_loser_elo: float,
    timestamp: int,
) -> tuple[MatchRecord, MatchRecord]:
    """Append reciprocal records and apply the new ratings.

    Each record stores the opponent's rating from before the match. Counts
    are bumped alongside the history so ``matches == wins + losses``
    keeps holding.

    Args:
        winner: Winning participant (mutated in place).
        loser: Losing participant (mutated in place).
        new_winner_elo: Winner's rating after the match.
        new_loser_elo: Loser's rating after the match.
        timestamp: Milliseconds since the epoch.

    Returns:
        (winner_record, loser_record).

    Raises:
        ValueError: If the timestamp is older than either side's last record.
    """
    _check_order(winner, timestamp)
    _check_order(loser, timestamp)

    winner_before = winner.elo
    loser_before = loser.elo

    winner_record = MatchRecord(
        timestamp=timestamp,
        opponent_id=loser.id,
        opponent_name=loser.name,
        opponent_elo=loser_before,
        result=WIN,
        elo_change=new_winner_elo - winner_before,
        new_elo=new_winner_elo,
    )
    loser_record = MatchRecord(
        timestamp=timestamp,
        opponent_id=winner.id,
        opponent_name=winner.name,
        opponent_elo=winner_before,
        result=LOSS,
        elo_change=new_loser_elo - loser_before,
        new_elo=new_loser_elo,
    )

    winner.elo = new_winner_elo
    winner.matches += 1
    winner.wins += 1
    winner.history.append(winner_record)

    loser.elo = new_loser_elo
    loser.matches += 1
    loser.losses += 1
    loser.history.append(loser_record)

    return winner_record, loser_record


def apply_judgment(
    pool: Pool,
    winner_id: str,
    loser_id: str,
    timestamp: int | None = None,
    tiers: KFactorTiers = DEFAULT_TIERS,
) -> tuple[MatchRecord, MatchRecord]:
    """Rate one judged pair and record it in both ledgers.

    Both ids are resolved before anything is touched, so a stale id leaves
    the pool unchanged.

    Raises:
        StaleReferenceError: If either id is not in the pool.
        ValueError: If the winner and loser are the same participant.
    """
    if winner_id == loser_id:
        raise ValueError(f"participant cannot play itself: {winner_id!r}")
    winner = pool.get(winner_id)
    loser = pool.get(loser_id)

    new_winner_elo, new_loser_elo = calculate_new_ratings(
        winner.elo, winner.matches, loser.elo, loser.matches, tiers
    )
    records = record(
        winner,
        loser,
        new_winner_elo,
        new_loser_elo,
        now_ms() if timestamp is None else timestamp,
    )
    logger.info(
        "%s beat %s: %s -> %s / %s -> %s",
        winner.name,
        loser.name,
        records[0].elo_before,
        new_winner_elo,
        records[1].elo_before,
        new_loser_elo,
    )
    return records


def replay(participant: Participant, initial_elo: float = INITIAL_ELO) -> list[float]:
    """Rebuild the rating trajectory by summing ledger deltas.

    Returns the initial rating followed by the rating after each match.
    Legacy participants start from the rating they held before their
    first recorded match.
    """
    if participant.legacy and participant.history:
        initial_elo = participant.history[0].elo_before
    ratings = [initial_elo]
    for rec in participant.history:
        ratings.append(ratings[-1] + rec.elo_change)
    return ratings


def verify_ledger(
    participant: Participant, initial_elo: float = INITIAL_ELO
) -> list[str]:
    """Check a participant's ledger invariants.

    Returns:
        Human-readable violations; empty when the ledger is consistent.
        For legacy participants the history only covers recent matches:
        it may be shorter than the counts, and its chain starts from the
        first record's pre-match rating instead of ``initial_elo``.
    """
    problems: list[str] = []
    p = participant
    if p.matches != p.wins + p.losses:
        problems.append(
            f"matches ({p.matches}) != wins + losses ({p.wins + p.losses})"
        )

    wins = sum(1 for r in p.history if r.won)
    if p.legacy:
        if len(p.history) > p.matches:
            problems.append(
                f"len(history) ({len(p.history)}) exceeds matches ({p.matches})"
            )
        if wins > p.wins:
            problems.append(f"WIN records ({wins}) exceed wins ({p.wins})")
        if not p.history:
            return problems
        previous = p.history[0].elo_before
    else:
        if p.matches != len(p.history):
            problems.append(
                f"matches ({p.matches}) != len(history) ({len(p.history)})"
            )
        if wins != p.wins:
            problems.append(f"wins ({p.wins}) != WIN records ({wins})")
        previous = initial_elo

    last_ts: int | None = None
    for n, rec in enumerate(p.history):
        if last_ts is not None and rec.timestamp < last_ts:
            problems.append(f"record {n} out of chronological order")
        last_ts = rec.timestamp
        if rec.elo_before != previous:
            problems.append(
                f"record {n} starts at {rec.elo_before}, expected {previous}"
            )
        if rec.won and rec.elo_change < 0:
            problems.append(f"record {n} is a WIN with negative delta")
        if not rec.won and rec.elo_change > 0:
            problems.append(f"record {n} is a LOSS with positive delta")
        previous = rec.new_elo

    if p.history and p.history[-1].new_elo != p.elo:
        problems.append(
            f"current rating {p.elo} != last record {p.history[-1].new_elo}"
        )
    return problems
