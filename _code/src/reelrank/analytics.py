"""Derived statistics over participant ledgers.

Read-only: nothing here mutates a participant or a pool. Every metric is
total: an empty ledger or a zero denominator yields 0 rather than an
error.
"""

from __future__ import annotations

from dataclasses import dataclass

from reelrank.models import INITIAL_ELO, MatchRecord, Participant, Pool


@dataclass
class ParticipantStats:
    """All per-participant metrics in one bundle."""

    id: str
    name: str
    elo: float
    peak: float
    trough: float
    win_rate: float
    volatility: float
    clutch: float
    confidence: float
    longest_streak: int


@dataclass
class Upset:
    """A win by the lower-rated side, sized by the pre-match gap."""

    winner_id: str
    winner_name: str
    loser_id: str
    loser_name: str
    winner_elo_before: float
    loser_elo_before: float
    gap: float
    timestamp: int


@dataclass
class Streak:
    """Longest run of consecutive wins for one participant."""

    participant_id: str
    name: str
    length: int


@dataclass
class Superlatives:
    """Pool-wide records. Each field is None when nothing qualifies."""

    biggest_upset: Upset | None
    longest_streak: Streak | None
    most_volatile: tuple[Participant, float] | None


def _chronological(p: Participant) -> list[MatchRecord]:
    return sorted(p.history, key=lambda r: r.timestamp)


# ---------------------------------------------------------------------------
# Per-participant metrics
# ---------------------------------------------------------------------------


def trajectory(p: Participant, initial_elo: float = INITIAL_ELO) -> list[float]:
    """Rating path: the starting rating, then each record's resulting rating.

    The starting rating is read back from the first record, so a legacy
    participant judged since starts at its pre-ledger rating. A legacy
    participant with no records has path ``initial_elo`` then the current
    rating.
    """
    records = _chronological(p)
    if not records:
        return [initial_elo, p.elo] if p.legacy else [p.elo]
    return [records[0].elo_before] + [r.new_elo for r in records]


def peak(p: Participant) -> float:
    """Highest rating observed.

    Legacy participants with no records report the current rating.
    """
    if p.legacy and not p.history:
        return p.elo
    return max(trajectory(p))


def trough(p: Participant) -> float:
    """Lowest rating observed; see :func:`peak` for legacy participants."""
    if p.legacy and not p.history:
        return p.elo
    return min(trajectory(p))


def win_rate(p: Participant) -> float:
    """Wins as a percentage of matches."""
    if p.matches == 0:
        return 0.0
    return p.wins * 100 / p.matches


def volatility(p: Participant, window: int = 10, baseline: float = 20) -> float:
    """Recent swing size on a 0-100 scale.

    Mean absolute rating change over the last ``window`` records, divided
    by ``baseline`` (the established-tier K-factor), as a percentage
    capped at 100.
    """
    recent = _chronological(p)[-window:]
    if not recent or baseline <= 0:
        return 0.0
    mean_swing = sum(abs(r.elo_change) for r in recent) / len(recent)
    return min(mean_swing * 100 / baseline, 100.0)


def clutch_factor(p: Participant, threshold: float = 50) -> float:
    """Win percentage in close matches (pre-match gap below ``threshold``)."""
    close = [r for r in p.history if abs(r.elo_before - r.opponent_elo) < threshold]
    if not close:
        return 0.0
    return sum(1 for r in close if r.won) * 100 / len(close)


def confidence(p: Participant, full_at: int = 20) -> float:
    """Reliability proxy growing with experience, as a percentage."""
    return min(p.matches * 100 / full_at, 100.0)


def longest_streak(p: Participant) -> int:
    """Longest run of consecutive wins in chronological order."""
    best = run = 0
    for r in _chronological(p):
        run = run + 1 if r.won else 0
        best = max(best, run)
    return best


def profile(
    p: Participant,
    window: int = 10,
    baseline: float = 20,
    clutch_threshold: float = 50,
    full_at: int = 20,
) -> ParticipantStats:
    """Compute every per-participant metric."""
    return ParticipantStats(
        id=p.id,
        name=p.name,
        elo=p.elo,
        peak=peak(p),
        trough=trough(p),
        win_rate=win_rate(p),
        volatility=volatility(p, window, baseline),
        clutch=clutch_factor(p, clutch_threshold),
        confidence=confidence(p, full_at),
        longest_streak=longest_streak(p),
    )


# ---------------------------------------------------------------------------
# Pool-wide superlatives
# ---------------------------------------------------------------------------


def biggest_upset(pool: Pool) -> Upset | None:
    """The win with the largest pre-match rating deficit.

    Scans winners' records only, so each match is considered once.
    """
    best: Upset | None = None
    for p in pool:
        for r in p.history:
            if not r.won:
                continue
            gap = r.opponent_elo - r.elo_before
            if gap <= 0 or (best is not None and gap <= best.gap):
                continue
            best = Upset(
                winner_id=p.id,
                winner_name=p.name,
                loser_id=r.opponent_id,
                loser_name=r.opponent_name,
                winner_elo_before=r.elo_before,
                loser_elo_before=r.opponent_elo,
                gap=gap,
                timestamp=r.timestamp,
            )
    return best


def longest_streak_holder(pool: Pool) -> Streak | None:
    """Participant with the longest win streak; earliest in pool order on ties."""
    best: Streak | None = None
    for p in pool:
        length = longest_streak(p)
        if length > 0 and (best is None or length > best.length):
            best = Streak(participant_id=p.id, name=p.name, length=length)
    return best


def most_volatile(
    pool: Pool,
    min_matches: int = 5,
    window: int = 10,
    baseline: float = 20,
) -> tuple[Participant, float] | None:
    """Highest-volatility participant with more than ``min_matches`` matches."""
    best: tuple[Participant, float] | None = None
    for p in pool:
        if p.matches <= min_matches:
            continue
        score = volatility(p, window, baseline)
        if best is None or score > best[1]:
            best = (p, score)
    return best


def superlatives(
    pool: Pool,
    min_matches: int = 5,
    window: int = 10,
    baseline: float = 20,
) -> Superlatives:
    """Bundle the pool-wide records."""
    return Superlatives(
        biggest_upset=biggest_upset(pool),
        longest_streak=longest_streak_holder(pool),
        most_volatile=most_volatile(pool, min_matches, window, baseline),
    )
