"""Monte-Carlo projection of long-run rankings.

Runs Swiss-style rounds over a working copy of the pool: participants are
sorted by a lightly perturbed rating, adjacent neighbours are paired, and
each match is decided by a draw against the Elo expected score. Ratings
and counts advance through the normal rating model, but no MatchRecords
are written, so the live ledger is never touched.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from reelrank.engine_config import KFactorTiers, SimulationConfig
from reelrank.models import Participant, Pool
from reelrank.rating import DEFAULT_TIERS, calculate_new_ratings, expected_score

logger = logging.getLogger(__name__)


@dataclass
class SimulationStep:
    """Pool state after a given round."""

    round: int
    pool: Pool


def _play(winner: Participant, loser: Participant, tiers: KFactorTiers) -> None:
    new_winner, new_loser = calculate_new_ratings(
        winner.elo, winner.matches, loser.elo, loser.matches, tiers
    )
    winner.elo = new_winner
    winner.matches += 1
    winner.wins += 1
    loser.elo = new_loser
    loser.matches += 1
    loser.losses += 1


def run_round(
    pool: Pool,
    rng: random.Random | None = None,
    perturbation: float = 5.0,
    tiers: KFactorTiers = DEFAULT_TIERS,
) -> Pool:
    """Play one Swiss round on a copy of ``pool``.

    Args:
        pool: Starting state; left unmodified.
        rng: Source for the sort perturbation and match outcomes. None
            uses an unseeded generator.
        perturbation: Half-width of the uniform noise added to each
            participant's sort key.
        tiers: K-factor tiers for rating updates.

    Returns:
        A new Pool in the same participant order as the input.
    """
    if rng is None:
        rng = random.Random()
    working = pool.copy()

    keyed = [
        (p.elo + rng.uniform(-perturbation, perturbation), n)
        for n, p in enumerate(working)
    ]
    keyed.sort(key=lambda item: item[0], reverse=True)
    order = [working[n] for _, n in keyed]

    paired: set[str] = set()
    for a, b in zip(order, order[1:]):
        if a.id in paired or b.id in paired:
            continue
        paired.add(a.id)
        paired.add(b.id)

        if rng.random() < expected_score(a.elo, b.elo):
            _play(a, b, tiers)
        else:
            _play(b, a, tiers)

    return working


@dataclass
class Projection:
    """Outcome of a multi-round projection.

    Attributes:
        rounds: Number of rounds played.
        pool: Final projected pool.
        trajectories: Per-participant ``(round, elo)`` points, starting at
            round 0 with the input rating.
    """

    rounds: int
    pool: Pool
    trajectories: dict[str, list[tuple[int, float]]] = field(default_factory=dict)

    def ranking(self) -> list[str]:
        """Participant ids ordered by projected rating, best first."""
        return [p.id for p in sorted(self.pool, key=lambda p: p.elo, reverse=True)]

    def rank_shifts(self, initial: Pool) -> dict[str, int]:
        """Places gained (positive) or lost per id versus ``initial``."""
        before = {
            p.id: n for n, p in enumerate(sorted(initial, key=lambda p: p.elo, reverse=True))
        }
        return {pid: before[pid] - n for n, pid in enumerate(self.ranking()) if pid in before}


def project(
    pool: Pool,
    rounds: int = 100,
    seed: int | None = None,
    record_every: int = 1,
    perturbation: float = 5.0,
    tiers: KFactorTiers = DEFAULT_TIERS,
) -> Projection:
    """Run ``rounds`` simulation rounds and collect rating trajectories.

    Args:
        pool: Starting state; left unmodified.
        rounds: Number of rounds to play.
        seed: Seed for reproducible runs. None is unseeded.
        record_every: Record a trajectory point every N rounds; the final
            round is always recorded.
        perturbation: Sort-key noise half-width.
        tiers: K-factor tiers.
    """
    rng = random.Random(seed)
    trajectories = {p.id: [(0, p.elo)] for p in pool}
    current = pool
    for n in range(1, rounds + 1):
        current = run_round(current, rng, perturbation, tiers)
        if n % record_every == 0 or n == rounds:
            for p in current:
                trajectories[p.id].append((n, p.elo))
    logger.debug("Projected %d rounds over %d participants", rounds, len(pool))
    return Projection(rounds=rounds, pool=current.copy(), trajectories=trajectories)


class Simulator:
    """Steppable projection for interactive hosts.

    Each :meth:`step` plays exactly one complete round, so a host can run
    one round per tick and stay responsive.
    """

    def __init__(
        self,
        pool: Pool,
        seed: int | None = None,
        config: SimulationConfig = SimulationConfig(),
        tiers: KFactorTiers = DEFAULT_TIERS,
    ):
        self._initial = pool.copy()
        self._seed = seed
        self.config = config
        self.tiers = tiers
        self.rng = random.Random(seed)
        self.pool = self._initial.copy()
        self.round = 0

    def step(self) -> SimulationStep:
        """Play one round and return the resulting state."""
        self.pool = run_round(self.pool, self.rng, self.config.perturbation, self.tiers)
        self.round += 1
        return SimulationStep(round=self.round, pool=self.pool)

    def run(self, rounds: int | None = None) -> SimulationStep:
        """Play several rounds; defaults to the configured round count."""
        for _ in range(self.config.rounds if rounds is None else rounds):
            self.step()
        return SimulationStep(round=self.round, pool=self.pool)

    def reset(self) -> None:
        """Return to the starting pool and re-seed the generator."""
        self.rng = random.Random(self._seed)
        self.pool = self._initial.copy()
        self.round = 0
