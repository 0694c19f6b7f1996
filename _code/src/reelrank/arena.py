"""Live judging session: the single owner of the mutable pool.

Judgments and undos are serialized: at most one mutation is in flight,
and a request arriving while another is being applied is rejected rather
than interleaved. Cosmetic merges (images fetched in the background) may
arrive at any time; they are applied field-by-field to whatever pool is
current, so they can never overwrite a concurrent rating update.
"""

from __future__ import annotations

import logging
import random
import threading
from collections.abc import Callable
from dataclasses import dataclass

import pandas as pd

from reelrank import analytics
from reelrank.engine_config import EngineConfig
from reelrank.leaderboard import HistogramBin, build_leaderboard, rating_histogram
from reelrank.ledger import apply_judgment, verify_ledger
from reelrank.matchmaker import Matchmaker, Pair
from reelrank.models import MatchRecord, Participant, Pool
from reelrank.simulation import Projection, Simulator, project
from reelrank.undo import UndoStack

logger = logging.getLogger(__name__)


class MutationInFlightError(Exception):
    """Raised when a judgment or undo arrives while another is being applied."""


@dataclass
class JudgmentResult:
    """Records written by one judgment and the pair now on offer."""

    winner_record: MatchRecord
    loser_record: MatchRecord
    next_pair: Pair


class Arena:
    """Owns the live pool, its undo history and the pair queue.

    Args:
        pool: Initial pool; the arena keeps its own copy.
        config: Engine configuration.
        rng: Random source for matchmaking. None is unseeded.
        on_enqueue: Forwarded to the Matchmaker; called with each pair of
            ids added to the lookahead queue.
    """

    def __init__(
        self,
        pool: Pool,
        config: EngineConfig = EngineConfig(),
        rng: random.Random | None = None,
        on_enqueue: Callable[[tuple[str, str]], None] | None = None,
    ):
        self.config = config
        self._pool = pool.copy()
        self._undo = UndoStack(config.undo.depth)
        self.matchmaker = Matchmaker(config.matchmaking, rng=rng, on_enqueue=on_enqueue)
        self._mutation_lock = threading.Lock()
        self._state_lock = threading.Lock()
        # Guards the matchmaker queue. Never held while taking the mutation lock.
        self._queue_lock = threading.Lock()

    @property
    def pool(self) -> Pool:
        """The live pool. Treat as read-only; use :meth:`snapshot` to keep it."""
        return self._pool

    @property
    def undo_depth(self) -> int:
        """Number of judgments that can currently be undone."""
        return len(self._undo)

    def snapshot(self) -> Pool:
        """Deep copy of the live pool, e.g. for the host's store."""
        with self._state_lock:
            return self._pool.copy()

    def _begin_mutation(self, action: str) -> None:
        if not self._mutation_lock.acquire(blocking=False):
            raise MutationInFlightError(f"cannot {action}: another mutation is in flight")

    def _swap(self, new_pool: Pool) -> None:
        """Install ``new_pool``, carrying over cosmetics set since it was copied."""
        with self._state_lock:
            for p in new_pool:
                if p.id in self._pool:
                    p.image_url = self._pool.get(p.id).image_url
            self._pool = new_pool

    # -- pairs ---------------------------------------------------------------

    def current_pair(self) -> Pair:
        """Pair currently offered for judgment.

        Raises:
            InsufficientDataError: If the pool has fewer than two participants.
        """
        with self._queue_lock:
            return self.matchmaker.current(self._pool)

    def upcoming(self) -> list[Pair]:
        with self._queue_lock:
            return self.matchmaker.upcoming(self._pool)

    def skip(self) -> Pair:
        """Discard the offered pair without judging it; returns the next one."""
        with self._queue_lock:
            return self.matchmaker.skip(self._pool)

    # -- mutations -----------------------------------------------------------

    def judge(
        self, winner_id: str, loser_id: str, timestamp: int | None = None
    ) -> JudgmentResult:
        """Apply one judgment.

        The pre-mutation pool is pushed onto the undo stack, ratings and
        ledgers are updated, and the pair queue advances.

        Raises:
            MutationInFlightError: If another judgment or undo is in progress.
            StaleReferenceError: If either id is not in the pool; nothing
                changes.
            ValueError: If both ids are the same.
        """
        self._begin_mutation("judge")
        try:
            with self._state_lock:
                working = self._pool.copy()
            # Applied to a copy; the live pool is the pre-mutation snapshot.
            winner_record, loser_record = apply_judgment(
                working, winner_id, loser_id, timestamp, self.config.k_factors
            )
            with self._state_lock:
                self._undo.push(self._pool)
            self._swap(working)
            with self._queue_lock:
                next_pair = self.matchmaker.advance(self._pool)
        finally:
            self._mutation_lock.release()

        return JudgmentResult(winner_record, loser_record, next_pair)

    def judge_current(self, winner_side: int, timestamp: int | None = None) -> JudgmentResult:
        """Judge the offered pair; ``winner_side`` is 0 or 1."""
        if winner_side not in (0, 1):
            raise ValueError(f"winner_side must be 0 or 1, got {winner_side}")
        i, j = self.current_pair()
        winner, loser = (i, j) if winner_side == 0 else (j, i)
        return self.judge(self._pool[winner].id, self._pool[loser].id, timestamp)

    def undo(self) -> bool:
        """Revert the most recent judgment.

        Cosmetic fields keep their current values.

        Returns:
            True if a judgment was reverted, False when there was nothing
            to undo.

        Raises:
            MutationInFlightError: If a judgment is being applied.
        """
        self._begin_mutation("undo")
        try:
            previous = self._undo.pop()
            if previous is None:
                return False
            self._swap(previous)
            logger.info("Undid last judgment (%d more available)", len(self._undo))
            return True
        finally:
            self._mutation_lock.release()

    def set_cosmetic(self, participant_id: str, image_url: str | None) -> bool:
        """Merge a fetched image into the live pool by id.

        Touches only the cosmetic field. Returns False for ids that are not
        in the pool.
        """
        with self._state_lock:
            if participant_id not in self._pool:
                logger.debug("Ignoring image for unknown participant %r", participant_id)
                return False
            self._pool.get(participant_id).image_url = image_url
            return True

    def new_participant(self, id: str, name: str, year: str = "", **kwargs) -> Participant:
        """Build a participant at the configured initial rating.

        The participant is not added to the live pool; the host stores it
        and starts a new arena over the extended pool.
        """
        return Participant.new(id, name, year, initial_elo=self.config.initial_elo, **kwargs)

    # -- projection ----------------------------------------------------------

    def simulator(self, seed: int | None = None) -> Simulator:
        """Projection simulator over a copy of the current pool."""
        return Simulator(
            self.snapshot(),
            seed=seed,
            config=self.config.simulation,
            tiers=self.config.k_factors,
        )

    def projection(self, rounds: int | None = None, seed: int | None = None) -> Projection:
        """Run a full projection with the configured simulation settings."""
        sim = self.config.simulation
        return project(
            self.snapshot(),
            rounds=sim.rounds if rounds is None else rounds,
            seed=seed,
            record_every=sim.record_every,
            perturbation=sim.perturbation,
            tiers=self.config.k_factors,
        )

    # -- analytics -----------------------------------------------------------

    def profile(self, participant_id: str) -> analytics.ParticipantStats:
        """Per-participant metrics using the configured windows.

        Raises:
            StaleReferenceError: If the id is not in the pool.
        """
        cfg = self.config.analytics
        return analytics.profile(
            self.snapshot().get(participant_id),
            window=cfg.volatility_window,
            baseline=cfg.volatility_baseline,
            clutch_threshold=cfg.clutch_threshold,
            full_at=cfg.confidence_full_at,
        )

    def trajectory(self, participant_id: str) -> list[float]:
        return analytics.trajectory(
            self.snapshot().get(participant_id), self.config.initial_elo
        )

    def superlatives(self) -> analytics.Superlatives:
        cfg = self.config.analytics
        return analytics.superlatives(
            self.snapshot(),
            min_matches=cfg.most_volatile_min_matches,
            window=cfg.volatility_window,
            baseline=cfg.volatility_baseline,
        )

    def leaderboard(self) -> pd.DataFrame:
        return build_leaderboard(self.snapshot(), self.config.initial_elo)

    def histogram(self) -> list[HistogramBin]:
        return rating_histogram(self.snapshot(), self.config.analytics.histogram_bin)

    def verify(self) -> dict[str, list[str]]:
        """Ledger violations by participant id; empty when all are consistent."""
        problems = {
            p.id: verify_ledger(p, self.config.initial_elo) for p in self.snapshot()
        }
        return {pid: found for pid, found in problems.items() if found}
