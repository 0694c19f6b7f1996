"""Pair selection for live judging.

Mixes uniform random pairs (variety) with rating-proximity pairs
(informative close matches). The Matchmaker keeps a short lookahead queue
so the host can prefetch cosmetics for upcoming pairs; the queue is a
presentation optimization only.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from collections.abc import Callable, Sequence

from reelrank.engine_config import MatchmakingConfig
from reelrank.models import Pool

logger = logging.getLogger(__name__)

Pair = tuple[int, int]


class InsufficientDataError(Exception):
    """Raised when the pool is too small to form a pair."""


def _closest_opponent(
    pool: Pool, i: int, rng: random.Random, config: MatchmakingConfig
) -> int:
    """Pick uniformly among the closest-rated of a random candidate sample."""
    others = [k for k in range(len(pool)) if k != i]
    sample = rng.sample(others, min(config.proximity_sample, len(others)))
    target = pool[i].elo
    sample.sort(key=lambda k: abs(pool[k].elo - target))
    top_k = min(config.closest_pick, len(sample))
    return rng.choice(sample[:top_k])


def next_pair(
    pool: Pool,
    recent_pairs: Sequence[Pair] = (),
    rng: random.Random | None = None,
    config: MatchmakingConfig = MatchmakingConfig(),
) -> Pair:
    """Select the next pair of pool indices to judge.

    Args:
        pool: Participants to draw from.
        recent_pairs: Pairs served so far, most recent last. Repeating the
            most recent pair is avoided when retries allow; it is not a
            hard constraint.
        rng: Random source. None uses a fresh unseeded generator.
        config: Matchmaking settings.

    Returns:
        (i, j) with ``i != j``.

    Raises:
        InsufficientDataError: If the pool has fewer than two participants.
    """
    n = len(pool)
    if n < 2:
        raise InsufficientDataError(f"need at least 2 participants, pool has {n}")
    if rng is None:
        rng = random.Random()

    last = frozenset(recent_pairs[-1]) if recent_pairs else None

    i = rng.randrange(n)
    if rng.random() < config.proximity_probability:
        j = _closest_opponent(pool, i, rng, config)
    else:
        j = rng.randrange(n)

    for _ in range(config.max_retries):
        if j != i and frozenset((i, j)) != last:
            break
        j = rng.randrange(n)

    if j == i:
        # Uniform over the other n - 1 indices.
        j = rng.randrange(n - 1)
        if j >= i:
            j += 1

    return i, j


class Matchmaker:
    """Serves pairs from a fixed-depth lookahead queue.

    Queued pairs are stored by participant id and resolved to indices of
    the pool at access time, so the queue survives the pool being replaced
    by an updated value (after a judgment or an undo).

    Args:
        config: Matchmaking settings (queue depth, proximity policy).
        rng: Random source. None uses an unseeded generator.
        on_enqueue: Called with ``(id_a, id_b)`` for each pair added to the
            queue; typically used to prefetch images.
    """

    def __init__(
        self,
        config: MatchmakingConfig = MatchmakingConfig(),
        rng: random.Random | None = None,
        on_enqueue: Callable[[tuple[str, str]], None] | None = None,
    ):
        self.config = config
        self.rng = rng if rng is not None else random.Random()
        self.on_enqueue = on_enqueue
        self._queue: deque[tuple[str, str]] = deque()
        self._served: deque[Pair] = deque(maxlen=config.queue_depth)

    def __len__(self) -> int:
        return len(self._queue)

    def _drop_stale(self, pool: Pool) -> None:
        kept = [(a, b) for a, b in self._queue if a in pool and b in pool]
        if len(kept) != len(self._queue):
            logger.debug("Dropped %d stale queued pairs", len(self._queue) - len(kept))
            self._queue = deque(kept)

    def _fill(self, pool: Pool) -> None:
        self._drop_stale(pool)
        while len(self._queue) < self.config.queue_depth:
            i, j = next_pair(pool, list(self._served), self.rng, self.config)
            self._served.append((i, j))
            pair = (pool[i].id, pool[j].id)
            self._queue.append(pair)
            logger.debug("Queued pair %s vs %s", *pair)
            if self.on_enqueue is not None:
                self.on_enqueue(pair)

    def current(self, pool: Pool) -> Pair:
        """Return the pair at the front of the queue, filling it if needed.

        Raises:
            InsufficientDataError: If the pool has fewer than two participants.
        """
        self._fill(pool)
        a, b = self._queue[0]
        return pool.index_of(a), pool.index_of(b)

    def advance(self, pool: Pool) -> Pair:
        """Discard the front pair and return the new front."""
        self._drop_stale(pool)
        if self._queue:
            self._queue.popleft()
        return self.current(pool)

    def skip(self, pool: Pool) -> Pair:
        """Discard the current pair without judging it."""
        if self._queue:
            logger.info("Skipped pair %s vs %s", *self._queue[0])
        return self.advance(pool)

    def upcoming(self, pool: Pool) -> list[Pair]:
        """All queued pairs as pool indices, front first."""
        self._fill(pool)
        return [(pool.index_of(a), pool.index_of(b)) for a, b in self._queue]

    def reset(self) -> None:
        """Forget queued and recently served pairs."""
        self._queue.clear()
        self._served.clear()
