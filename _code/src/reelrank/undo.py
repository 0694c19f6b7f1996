"""Bounded undo history of whole-pool snapshots."""

from __future__ import annotations

import logging
from collections import deque

from reelrank.models import Pool

logger = logging.getLogger(__name__)


class UndoStack:
    """Last-in-first-out store of pool snapshots.

    Snapshots are deep copies taken before each mutating judgment. Once
    ``depth`` snapshots are held, pushing another silently discards the
    oldest.
    """

    def __init__(self, depth: int = 10):
        if depth < 1:
            raise ValueError(f"depth must be >= 1, got {depth}")
        self.depth = depth
        self._snapshots: deque[Pool] = deque(maxlen=depth)

    def __len__(self) -> int:
        return len(self._snapshots)

    def __bool__(self) -> bool:
        return bool(self._snapshots)

    def push(self, pool: Pool) -> None:
        """Store a deep copy of ``pool``."""
        if len(self._snapshots) == self.depth:
            logger.debug("Undo history full (%d), dropping oldest snapshot", self.depth)
        self._snapshots.append(pool.copy())

    def pop(self) -> Pool | None:
        """Remove and return the most recent snapshot, or None when empty."""
        if not self._snapshots:
            logger.info("Nothing to undo")
            return None
        return self._snapshots.pop()

    def peek(self) -> Pool | None:
        """Return the most recent snapshot without removing it."""
        return self._snapshots[-1] if self._snapshots else None

    def clear(self) -> None:
        self._snapshots.clear()
