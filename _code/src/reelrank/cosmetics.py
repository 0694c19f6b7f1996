"""Background image prefetch for upcoming pairs.

Lookups run on a single worker thread, so requests reach the image
service one at a time in the order they were queued. Results are merged
into the arena by participant id; a failed lookup is logged and dropped.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor

from reelrank.arena import Arena
from reelrank.services import ImageLookup

logger = logging.getLogger(__name__)


class CosmeticPrefetcher:
    """Fetches images for participants that do not have one yet.

    Usage::

        prefetcher = CosmeticPrefetcher(lookup)
        arena = Arena(pool, on_enqueue=prefetcher.prefetch_pair)
        prefetcher.attach(arena)

    Args:
        lookup: Image service.
        arena: Arena to merge results into; may be attached later.
    """

    def __init__(self, lookup: ImageLookup, arena: Arena | None = None):
        self.lookup = lookup
        self.arena = arena
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="prefetch")
        self._in_flight: set[str] = set()
        self._lock = threading.Lock()

    def attach(self, arena: Arena) -> None:
        self.arena = arena

    def prefetch(self, participant_id: str) -> Future | None:
        """Queue a lookup unless the participant already has an image.

        Returns:
            The pending Future, or None if nothing was queued.
        """
        if self.arena is None or participant_id not in self.arena.pool:
            return None
        participant = self.arena.pool.get(participant_id)
        if participant.image_url:
            return None
        with self._lock:
            if participant_id in self._in_flight:
                return None
            self._in_flight.add(participant_id)
        return self._executor.submit(
            self._fetch, participant_id, participant.name, participant.year
        )

    def prefetch_pair(self, pair: tuple[str, str]) -> None:
        """Matchmaker ``on_enqueue`` hook."""
        for participant_id in pair:
            self.prefetch(participant_id)

    def _fetch(self, participant_id: str, name: str, year: str) -> str | None:
        try:
            image_url = self.lookup.lookup(participant_id, name, year)
        except Exception:
            logger.warning("Image lookup failed for %r", name, exc_info=True)
            image_url = None
        finally:
            with self._lock:
                self._in_flight.discard(participant_id)

        if image_url and self.arena is not None:
            self.arena.set_cosmetic(participant_id, image_url)
        return image_url

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
