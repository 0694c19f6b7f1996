"""Tests for pair selection and the lookahead queue."""

import random

import pytest

from reelrank.engine_config import MatchmakingConfig
from reelrank.matchmaker import InsufficientDataError, Matchmaker, next_pair
from reelrank.models import Participant, Pool


def _pool(elos):
    return Pool(
        Participant(id=f"p{i}", name=f"Film {i}", elo=elo) for i, elo in enumerate(elos)
    )


# ---------------------------------------------------------------------------
# next_pair
# ---------------------------------------------------------------------------


class TestNextPair:
    def test_empty_pool(self):
        with pytest.raises(InsufficientDataError):
            next_pair(Pool())

    def test_single_participant(self):
        with pytest.raises(InsufficientDataError):
            next_pair(_pool([1200]))

    def test_two_participants_never_self(self):
        pool = _pool([1200, 1300])
        rng = random.Random(0)
        for _ in range(500):
            assert next_pair(pool, rng=rng) in {(0, 1), (1, 0)}

    def test_two_participants_with_recent_pair(self):
        pool = _pool([1200, 1300])
        rng = random.Random(1)
        for _ in range(200):
            assert next_pair(pool, [(0, 1)], rng=rng) in {(0, 1), (1, 0)}

    def test_never_self_pairs(self):
        pool = _pool([1200 + 10 * i for i in range(7)])
        rng = random.Random(3)
        for _ in range(1000):
            i, j = next_pair(pool, rng=rng)
            assert i != j
            assert 0 <= i < 7 and 0 <= j < 7

    def test_zero_retries_still_never_self(self):
        pool = _pool([1200, 1200, 1200])
        config = MatchmakingConfig(proximity_probability=0.0, max_retries=0)
        rng = random.Random(5)
        for _ in range(500):
            i, j = next_pair(pool, rng=rng, config=config)
            assert i != j

    def test_deterministic_with_seed(self):
        pool = _pool([1000 + 37 * i for i in range(12)])
        a = [next_pair(pool, rng=random.Random(42)) for _ in range(3)]
        b = [next_pair(pool, rng=random.Random(42)) for _ in range(3)]
        assert a == b

    def test_proximity_picks_close_opponents(self):
        # Two clusters far apart; pure proximity pairing stays in-cluster.
        elos = [1000, 1001, 1002, 1003, 2000, 2001, 2002, 2003]
        pool = _pool(elos)
        config = MatchmakingConfig(proximity_probability=1.0, max_retries=0)
        rng = random.Random(9)
        for _ in range(300):
            i, j = next_pair(pool, rng=rng, config=config)
            assert abs(elos[i] - elos[j]) < 500

    def test_uniform_mode_reaches_far_opponents(self):
        elos = [1000, 1001, 2000, 2001]
        pool = _pool(elos)
        config = MatchmakingConfig(proximity_probability=0.0)
        rng = random.Random(11)
        pairs = [next_pair(pool, rng=rng, config=config) for _ in range(200)]
        gaps = {abs(elos[i] - elos[j]) >= 500 for i, j in pairs}
        assert gaps == {True, False}

    def test_avoids_repeating_last_pair(self):
        pool = _pool([1200 + i for i in range(10)])
        rng = random.Random(13)
        repeats = sum(
            {*next_pair(pool, [(0, 1)], rng=rng)} == {0, 1} for _ in range(500)
        )
        assert repeats == 0


# ---------------------------------------------------------------------------
# Matchmaker queue
# ---------------------------------------------------------------------------


class TestMatchmaker:
    def test_fills_to_depth(self):
        pool = _pool([1200 + i for i in range(6)])
        mm = Matchmaker(MatchmakingConfig(queue_depth=5), rng=random.Random(1))
        mm.current(pool)
        assert len(mm) == 5
        assert len(mm.upcoming(pool)) == 5

    def test_advance_pops_front_and_backfills(self):
        pool = _pool([1200 + i for i in range(6)])
        mm = Matchmaker(MatchmakingConfig(queue_depth=3), rng=random.Random(2))
        queued = mm.upcoming(pool)
        nxt = mm.advance(pool)
        assert nxt == queued[1]
        assert mm.upcoming(pool)[:2] == queued[1:]
        assert len(mm) == 3

    def test_on_enqueue_called_with_ids(self):
        pool = _pool([1200 + i for i in range(4)])
        seen = []
        mm = Matchmaker(
            MatchmakingConfig(queue_depth=2), rng=random.Random(3), on_enqueue=seen.append
        )
        mm.current(pool)
        assert len(seen) == 2
        for a, b in seen:
            assert a in pool and b in pool and a != b
        mm.advance(pool)
        assert len(seen) == 3

    def test_insufficient_data(self):
        mm = Matchmaker()
        with pytest.raises(InsufficientDataError):
            mm.current(_pool([1200]))

    def test_stale_pairs_dropped(self):
        pool = _pool([1200, 1210, 1220])
        mm = Matchmaker(MatchmakingConfig(queue_depth=4), rng=random.Random(4))
        mm.current(pool)
        smaller = Pool([pool[0], pool[1]])
        for i, j in mm.upcoming(smaller):
            assert {i, j} == {0, 1}

    def test_skip_advances(self):
        pool = _pool([1200 + i for i in range(5)])
        mm = Matchmaker(MatchmakingConfig(queue_depth=3), rng=random.Random(5))
        queued = mm.upcoming(pool)
        assert mm.skip(pool) == queued[1]

    def test_reset_clears_queue(self):
        pool = _pool([1200 + i for i in range(5)])
        mm = Matchmaker(rng=random.Random(6))
        mm.current(pool)
        mm.reset()
        assert len(mm) == 0
