"""Tests for the per-participant match ledger."""

import random

import pytest

from reelrank.ledger import apply_judgment, record, replay, verify_ledger
from reelrank.models import LOSS, WIN, Participant, Pool, StaleReferenceError


def _pool(n=4):
    return Pool(Participant.new(f"p{i}", f"Film {i}", str(1990 + i)) for i in range(n))


class TestRecord:
    def test_appends_reciprocal_records(self):
        a = Participant.new("a", "Alien")
        b = Participant.new("b", "Brazil")
        win, loss = record(a, b, 1240, 1160, timestamp=1000)

        assert win.result == WIN
        assert win.opponent_id == "b"
        assert win.opponent_name == "Brazil"
        assert win.opponent_elo == 1200
        assert win.elo_change == 40
        assert win.new_elo == 1240

        assert loss.result == LOSS
        assert loss.opponent_id == "a"
        assert loss.opponent_elo == 1200
        assert loss.elo_change == -40

        assert a.history == [win]
        assert b.history == [loss]

    def test_updates_counts_and_ratings(self):
        a = Participant.new("a", "Alien")
        b = Participant.new("b", "Brazil")
        record(a, b, 1240, 1160, timestamp=1000)
        assert (a.elo, a.matches, a.wins, a.losses) == (1240, 1, 1, 0)
        assert (b.elo, b.matches, b.wins, b.losses) == (1160, 1, 0, 1)

    def test_append_only(self):
        a = Participant.new("a", "Alien")
        b = Participant.new("b", "Brazil")
        first, _ = record(a, b, 1240, 1160, timestamp=1000)
        record(b, a, 1220, 1180, timestamp=2000)
        assert a.history[0] is first
        assert [r.timestamp for r in a.history] == [1000, 2000]

    def test_rejects_out_of_order_timestamp(self):
        a = Participant.new("a", "Alien")
        b = Participant.new("b", "Brazil")
        record(a, b, 1240, 1160, timestamp=2000)
        with pytest.raises(ValueError, match="precedes"):
            record(a, b, 1260, 1140, timestamp=1000)
        assert len(a.history) == 1
        assert a.elo == 1240

    def test_equal_timestamps_allowed(self):
        a = Participant.new("a", "Alien")
        b = Participant.new("b", "Brazil")
        record(a, b, 1240, 1160, timestamp=1000)
        record(a, b, 1260, 1140, timestamp=1000)
        assert a.matches == 2


class TestApplyJudgment:
    def test_worked_example(self):
        pool = _pool(2)
        win, loss = apply_judgment(pool, "p0", "p1", timestamp=5)
        assert pool.get("p0").elo == 1240
        assert pool.get("p1").elo == 1160
        assert win.timestamp == loss.timestamp == 5

    def test_default_timestamp(self):
        pool = _pool(2)
        win, _ = apply_judgment(pool, "p0", "p1")
        assert win.timestamp > 1_600_000_000_000

    def test_stale_reference_leaves_pool_unchanged(self):
        pool = _pool(2)
        before = pool.copy()
        with pytest.raises(StaleReferenceError):
            apply_judgment(pool, "p0", "gone")
        with pytest.raises(StaleReferenceError):
            apply_judgment(pool, "gone", "p1")
        assert pool == before

    def test_self_judgment_rejected(self):
        pool = _pool(2)
        with pytest.raises(ValueError, match="itself"):
            apply_judgment(pool, "p0", "p0")


class TestReplayAndVerify:
    def _played_pool(self, seed=7, n_matches=60):
        rng = random.Random(seed)
        pool = _pool(6)
        for t in range(n_matches):
            a, b = rng.sample(pool.ids(), 2)
            apply_judgment(pool, a, b, timestamp=t)
        return pool

    def test_replay_reconstructs_every_rating(self):
        pool = self._played_pool()
        for p in pool:
            ratings = replay(p)
            assert ratings[-1] == p.elo
            for rec, before in zip(p.history, ratings):
                assert rec.new_elo - rec.elo_change == before

    def test_played_ledgers_are_consistent(self):
        pool = self._played_pool()
        for p in pool:
            assert verify_ledger(p) == []
            assert p.matches == p.wins + p.losses == len(p.history)

    def test_verify_detects_count_mismatch(self):
        pool = self._played_pool(n_matches=4)
        p = next(p for p in pool if p.matches)
        p.matches += 1
        problems = verify_ledger(p)
        assert any("len(history)" in msg for msg in problems)

    def test_verify_detects_broken_chain(self):
        pool = self._played_pool(n_matches=10)
        p = max(pool, key=lambda p: p.matches)
        p.history[1].elo_change += 3
        assert any("starts at" in msg for msg in verify_ledger(p))

    def test_verify_legacy_checks_counts_only(self):
        p = Participant(id="a", name="Alien", elo=1300, matches=3, wins=2, losses=1, legacy=True)
        assert verify_ledger(p) == []


# ---------------------------------------------------------------------------
# Legacy participants judged after the ledger was introduced
# ---------------------------------------------------------------------------


class TestLegacyLedger:
    def _pool(self):
        return Pool.from_dict(
            {
                "participants": [
                    {"id": "a", "name": "Alien", "elo": 1300, "matches": 3, "wins": 2, "losses": 1},
                    Participant.new("b", "Brazil").to_dict(),
                ]
            }
        )

    def test_history_survives_round_trip(self):
        pool = self._pool()
        apply_judgment(pool, "a", "b", timestamp=1)

        restored = Pool.from_dict(pool.to_dict()).get("a")
        assert restored.legacy is True
        assert restored.matches == 4
        assert len(restored.history) == 1
        assert restored.history[0].elo_before == 1300
        assert restored.history[0].new_elo == restored.elo

    def test_history_keeps_growing_across_saves(self):
        pool = self._pool()
        apply_judgment(pool, "a", "b", timestamp=1)
        pool = Pool.from_dict(pool.to_dict())
        apply_judgment(pool, "b", "a", timestamp=2)
        restored = Pool.from_dict(pool.to_dict()).get("a")
        assert [r.timestamp for r in restored.history] == [1, 2]
        assert restored.matches == 5

    def test_partial_ledger_verifies(self):
        pool = self._pool()
        apply_judgment(pool, "a", "b", timestamp=1)
        apply_judgment(pool, "b", "a", timestamp=2)
        assert verify_ledger(pool.get("a")) == []

    def test_replay_starts_from_pre_ledger_rating(self):
        pool = self._pool()
        apply_judgment(pool, "a", "b", timestamp=1)
        a = pool.get("a")
        assert replay(a) == [1300, a.elo]

    def test_verify_flags_history_longer_than_counts(self):
        pool = self._pool()
        apply_judgment(pool, "a", "b", timestamp=1)
        a = pool.get("a")
        a.history = a.history * 6
        assert any("exceeds matches" in msg for msg in verify_ledger(a))
