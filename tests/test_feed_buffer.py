"""Unit tests for FeedBuffer: capacity, dedup, freeze/thaw."""

import random

import pytest

from conftest import make_tx
from txfeed.feed_buffer import FeedBuffer


class TestUpsert:
    def test_newest_first(self):
        buf = FeedBuffer(capacity=10)
        buf.upsert(make_tx("0x1", 1))
        buf.upsert(make_tx("0x2", 2))
        buf.upsert(make_tx("0x3", 3))

        assert buf.hashes() == ["0x3", "0x2", "0x1"]

    def test_reinsert_moves_to_front_without_growing(self):
        buf = FeedBuffer(capacity=10)
        for i in range(3):
            buf.upsert(make_tx(f"0x{i}", i))

        buf.upsert(make_tx("0x0", 10, label="replaced"))

        assert len(buf) == 3
        assert buf.hashes() == ["0x0", "0x2", "0x1"]
        assert buf.live()[0].label == "replaced"

    def test_capacity_drops_oldest(self):
        buf = FeedBuffer(capacity=3)
        for i in range(5):
            buf.upsert(make_tx(f"0x{i}", i))

        assert buf.hashes() == ["0x4", "0x3", "0x2"]

    def test_random_sequences_keep_invariants(self):
        rng = random.Random(7)
        buf = FeedBuffer(capacity=8)
        for step in range(500):
            buf.upsert(make_tx(f"0x{rng.randint(0, 20)}", step))
            hashes = buf.hashes()
            assert len(hashes) <= 8
            assert len(hashes) == len(set(hashes))

    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            FeedBuffer(capacity=0)


class TestFreezeThaw:
    def test_freeze_then_thaw_is_identity(self):
        buf = FeedBuffer(capacity=10)
        for i in range(4):
            buf.upsert(make_tx(f"0x{i}", i))
        before = set(buf.hashes())

        buf.freeze()
        buf.thaw()

        assert set(buf.hashes()) == before
        assert not buf.frozen

    def test_view_is_stable_while_frozen(self):
        buf = FeedBuffer(capacity=10)
        buf.upsert(make_tx("0x1", 1))
        buf.freeze()

        buf.upsert(make_tx("0x2", 2))

        assert buf.frozen
        assert buf.hashes() == ["0x1"]
        assert [t.tx_hash for t in buf.live()] == ["0x2", "0x1"]

    def test_thaw_merges_updates_newest_first(self):
        buf = FeedBuffer(capacity=10)
        buf.upsert(make_tx("0xa", 1))
        buf.upsert(make_tx("0xb", 2))
        buf.freeze()

        buf.upsert(make_tx("0xc", 3))
        buf.upsert(make_tx("0xd", 4))
        buf.upsert(make_tx("0xe", 5))
        buf.thaw()

        assert buf.hashes() == ["0xe", "0xd", "0xc", "0xb", "0xa"]

    def test_thaw_truncates_union_to_capacity(self):
        buf = FeedBuffer(capacity=3)
        for i in range(3):
            buf.upsert(make_tx(f"0x{i}", i))
        buf.freeze()

        buf.upsert(make_tx("0xnew", 10))
        buf.thaw()

        assert buf.hashes() == ["0xnew", "0x2", "0x1"]

    def test_thaw_restores_entries_evicted_during_freeze(self):
        buf = FeedBuffer(capacity=3)
        for i in range(3):
            buf.upsert(make_tx(f"0x{i}", i))
        buf.freeze()

        # arrives late but carries an older observation time
        buf.upsert(make_tx("0xlate", -5))
        assert "0x0" not in [t.tx_hash for t in buf.live()]
        buf.thaw()

        assert buf.hashes() == ["0x2", "0x1", "0x0"]

    def test_thaw_prefers_live_entry_on_conflict(self):
        buf = FeedBuffer(capacity=10)
        buf.upsert(make_tx("0x1", 1, label="old"))
        buf.freeze()

        buf.upsert(make_tx("0x1", 5, label="new"))
        buf.thaw()

        assert len(buf) == 1
        assert buf.live()[0].label == "new"

    def test_thaw_without_freeze_is_noop(self):
        buf = FeedBuffer(capacity=10)
        buf.upsert(make_tx("0x1", 1))
        buf.thaw()
        assert buf.hashes() == ["0x1"]

    def test_second_freeze_keeps_first_snapshot(self):
        buf = FeedBuffer(capacity=10)
        buf.upsert(make_tx("0x1", 1))
        buf.freeze()
        buf.upsert(make_tx("0x2", 2))
        buf.freeze()

        assert buf.hashes() == ["0x1"]
