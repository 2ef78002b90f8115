"""Tests for the per-key locked store."""

import threading

from quant_system.data.portfolio import Portfolio
from quant_system.utils.keyed_store import KeyedStore


class TestKeyedStore:
    """Tests for locked() and clear()."""

    def test_factory_creates_once(self):
        store = KeyedStore(factory=Portfolio)
        with store.locked("a") as first:
            first.cash_balance = 5.0
        with store.locked("a") as again:
            assert again is first
        assert len(store) == 1

    def test_without_factory_yields_none(self):
        store = KeyedStore()
        with store.locked("a") as value:
            assert value is None
        assert "a" not in store

    def test_clear_keeps_key_lock(self):
        store = KeyedStore(factory=Portfolio)
        with store.locked("a"):
            pass
        lock = store._lock_for("a")
        store.clear()
        assert "a" not in store
        assert store._lock_for("a") is lock

    def test_clear_waits_for_holder(self):
        store = KeyedStore(factory=Portfolio)
        cleared = threading.Event()

        def clear_all():
            store.clear()
            cleared.set()

        with store.locked("a"):
            worker = threading.Thread(target=clear_all)
            worker.start()
            assert not cleared.wait(timeout=0.2)
            assert "a" in store

        worker.join(timeout=5)
        assert cleared.is_set()
        assert "a" not in store
