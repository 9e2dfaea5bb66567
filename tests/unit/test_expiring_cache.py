import pytest

from app.domain.options.state.expiring_cache import ExpiringCache, RollingWindow
from app.domain.options.state.market_state import EngineState


def test_cache_returns_value_within_ttl():
    cache = ExpiringCache(15)
    cache.set("O:SPY", [1, 2], now=100.0)
    assert cache.get("O:SPY", now=114.9) == [1, 2]


def test_cache_entry_expires_at_ttl():
    cache = ExpiringCache(15)
    cache.set("O:SPY", [1], now=100.0)
    assert cache.get("O:SPY", now=115.0) is None
    assert "O:SPY" not in cache


def test_cache_overwrite_refreshes_timestamp():
    cache = ExpiringCache(15)
    cache.set("k", "old", now=0.0)
    cache.set("k", "new", now=10.0)
    assert cache.get("k", now=20.0) == "new"


def test_cache_evict_drops_only_expired():
    cache = ExpiringCache(10)
    cache.set("a", 1, now=0.0)
    cache.set("b", 2, now=5.0)
    assert cache.evict(now=12.0) == 1
    assert len(cache) == 1
    assert cache.get("b", now=12.0) == 2


def test_cache_rejects_non_positive_ttl():
    with pytest.raises(ValueError):
        ExpiringCache(0)


def test_window_drops_samples_older_than_window():
    window = RollingWindow(900)
    window.append(1.0, now=0.0)
    window.append(2.0, now=600.0)
    window.append(3.0, now=1000.0)
    assert window.values() == [2.0, 3.0]


def test_window_keeps_sample_exactly_at_edge():
    window = RollingWindow(900)
    window.append(1.0, now=0.0)
    window.append(2.0, now=900.0)
    assert window.values() == [1.0, 2.0]


class TestEngineState:
    def test_gamma_history_is_per_underlying_and_case_insensitive(self):
        state = EngineState()
        assert state.gamma_history_for("spy") is state.gamma_history_for("SPY")
        assert state.gamma_history_for("SPY") is not state.gamma_history_for("QQQ")

    def test_ttls_come_from_constructor(self):
        state = EngineState(trade_cache_ttl_seconds=5, bias_memory_ttl_seconds=30)
        assert state.trade_cache.ttl_seconds == 5
        assert state.bias_memory.ttl_seconds == 30

    def test_lock_is_shared_per_underlying(self):
        state = EngineState()
        assert state.lock_for("spy") is state.lock_for("SPY")

    def test_reset_clears_everything(self):
        state = EngineState()
        state.gamma_history_for("SPY").append(1.0, now=0.0)
        state.trade_cache.set("O:SPY", [], now=0.0)
        state.reset()
        assert state.gamma_history == {}
        assert len(state.trade_cache) == 0
