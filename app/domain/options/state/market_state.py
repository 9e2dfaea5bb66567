"""Process-lifetime engine state, scoped per underlying ticker."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List

from app.domain.options.models.types import Bias, TradePrint
from app.domain.options.state.expiring_cache import ExpiringCache, RollingWindow


@dataclass(frozen=True)
class BiasMemory:
    bias: Bias
    score: float
    ts: float


@dataclass
class EngineState:
    gamma_window_seconds: float = 15 * 60
    trade_cache_ttl_seconds: float = 15
    bias_memory_ttl_seconds: float = 60
    gamma_history: Dict[str, RollingWindow[float]] = field(default_factory=dict)
    trade_cache: ExpiringCache[str, List[TradePrint]] = field(init=False)
    bias_memory: ExpiringCache[str, BiasMemory] = field(init=False)
    _locks: Dict[str, asyncio.Lock] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self.trade_cache = ExpiringCache(self.trade_cache_ttl_seconds)
        self.bias_memory = ExpiringCache(self.bias_memory_ttl_seconds)

    def gamma_history_for(self, underlying: str) -> RollingWindow[float]:
        key = underlying.upper()
        window = self.gamma_history.get(key)
        if window is None:
            window = RollingWindow(self.gamma_window_seconds)
            self.gamma_history[key] = window
        return window

    def lock_for(self, underlying: str) -> asyncio.Lock:
        key = underlying.upper()
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def reset(self) -> None:
        self.gamma_history.clear()
        self.trade_cache.clear()
        self.bias_memory.clear()
