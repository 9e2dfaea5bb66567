"""
Time-bounded in-memory containers.

Both containers take ``now`` (epoch seconds) explicitly so callers and tests
control the clock; it defaults to wall-clock time.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Generic, Hashable, List, Optional, Tuple, TypeVar

from app.utils.time import now_seconds

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class ExpiringCache(Generic[K, V]):
    """Key/value map whose entries vanish ``ttl_seconds`` after being set."""

    def __init__(self, ttl_seconds: float):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[K, Tuple[float, V]] = {}

    def get(self, key: K, now: Optional[float] = None) -> Optional[V]:
        if now is None:
            now = now_seconds()
        cached = self._entries.get(key)
        if cached is None:
            return None
        stored_at, value = cached
        if now - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return value

    def set(self, key: K, value: V, now: Optional[float] = None) -> None:
        if now is None:
            now = now_seconds()
        self._entries[key] = (now, value)

    def evict(self, now: Optional[float] = None) -> int:
        """Drop every expired entry; returns how many were removed."""
        if now is None:
            now = now_seconds()
        expired = [
            key for key, (stored_at, _) in self._entries.items()
            if now - stored_at >= self.ttl_seconds
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


@dataclass(frozen=True)
class Sample(Generic[V]):
    value: V
    ts: float


class RollingWindow(Generic[V]):
    """Time-ordered samples no older than ``window_seconds``."""

    def __init__(self, window_seconds: float):
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.window_seconds = window_seconds
        self._samples: Deque[Sample[V]] = deque()

    def _evict(self, now: float) -> None:
        while self._samples and now - self._samples[0].ts > self.window_seconds:
            self._samples.popleft()

    def append(self, value: V, now: Optional[float] = None) -> None:
        if now is None:
            now = now_seconds()
        self._evict(now)
        self._samples.append(Sample(value=value, ts=now))

    def values(self) -> List[V]:
        return [sample.value for sample in self._samples]

    def __len__(self) -> int:
        return len(self._samples)
