"""
Options market data provider protocol for type hints.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Protocol

from app.domain.options.models.types import MinuteBar, OptionQuoteSnapshot, TradePrint


class ProviderError(RuntimeError):
    """Upstream market data request failed or returned an unusable payload."""


class OptionsDataProvider(Protocol):
    async def get_chain_snapshot(
        self, underlying: str, expiration_date: Optional[date] = None
    ) -> List[OptionQuoteSnapshot]:
        ...

    async def get_recent_trades(
        self, contract_symbol: str, since_ms: int, limit: int
    ) -> List[TradePrint]:
        ...

    async def get_minute_bars(self, underlying: str, day: date) -> List[MinuteBar]:
        ...

    async def get_spot_price(self, underlying: str) -> float:
        ...
