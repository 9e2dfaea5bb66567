"""
FLOW AGGREGATOR
Samples recent prints for the most active contracts and accumulates
aggressor-side notional by call/put and ATM buckets.

The only suspension points are the per-contract trade fetches, issued
concurrently and awaited together.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Protocol, Sequence

from app.domain.options.models.types import (
    FlowAggregates,
    FlowBurst,
    FlowImbalance,
    OptionQuoteSnapshot,
    OptionType,
    TradePrint,
    TradeSide,
)
from app.domain.options.state.market_state import EngineState
from app.utils.time import now_seconds, to_epoch_ms, to_utc_iso

logger = logging.getLogger(__name__)

CONTRACT_MULTIPLIER = 100
ATM_BAND_PCT = 0.003
BURST_WINDOW_MS = 60_000
BURST_MIN_PRINTS = 3
BURST_MIN_NOTIONAL = 500_000
MAX_BURSTS = 3


class TradePrintSource(Protocol):
    async def get_recent_trades(
        self, contract_symbol: str, since_ms: int, limit: int
    ) -> List[TradePrint]:
        ...


def classify_side(price: float, bid: Optional[float], ask: Optional[float]) -> TradeSide:
    """Approximate the aggressor from where the print sits in the quote."""
    if not bid or not ask or bid <= 0 or ask <= 0 or ask < bid:
        return TradeSide.MID
    if price >= ask:
        return TradeSide.ASK
    if price <= bid:
        return TradeSide.BID
    mid = (ask + bid) / 2
    if price > mid:
        return TradeSide.ASK
    if price < mid:
        return TradeSide.BID
    return TradeSide.MID


def normalized_imbalance(call_notional: float, put_notional: float) -> float:
    total = call_notional + put_notional
    if total <= 0:
        return 0.0
    return (call_notional - put_notional) / total


def _is_stale_quote(contract: OptionQuoteSnapshot) -> bool:
    return contract.bid is not None and contract.ask is not None and not contract.is_valid_quote


def select_active_contracts(
    chain: Sequence[OptionQuoteSnapshot], limit: int
) -> List[OptionQuoteSnapshot]:
    """
    Contracts with volume, ranked by volume x strike (notional proxy).

    Crossed or negative quotes are stale and never sampled.
    """
    active = [c for c in chain if (c.day_volume or 0) > 0 and not _is_stale_quote(c)]
    active.sort(key=lambda c: (c.day_volume or 0) * (c.strike or 0), reverse=True)
    return active[:limit]


def relative_volume_proxy(chain: Sequence[OptionQuoteSnapshot]) -> float:
    total_volume = sum(c.day_volume or 0 for c in chain)
    total_oi = sum(c.open_interest or 0 for c in chain)
    if total_oi <= 0:
        return 0.0
    return total_volume / (total_oi / 100)


class FlowAggregator:
    def __init__(
        self,
        trade_source: TradePrintSource,
        state: EngineState,
        top_contracts: int = 10,
        lookback_seconds: int = 5 * 60,
        fetch_limit: int = 200,
    ):
        self._trade_source = trade_source
        self._state = state
        self.top_contracts = top_contracts
        self.lookback_seconds = lookback_seconds
        self.fetch_limit = fetch_limit

    async def _trades_for(self, contract: OptionQuoteSnapshot, now: float) -> List[TradePrint]:
        symbol = contract.contract_symbol
        cached = self._state.trade_cache.get(symbol, now)
        if cached is not None:
            return cached

        since_ms = to_epoch_ms(now - self.lookback_seconds)
        try:
            trades = await self._trade_source.get_recent_trades(symbol, since_ms, self.fetch_limit)
        except Exception as exc:
            # Counted as empty for this pass and left uncached
            logger.warning("Trade fetch failed for %s: %s", symbol, exc)
            return []
        self._state.trade_cache.set(symbol, trades, now)
        return trades

    async def aggregate(
        self,
        chain: Sequence[OptionQuoteSnapshot],
        spot_price: float,
        now: Optional[float] = None,
    ) -> FlowAggregates:
        if now is None:
            now = now_seconds()
        self._state.trade_cache.evict(now)
        if not chain:
            return FlowAggregates()

        agg = FlowAggregates(rvol_like=relative_volume_proxy(chain))

        selected = select_active_contracts(chain, self.top_contracts)
        results = await asyncio.gather(*(self._trades_for(c, now) for c in selected))
        trades_by_contract: Dict[str, List[TradePrint]] = {
            c.contract_symbol: trades for c, trades in zip(selected, results)
        }

        now_ms = to_epoch_ms(now)
        bursts: List[FlowBurst] = []
        for contract in selected:
            burst = self._accumulate(
                agg, contract, trades_by_contract[contract.contract_symbol], spot_price, now_ms
            )
            if burst is not None:
                bursts.append(FlowBurst(
                    strike=contract.strike or 0.0,
                    option_type=contract.option_type or OptionType.CALL,
                    notional=burst,
                    timestamp=to_utc_iso(now),
                ))

        bursts.sort(key=lambda b: b.notional, reverse=True)
        agg.bursts = bursts[:MAX_BURSTS]
        agg.normalized_imbalance = FlowImbalance(
            overall=normalized_imbalance(agg.call_ask_notional, agg.put_ask_notional),
            atm=normalized_imbalance(agg.atm_call_ask_notional, agg.atm_put_ask_notional),
        )
        logger.debug(
            "flow: %d contracts sampled, %d bursts, imbalance=%s",
            len(selected), len(agg.bursts), agg.normalized_imbalance,
        )
        return agg

    @staticmethod
    def _accumulate(
        agg: FlowAggregates,
        contract: OptionQuoteSnapshot,
        trades: Sequence[TradePrint],
        spot_price: float,
        now_ms: int,
    ) -> Optional[float]:
        """Fold one contract's prints into ``agg``; returns burst notional if any."""
        strike = contract.strike or 0.0
        is_call = contract.option_type != OptionType.PUT
        is_atm = abs(strike - spot_price) <= spot_price * ATM_BAND_PCT

        recent_count = 0
        recent_notional = 0.0
        for trade in trades:
            notional = trade.price * CONTRACT_MULTIPLIER * trade.size
            side = classify_side(trade.price, contract.bid, contract.ask)

            # ATM buckets track ask-side (buying) pressure only
            if is_call:
                agg.call_volume += trade.size
                if side == TradeSide.ASK:
                    agg.call_ask_notional += notional
                    if is_atm:
                        agg.atm_call_ask_notional += notional
                elif side == TradeSide.BID:
                    agg.call_bid_notional += notional
            else:
                agg.put_volume += trade.size
                if side == TradeSide.ASK:
                    agg.put_ask_notional += notional
                    if is_atm:
                        agg.atm_put_ask_notional += notional
                elif side == TradeSide.BID:
                    agg.put_bid_notional += notional

            if trade.timestamp_ms > now_ms - BURST_WINDOW_MS:
                recent_count += 1
                recent_notional += notional

        if recent_count >= BURST_MIN_PRINTS and recent_notional >= BURST_MIN_NOTIONAL:
            return recent_notional
        return None
