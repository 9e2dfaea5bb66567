"""
0DTE analytics service.

Fetches one chain snapshot per request and feeds it to the wall, regime and
flow engines so all three agree on which contracts exist, then hands their
output to the bias engine.
"""

import logging
from typing import List, Optional

from app.config import Settings, settings as default_settings
from app.domain.options.analytics.bias_engine import BiasEngine
from app.domain.options.analytics.flow_aggregator import FlowAggregator
from app.domain.options.analytics.regime_engine import compute_regime
from app.domain.options.analytics.vwap import compute_vwap_context
from app.domain.options.analytics.wall_engine import compute_walls
from app.domain.options.models.types import (
    BiasResponse,
    FlowAggregates,
    OdteContext,
    OptionQuoteSnapshot,
    VwapContext,
)
from app.domain.options.state.market_state import EngineState
from app.infrastructure.market_data.types import OptionsDataProvider, ProviderError
from app.utils.time import market_date, now_seconds

logger = logging.getLogger(__name__)


class ZeroDteService:
    def __init__(
        self,
        provider: OptionsDataProvider,
        state: EngineState,
        settings: Optional[Settings] = None,
    ):
        cfg = settings or default_settings
        self._provider = provider
        self._state = state
        self._flow = FlowAggregator(
            trade_source=provider,
            state=state,
            top_contracts=cfg.FLOW_TOP_CONTRACTS,
            lookback_seconds=cfg.TRADE_LOOKBACK_SECONDS,
            fetch_limit=cfg.TRADE_FETCH_LIMIT,
        )
        self._bias = BiasEngine(state.bias_memory)

    async def _chain(self, ticker: str, now: float) -> List[OptionQuoteSnapshot]:
        try:
            return await self._provider.get_chain_snapshot(ticker, market_date(now))
        except ProviderError as exc:
            logger.warning("0DTE chain unavailable for %s: %s", ticker, exc)
            return []

    async def _vwap_context(self, ticker: str, now: float) -> VwapContext:
        try:
            bars = await self._provider.get_minute_bars(ticker, market_date(now))
        except ProviderError as exc:
            logger.warning("Minute bars unavailable for %s: %s", ticker, exc)
            return VwapContext.unknown()
        return compute_vwap_context(bars)

    def _context_from_chain(
        self,
        ticker: str,
        chain: List[OptionQuoteSnapshot],
        spot: float,
        vwap: VwapContext,
        now: float,
    ) -> OdteContext:
        regime = compute_regime(chain, spot, self._state.gamma_history_for(ticker), now)
        walls = compute_walls(chain, spot)
        return OdteContext(context=vwap, regime=regime, walls=walls, last_price=spot)

    async def get_context(self, ticker: str) -> OdteContext:
        """Raises ProviderError when no spot price can be fetched."""
        ticker = ticker.upper()
        async with self._state.lock_for(ticker):
            now = now_seconds()
            spot = await self._provider.get_spot_price(ticker)
            vwap = await self._vwap_context(ticker, now)
            chain = await self._chain(ticker, now)
            return self._context_from_chain(ticker, chain, spot, vwap, now)

    async def get_flow(self, ticker: str) -> FlowAggregates:
        ticker = ticker.upper()
        now = now_seconds()
        spot = await self._provider.get_spot_price(ticker)
        chain = await self._chain(ticker, now)
        return await self._flow.aggregate(chain, spot, now)

    async def get_bias(self, ticker: str) -> BiasResponse:
        ticker = ticker.upper()
        async with self._state.lock_for(ticker):
            now = now_seconds()
            spot = await self._provider.get_spot_price(ticker)
            vwap = await self._vwap_context(ticker, now)
            chain = await self._chain(ticker, now)
            ctx = self._context_from_chain(ticker, chain, spot, vwap, now)
            flow = await self._flow.aggregate(chain, spot, now)
            response = self._bias.classify(ticker, ctx.context, ctx.regime, flow, ctx.walls, now)

        logger.info(
            "%s bias=%s confidence=%.0f net=%.0f contracts=%d",
            ticker, response.bias.value, response.confidence, response.score.net, len(chain),
        )
        return response
