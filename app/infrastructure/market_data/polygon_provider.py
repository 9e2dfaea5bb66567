"""
Polygon.io Options Market Data Provider
Thin adapter from Polygon REST payloads to domain snapshots.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from app.domain.options.models.types import MinuteBar, OptionQuoteSnapshot, OptionType, TradePrint
from app.infrastructure.market_data.types import ProviderError

logger = logging.getLogger(__name__)


def _float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _option_type(value: Any) -> Optional[OptionType]:
    if value == "call":
        return OptionType.CALL
    if value == "put":
        return OptionType.PUT
    return None


def parse_option_snapshot(item: Dict[str, Any], underlying: str) -> Optional[OptionQuoteSnapshot]:
    """Map one ``/v3/snapshot/options`` result; None if it has no contract ticker."""
    details = item.get("details") or {}
    ticker = details.get("ticker")
    if not ticker:
        return None
    greeks = item.get("greeks") or {}
    quote = item.get("last_quote") or {}
    last_trade = item.get("last_trade") or {}
    day = item.get("day") or {}
    asset = item.get("underlying_asset") or {}
    return OptionQuoteSnapshot(
        contract_symbol=ticker,
        underlying_symbol=asset.get("ticker") or underlying,
        strike=_float(details.get("strike_price")),
        option_type=_option_type(details.get("contract_type") or item.get("contract_type")),
        expiration_date=details.get("expiration_date") or "",
        bid=_float(quote.get("bid")),
        ask=_float(quote.get("ask")),
        last_trade_price=_float(last_trade.get("price")),
        last_trade_size=_float(last_trade.get("size")),
        day_volume=_float(day.get("volume")),
        day_vwap=_float(day.get("vwap")),
        open_interest=_float(item.get("open_interest")),
        delta=_float(greeks.get("delta")),
        gamma=_float(greeks.get("gamma")),
        theta=_float(greeks.get("theta")),
        vega=_float(greeks.get("vega")),
        implied_volatility=_float(item.get("implied_volatility")),
        underlying_price=_float(asset.get("price")),
    )


def parse_trade(item: Dict[str, Any]) -> Optional[TradePrint]:
    price = _float(item.get("price"))
    size = _float(item.get("size"))
    ts_ns = item.get("sip_timestamp") or item.get("participant_timestamp")
    if price is None or size is None or ts_ns is None:
        return None
    return TradePrint(price=price, size=size, timestamp_ms=int(ts_ns) // 1_000_000)


def parse_bar(item: Dict[str, Any]) -> Optional[MinuteBar]:
    try:
        return MinuteBar(
            open=float(item["o"]),
            high=float(item["h"]),
            low=float(item["l"]),
            close=float(item["c"]),
            volume=float(item["v"]),
            start_ms=int(item["t"]),
            vwap=_float(item.get("vw")),
        )
    except (KeyError, TypeError, ValueError):
        return None


class PolygonProvider:
    def __init__(
        self,
        api_key: Optional[str],
        api_base_url: str = "https://api.polygon.io",
        timeout_seconds: float = 15.0,
        chain_limit: int = 250,
    ):
        self.api_key = (api_key or "").strip() or None
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.chain_limit = chain_limit

    async def _request_json(self, path: str, params: Optional[dict] = None) -> dict:
        if not self.api_key:
            raise ProviderError("POLYGON_API_KEY is not configured")

        query = dict(params or {})
        query["apiKey"] = self.api_key
        url = f"{self.api_base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(url, params=query)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Polygon request failed for {path}: {exc}") from exc

        if response.status_code != 200:
            raise ProviderError(f"Polygon error {response.status_code} for {path}")
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(f"Polygon returned invalid JSON for {path}") from exc

    # ------------------------------------------------------------------
    # OPTIONS
    # ------------------------------------------------------------------

    async def get_chain_snapshot(
        self, underlying: str, expiration_date: Optional[date] = None
    ) -> List[OptionQuoteSnapshot]:
        params: Dict[str, Any] = {"limit": self.chain_limit}
        if expiration_date is not None:
            params["expiration_date"] = expiration_date.isoformat()
        data = await self._request_json(f"/v3/snapshot/options/{underlying}", params)

        snapshots: List[OptionQuoteSnapshot] = []
        for item in data.get("results") or []:
            snapshot = parse_option_snapshot(item, underlying)
            if snapshot is not None:
                snapshots.append(snapshot)
        logger.debug("Polygon chain %s: %d contracts", underlying, len(snapshots))
        return snapshots

    async def get_recent_trades(
        self, contract_symbol: str, since_ms: int, limit: int
    ) -> List[TradePrint]:
        params = {"timestamp.gte": since_ms * 1_000_000, "limit": limit}
        data = await self._request_json(f"/v3/trades/{contract_symbol}", params)
        trades = [parse_trade(item) for item in data.get("results") or []]
        return [t for t in trades if t is not None]

    # ------------------------------------------------------------------
    # UNDERLYING
    # ------------------------------------------------------------------

    async def get_minute_bars(self, underlying: str, day: date) -> List[MinuteBar]:
        day_str = day.isoformat()
        params = {"adjusted": "true", "sort": "asc", "limit": 5000}
        data = await self._request_json(
            f"/v2/aggs/ticker/{underlying}/range/1/minute/{day_str}/{day_str}", params
        )
        bars = [parse_bar(item) for item in data.get("results") or []]
        return [b for b in bars if b is not None]

    async def get_spot_price(self, underlying: str) -> float:
        data = await self._request_json(
            f"/v2/snapshot/locale/us/markets/stocks/tickers/{underlying}"
        )
        ticker = data.get("ticker") or {}
        price = (
            _float((ticker.get("day") or {}).get("c"))
            or _float((ticker.get("lastTrade") or {}).get("p"))
            or _float((ticker.get("prevDay") or {}).get("c"))
        )
        if not price:
            raise ProviderError(f"No spot price available for {underlying}")
        return price
