from datetime import date
from typing import AsyncGenerator, Dict, List, Optional

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from app.api.routes import health
from app.api.routes.options import router as options_router
from app.domain.options.models.types import (
    MinuteBar,
    OptionQuoteSnapshot,
    OptionType,
    TradePrint,
)
from app.domain.options.state.market_state import EngineState
from app.infrastructure.market_data.types import ProviderError
from app.services.unusual_scan_service import UnusualScanService
from app.services.zero_dte_service import ZeroDteService


def make_contract(
    strike: float,
    option_type: OptionType,
    *,
    underlying: str = "SPY",
    expiration: str = "2026-10-16",
    bid: Optional[float] = 1.00,
    ask: Optional[float] = 1.10,
    gamma: Optional[float] = 0.05,
    delta: Optional[float] = None,
    open_interest: Optional[float] = 1000,
    day_volume: Optional[float] = 100,
    day_vwap: Optional[float] = None,
    underlying_price: Optional[float] = 450.0,
) -> OptionQuoteSnapshot:
    flag = "C" if option_type == OptionType.CALL else "P"
    yymmdd = expiration.replace("-", "")[2:]
    symbol = f"O:{underlying}{yymmdd}{flag}{int(strike * 1000):08d}"
    if delta is None:
        delta = 0.5 if option_type == OptionType.CALL else -0.5
    return OptionQuoteSnapshot(
        contract_symbol=symbol,
        underlying_symbol=underlying,
        strike=strike,
        option_type=option_type,
        expiration_date=expiration,
        bid=bid,
        ask=ask,
        day_volume=day_volume,
        day_vwap=day_vwap,
        open_interest=open_interest,
        delta=delta,
        gamma=gamma,
        underlying_price=underlying_price,
    )


class FakeProvider:
    """In-memory OptionsDataProvider with call counters."""

    def __init__(
        self,
        chain: Optional[List[OptionQuoteSnapshot]] = None,
        trades: Optional[Dict[str, List[TradePrint]]] = None,
        bars: Optional[List[MinuteBar]] = None,
        spot: Optional[float] = 450.0,
    ):
        self.chain = chain or []
        self.chains: Dict[str, List[OptionQuoteSnapshot]] = {}
        self.trades = trades or {}
        self.bars = bars or []
        self.spot = spot
        self.failing_contracts: set = set()
        self.trade_calls: List[str] = []
        self.chain_calls: List[str] = []

    async def get_chain_snapshot(self, underlying: str, expiration_date: Optional[date] = None):
        self.chain_calls.append(underlying)
        if underlying in self.chains:
            return self.chains[underlying]
        return self.chain

    async def get_recent_trades(self, contract_symbol: str, since_ms: int, limit: int):
        self.trade_calls.append(contract_symbol)
        if contract_symbol in self.failing_contracts:
            raise ProviderError("boom")
        return self.trades.get(contract_symbol, [])

    async def get_minute_bars(self, underlying: str, day: date):
        return self.bars

    async def get_spot_price(self, underlying: str) -> float:
        if self.spot is None:
            raise ProviderError(f"No spot price available for {underlying}")
        return self.spot


@pytest.fixture()
def engine_state() -> EngineState:
    return EngineState()


@pytest.fixture()
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def app(fake_provider: FakeProvider, engine_state: EngineState) -> FastAPI:
    app = FastAPI()
    app.include_router(health.router, tags=["Health"])
    app.include_router(options_router.router, prefix="/api/v1", tags=["Options"])
    app.state.engine_state = engine_state
    app.state.zero_dte_service = ZeroDteService(fake_provider, engine_state)
    app.state.unusual_scan_service = UnusualScanService(fake_provider)
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def contract_factory():
    return make_contract


@pytest.fixture()
def provider_factory():
    return FakeProvider
