"""0DTE analytics and unusual-options API endpoints."""
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from app.domain.options.analytics.unusual_scorer import (
    ContractDetails,
    QuoteInput,
    TradeInput,
    score_unusual_trade,
)
from app.domain.options.models.types import TradeIntent, to_dict
from app.infrastructure.market_data.types import ProviderError
from app.services.unusual_scan_service import UnusualScanService, filter_candidates
from app.services.zero_dte_service import ZeroDteService

router = APIRouter()


class TradePayload(BaseModel):
    price: float = Field(..., ge=0)
    size: float = Field(..., ge=0)


class QuotePayload(BaseModel):
    bid: float
    ask: float
    iv: Optional[float] = None
    delta: Optional[float] = None


class ContractPayload(BaseModel):
    ticker: str = Field(..., min_length=1, description="OCC contract symbol, e.g. O:SPY240119C00450000")
    strike: float
    expiration: str = Field(..., description="YYYY-MM-DD")
    open_interest: Optional[float] = None
    volume: Optional[float] = None


class ScoreTradeRequest(BaseModel):
    trade: TradePayload
    quote: QuotePayload
    details: ContractPayload
    underlying_price: float = Field(..., gt=0)


def _zero_dte_service(request: Request) -> ZeroDteService:
    service = getattr(request.app.state, "zero_dte_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="0DTE service not available")
    return service


def _scan_service(request: Request) -> UnusualScanService:
    service = getattr(request.app.state, "unusual_scan_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Unusual scan service not available")
    return service


@router.get("/odte/{ticker}/context")
async def odte_context(ticker: str, request: Request):
    try:
        ctx = await _zero_dte_service(request).get_context(ticker)
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return to_dict(ctx)


@router.get("/odte/{ticker}/flow")
async def odte_flow(ticker: str, request: Request):
    try:
        flow = await _zero_dte_service(request).get_flow(ticker)
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return to_dict(flow)


@router.get("/odte/{ticker}/bias")
async def odte_bias(ticker: str, request: Request):
    try:
        bias = await _zero_dte_service(request).get_bias(ticker)
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return to_dict(bias)


@router.post("/unusual/score")
async def unusual_score(payload: ScoreTradeRequest):
    candidate = score_unusual_trade(
        TradeInput(price=payload.trade.price, size=payload.trade.size),
        QuoteInput(
            bid=payload.quote.bid,
            ask=payload.quote.ask,
            iv=payload.quote.iv,
            delta=payload.quote.delta,
        ),
        ContractDetails(
            ticker=payload.details.ticker,
            strike=payload.details.strike,
            expiration=payload.details.expiration,
            open_interest=payload.details.open_interest,
            volume=payload.details.volume,
        ),
        payload.underlying_price,
    )
    if candidate is None:
        return {"accepted": False, "candidate": None}
    return {"accepted": True, "candidate": to_dict(candidate)}


@router.get("/unusual/scan")
async def unusual_scan(
    request: Request,
    tickers: Optional[str] = Query(default=None, description="Comma-separated tickers; default universe if omitted"),
    exclude_indices: bool = False,
    min_score: float = 0,
    min_premium: float = 0,
    intent: Optional[List[TradeIntent]] = Query(default=None),
    flag: Optional[List[str]] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
):
    symbols = [t.strip() for t in tickers.split(",") if t.strip()] if tickers else None
    candidates = await _scan_service(request).scan(symbols, exclude_indices=exclude_indices)
    filtered = filter_candidates(
        candidates,
        min_score=min_score,
        min_premium=min_premium,
        intents=intent,
        flags=flag,
    )
    items = [to_dict(c) for c in filtered[:limit]]
    return {"count": len(items), "total": len(candidates), "items": items}


@router.get("/unusual/{ticker}/activity")
async def unusual_activity(
    ticker: str,
    request: Request,
    min_volume: float = Query(default=50, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
):
    try:
        ranked = await _scan_service(request).rank_activity(ticker, min_volume=min_volume)
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    items = [to_dict(a) for a in ranked[:limit]]
    return {"ticker": ticker.upper(), "count": len(items), "items": items}
