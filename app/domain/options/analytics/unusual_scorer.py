"""
UNUSUAL TRADE SCORER
Deterministic rule engine that scores and flags unusual option trades.

RULES:
- Pure calculation: no I/O, no hidden state
- Only a catastrophically wide spread hard-rejects a trade
- Every other liquidity gate is a score penalty, so marginal
  candidates stay visible to downstream filters
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from app.domain.options.models.types import (
    ContractActivity,
    OptionQuoteSnapshot,
    OptionType,
    TradeIntent,
    UnusualTradeCandidate,
)
from app.utils.time import now_seconds, parse_iso_date, to_epoch_ms, utc_date

# Liquidity gates (soft)
MIN_PRICE = 10.00
MIN_TRADE_SIZE = 10
MIN_PREMIUM_USD = 2000
MAX_SPREAD_REJECT = 0.40

PENALTY_SMALL_SIZE = 20
PENALTY_SMALL_PREMIUM = 20
PENALTY_LOW_PRICE = 10

BASE_SCORE = 50
SCORE_BOOST_AT_ASK = 15
AT_ASK_TOLERANCE = 0.99

DTE_NEAR_TERM = 14
DTE_0DTE = 0

CONTRACT_MULTIPLIER = 100

# [O:]ROOT YYMMDD C|P STRIKE(x1000)
_OCC_PATTERN = re.compile(r"([A-Z]+)([0-9]{6})([CP])([0-9]+)")


@dataclass(frozen=True)
class TradeInput:
    price: float
    size: float


@dataclass(frozen=True)
class QuoteInput:
    bid: float
    ask: float
    iv: Optional[float] = None
    delta: Optional[float] = None


@dataclass(frozen=True)
class ContractDetails:
    ticker: str
    strike: float
    expiration: str
    open_interest: Optional[float] = None
    volume: Optional[float] = None


def parse_occ_symbol(ticker: str) -> Tuple[str, OptionType]:
    """
    Return (underlying root, option type) from an OCC-style contract symbol.

    Unparsable symbols yield ``("UNKNOWN", PUT)``.
    """
    symbol = ticker[2:] if ticker.startswith("O:") else ticker
    match = _OCC_PATTERN.search(symbol)
    if not match:
        return "UNKNOWN", OptionType.PUT
    option_type = OptionType.CALL if match.group(3) == "C" else OptionType.PUT
    return match.group(1), option_type


def days_to_expiry(expiration: str, now: Optional[float] = None) -> Optional[int]:
    """Whole days between today's UTC date and the expiration's UTC date."""
    expiry_date = parse_iso_date(expiration)
    if expiry_date is None:
        return None
    return (expiry_date - utc_date(now)).days


def classify_intent(is_buy: bool, option_type: OptionType) -> TradeIntent:
    if is_buy:
        return TradeIntent.BULLISH_BUY if option_type == OptionType.CALL else TradeIntent.BEARISH_BUY
    return TradeIntent.BEARISH_SELL if option_type == OptionType.CALL else TradeIntent.BULLISH_SELL


def score_unusual_trade(
    trade: TradeInput,
    quote: QuoteInput,
    details: ContractDetails,
    underlying_price: float,
    now: Optional[float] = None,
) -> Optional[UnusualTradeCandidate]:
    """
    Score a single trade print against its quote and contract details.

    Returns None when the quote is unusable (crossed, negative, zero
    midpoint) or the spread exceeds 40% of the midpoint.
    """
    if now is None:
        now = now_seconds()

    if quote.bid < 0 or quote.ask < quote.bid:
        return None
    mid = (quote.bid + quote.ask) / 2
    if mid <= 0:
        return None

    premium = trade.price * trade.size * CONTRACT_MULTIPLIER
    spread = (quote.ask - quote.bid) / mid
    if spread > MAX_SPREAD_REJECT:
        return None

    penalty = 0
    if trade.size < MIN_TRADE_SIZE:
        penalty += PENALTY_SMALL_SIZE
    if premium < MIN_PREMIUM_USD:
        penalty += PENALTY_SMALL_PREMIUM
    if underlying_price < MIN_PRICE:
        penalty += PENALTY_LOW_PRICE

    underlying, option_type = parse_occ_symbol(details.ticker)
    intent = classify_intent(trade.price >= mid, option_type)

    score = BASE_SCORE - penalty

    # A. Premium
    if premium > 50_000:
        score += 5
    if premium > 100_000:
        score += 10
    if premium > 500_000:
        score += 10

    # B. Spread quality
    if spread < 0.01:
        score += 10
    elif spread < 0.05:
        score += 5

    # C. Volume / OI
    volume = details.volume or 0
    oi = details.open_interest or 0
    ratio = volume / oi if oi > 0 else 0.0
    if ratio > 1.5:
        score += 5
    if ratio > 3.0:
        score += 10
    if ratio > 5.0:
        score += 5

    # D. At-ask conviction
    if trade.price >= quote.ask * AT_ASK_TOLERANCE:
        score += SCORE_BOOST_AT_ASK

    # E. Expiry; 0DTE is flagged but not boosted, expired contracts get nothing
    dte = days_to_expiry(details.expiration, now)
    flags: List[str] = []
    if dte is not None:
        if dte == DTE_0DTE:
            flags.append("0DTE")
        elif 0 < dte <= DTE_NEAR_TERM:
            flags.append("NEAR_TERM")
            score += 5

    if ratio > 5:
        flags.append("HIGH_VOL_OI")
    if spread > 0.10:
        flags.append("WIDE_SPREAD")

    score = min(100, max(0, score))

    return UnusualTradeCandidate(
        underlying=underlying,
        contract=details.ticker,
        option_type=option_type,
        strike=details.strike,
        expiry=details.expiration,
        dte=dte,
        premium=premium,
        size=trade.size,
        price=trade.price,
        underlying_price=underlying_price,
        vol_to_oi=ratio,
        spread_pct=spread,
        bid=quote.bid,
        ask=quote.ask,
        intent=intent,
        flags=tuple(flags),
        score=score,
        timestamp_ms=to_epoch_ms(now),
        iv=quote.iv,
        delta=quote.delta,
    )


def score_contract_activity(
    snapshot: OptionQuoteSnapshot,
    now: Optional[float] = None,
) -> ContractActivity:
    """
    Rank a contract's day activity without a trade print.

    Vol/OI dominates; raw volume, spread, gamma, delta and expiry add smaller
    increments. Extreme vol/OI overrides the total.
    """
    volume = snapshot.day_volume or 0
    oi = snapshot.open_interest or 1
    spread = (snapshot.ask or 0) - (snapshot.bid or 0)
    price = snapshot.last_trade_price or 0.01
    delta = abs(snapshot.delta or 0)
    gamma = snapshot.gamma or 0

    vol_oi = volume / oi
    if vol_oi > 10:
        vol_oi_score = 60
    elif vol_oi > 5:
        vol_oi_score = 50
    elif vol_oi > 3:
        vol_oi_score = 40
    elif vol_oi > 1.5:
        vol_oi_score = 20
    else:
        vol_oi_score = 5

    if volume > 50_000:
        rel_vol_score = 30
    elif volume > 10_000:
        rel_vol_score = 20
    elif volume > 5_000:
        rel_vol_score = 15
    elif volume > 1_000:
        rel_vol_score = 10
    else:
        rel_vol_score = 0

    spread_pct = spread / price
    spread_score = 10 if spread_pct < 0.02 else (5 if spread_pct < 0.05 else 0)
    gamma_score = 10 if gamma > 0.05 else 0
    delta_score = 5 if 0.30 <= delta <= 0.60 else 0

    dte = days_to_expiry(snapshot.expiration_date, now)
    dte_score = 5 if dte is not None and abs(dte) <= 1 else 0

    breakdown: Dict[str, int] = {
        "vol_oi_score": vol_oi_score,
        "rel_vol_score": rel_vol_score,
        "spread_score": spread_score,
        "gamma_score": gamma_score,
        "delta_score": delta_score,
        "dte_score": dte_score,
    }
    total = sum(breakdown.values())
    if vol_oi > 5 and volume > 1_000:
        total = max(total, 95)
    if vol_oi > 10 and volume > 5_000:
        total = 100
    total = min(total, 100)

    return ContractActivity(snapshot=snapshot, vol_to_oi=vol_oi, score=total, breakdown=breakdown)


def rank_contract_activity(
    chain: List[OptionQuoteSnapshot],
    min_volume: float = 50,
    now: Optional[float] = None,
) -> List[ContractActivity]:
    scored = [
        score_contract_activity(contract, now)
        for contract in chain
        if (contract.day_volume or 0) >= min_volume
    ]
    return sorted(scored, key=lambda item: item.score, reverse=True)
