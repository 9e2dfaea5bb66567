"""Typed structures for the options analytics domain.

Keep these as simple, serializable structures. Do not embed strategy logic here.
Market fields are Optional: ``None`` means the provider did not supply the
value, which is not the same thing as a legitimate zero.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, is_dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class OptionType(str, Enum):
    CALL = "call"
    PUT = "put"


class TradeIntent(str, Enum):
    BULLISH_BUY = "BULLISH_BUY"
    BEARISH_BUY = "BEARISH_BUY"
    BULLISH_SELL = "BULLISH_SELL"
    BEARISH_SELL = "BEARISH_SELL"
    NEUTRAL = "NEUTRAL"


class TradeSide(str, Enum):
    ASK = "Ask"
    BID = "Bid"
    MID = "Mid"
    UNKNOWN = "Unknown"


class Regime(str, Enum):
    LONG_GAMMA = "LongGamma"
    SHORT_GAMMA = "ShortGamma"
    NEUTRAL = "Neutral"


class PriceVsVwap(str, Enum):
    ABOVE = "Above"
    BELOW = "Below"
    AT = "At"
    UNKNOWN = "Unknown"


class Bias(str, Enum):
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NO_TRADE = "NoTrade"


@dataclass(frozen=True)
class OptionQuoteSnapshot:
    """One contract's point-in-time market state."""
    contract_symbol: str
    underlying_symbol: str
    strike: Optional[float]
    option_type: Optional[OptionType]
    expiration_date: str
    bid: Optional[float] = None
    ask: Optional[float] = None
    last_trade_price: Optional[float] = None
    last_trade_size: Optional[float] = None
    day_volume: Optional[float] = None
    day_vwap: Optional[float] = None
    open_interest: Optional[float] = None
    delta: Optional[float] = None
    gamma: Optional[float] = None
    theta: Optional[float] = None
    vega: Optional[float] = None
    implied_volatility: Optional[float] = None
    underlying_price: Optional[float] = None

    @property
    def is_valid_quote(self) -> bool:
        if self.bid is None or self.ask is None:
            return False
        return self.ask >= self.bid >= 0

    @property
    def mid(self) -> Optional[float]:
        if not self.is_valid_quote:
            return None
        return (self.bid + self.ask) / 2


@dataclass(frozen=True)
class TradePrint:
    price: float
    size: float
    timestamp_ms: int


@dataclass(frozen=True)
class MinuteBar:
    open: float
    high: float
    low: float
    close: float
    volume: float
    start_ms: int
    vwap: Optional[float] = None


@dataclass(frozen=True)
class UnusualTradeCandidate:
    underlying: str
    contract: str
    option_type: OptionType
    strike: float
    expiry: str
    dte: Optional[int]
    premium: float
    size: float
    price: float
    underlying_price: float
    vol_to_oi: float
    spread_pct: float
    bid: float
    ask: float
    intent: TradeIntent
    flags: Tuple[str, ...]
    score: float
    timestamp_ms: int
    iv: Optional[float] = None
    delta: Optional[float] = None


@dataclass(frozen=True)
class ContractActivity:
    """Contract-level unusual-activity rank (no trade print required)."""
    snapshot: OptionQuoteSnapshot
    vol_to_oi: float
    score: int
    breakdown: Dict[str, int]


@dataclass(frozen=True)
class GammaRegime:
    regime: Regime
    net_gamma_usd: float
    net_delta: float
    gamma_flip: bool


@dataclass(frozen=True)
class FlowBurst:
    strike: float
    option_type: OptionType
    notional: float
    timestamp: str
    side: TradeSide = TradeSide.UNKNOWN


@dataclass(frozen=True)
class FlowImbalance:
    overall: float = 0.0
    atm: float = 0.0


@dataclass
class FlowAggregates:
    call_ask_notional: float = 0.0
    put_ask_notional: float = 0.0
    call_bid_notional: float = 0.0
    put_bid_notional: float = 0.0
    atm_call_ask_notional: float = 0.0
    atm_put_ask_notional: float = 0.0
    call_volume: float = 0.0
    put_volume: float = 0.0
    rvol_like: Optional[float] = None
    bursts: List[FlowBurst] = field(default_factory=list)
    normalized_imbalance: FlowImbalance = field(default_factory=FlowImbalance)


@dataclass(frozen=True)
class VwapContext:
    vwap: Optional[float]
    price_vs_vwap: PriceVsVwap
    vwap_distance_pct: float

    @classmethod
    def unknown(cls) -> "VwapContext":
        return cls(vwap=None, price_vs_vwap=PriceVsVwap.UNKNOWN, vwap_distance_pct=0.0)


@dataclass(frozen=True)
class WallSet:
    call_wall: Optional[float]
    put_wall: Optional[float]
    dist_to_call_wall_pct: Optional[float]
    dist_to_put_wall_pct: Optional[float]
    max_pain: Optional[float] = None


@dataclass(frozen=True)
class BiasScore:
    bull: float
    bear: float
    net: float


@dataclass(frozen=True)
class BiasResponse:
    bias: Bias
    confidence: float
    reasons: List[str]
    regime: GammaRegime
    flow: FlowAggregates
    context: VwapContext
    score: BiasScore
    walls: WallSet


@dataclass(frozen=True)
class OdteContext:
    context: VwapContext
    regime: GammaRegime
    walls: WallSet
    last_price: float


def _json_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_value(v) for v in value]
    return value


def to_dict(record: Any) -> Dict[str, Any]:
    """Serialize a domain dataclass into a JSON-ready dict (enums as values)."""
    if not is_dataclass(record):
        raise TypeError(f"Expected dataclass instance, got {type(record).__name__}")
    return _json_value(asdict(record))
