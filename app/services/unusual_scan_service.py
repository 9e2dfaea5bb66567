"""
Unusual options scan.

Walks a list of underlyings, scores every contract in each chain snapshot as
if its whole day volume had printed at the day VWAP, and returns the
surviving candidates ranked by score. Also ranks a single chain by
contract-level activity without a trade print.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from app.config import Settings, settings as default_settings
from app.domain.options.analytics.unusual_scorer import (
    ContractDetails,
    QuoteInput,
    TradeInput,
    rank_contract_activity,
    score_unusual_trade,
)
from app.domain.options.models.types import (
    ContractActivity,
    OptionQuoteSnapshot,
    TradeIntent,
    UnusualTradeCandidate,
)
from app.infrastructure.market_data.types import OptionsDataProvider, ProviderError
from app.utils.time import now_seconds

logger = logging.getLogger(__name__)

SCAN_UNIVERSE = [
    # Tech / high vol
    "SPY", "QQQ", "IWM", "AAPL", "MSFT", "NVDA", "AMD", "TSLA", "AMZN", "GOOGL", "META", "NFLX",
    # Semis / AI
    "SMCI", "AVGO", "MU", "ARM", "INTC", "TSM",
    # Crypto
    "COIN", "MSTR", "MARA",
    # Growth
    "PLTR", "SOFI", "HOOD", "RIVN", "DKNG",
    # Financials
    "JPM", "BAC", "GS", "V", "MA",
    # Retail
    "WMT", "TGT", "COST",
    # Energy
    "XOM", "CVX",
    # Industrial
    "BA", "CAT",
    # Pharma
    "LLY", "NVO",
]

INDEX_TICKERS = {"SPY", "QQQ", "IWM", "DIA"}


def candidate_from_snapshot(
    contract: OptionQuoteSnapshot,
    min_volume: float,
    now: Optional[float] = None,
) -> Optional[UnusualTradeCandidate]:
    """Score a snapshot's day activity; None if it lacks a quote, spot or volume."""
    if contract.bid is None or contract.ask is None or not contract.underlying_price:
        return None
    volume = contract.day_volume or 0
    if volume < min_volume:
        return None

    price = contract.day_vwap or (contract.bid + contract.ask) / 2
    return score_unusual_trade(
        TradeInput(price=price, size=volume),
        QuoteInput(
            bid=contract.bid,
            ask=contract.ask,
            iv=contract.implied_volatility,
            delta=contract.delta,
        ),
        ContractDetails(
            ticker=contract.contract_symbol,
            strike=contract.strike or 0.0,
            expiration=contract.expiration_date,
            open_interest=contract.open_interest,
            volume=volume,
        ),
        contract.underlying_price,
        now,
    )


def filter_candidates(
    candidates: Iterable[UnusualTradeCandidate],
    min_score: float = 0,
    min_premium: float = 0,
    intents: Optional[Sequence[TradeIntent]] = None,
    flags: Optional[Sequence[str]] = None,
) -> List[UnusualTradeCandidate]:
    """Presentation-side filter; ``flags`` requires every listed flag."""
    wanted_intents = set(intents) if intents else None
    wanted_flags = set(flags) if flags else set()
    result = []
    for candidate in candidates:
        if candidate.score < min_score or candidate.premium < min_premium:
            continue
        if wanted_intents is not None and candidate.intent not in wanted_intents:
            continue
        if not wanted_flags.issubset(candidate.flags):
            continue
        result.append(candidate)
    return result


class UnusualScanService:
    def __init__(self, provider: OptionsDataProvider, settings: Optional[Settings] = None):
        cfg = settings or default_settings
        self._provider = provider
        self.min_score = cfg.SCAN_MIN_SCORE
        self.min_volume = cfg.SCAN_MIN_VOLUME

    async def scan_ticker(self, ticker: str, now: Optional[float] = None) -> List[UnusualTradeCandidate]:
        if now is None:
            now = now_seconds()
        try:
            chain = await self._provider.get_chain_snapshot(ticker)
        except ProviderError as exc:
            logger.warning("Unusual scan failed for %s: %s", ticker, exc)
            return []

        results = []
        for contract in chain:
            candidate = candidate_from_snapshot(contract, self.min_volume, now)
            if candidate is not None and candidate.score > self.min_score:
                results.append(candidate)
        return results

    async def scan(
        self,
        tickers: Optional[Sequence[str]] = None,
        exclude_indices: bool = False,
    ) -> List[UnusualTradeCandidate]:
        """Scan tickers one after another and rank every candidate found."""
        targets = [t.upper() for t in (tickers or SCAN_UNIVERSE)]
        if exclude_indices:
            targets = [t for t in targets if t not in INDEX_TICKERS]

        now = now_seconds()
        candidates: List[UnusualTradeCandidate] = []
        for ticker in targets:
            found = await self.scan_ticker(ticker, now)
            logger.debug("Unusual scan %s: %d candidates", ticker, len(found))
            candidates.extend(found)

        candidates.sort(key=lambda c: c.score, reverse=True)
        logger.info("Unusual scan: %d tickers, %d candidates", len(targets), len(candidates))
        return candidates

    async def rank_activity(
        self,
        ticker: str,
        min_volume: float = 50,
        now: Optional[float] = None,
    ) -> List[ContractActivity]:
        """Contract-level activity ranking for one chain; ProviderError propagates."""
        ticker = ticker.upper()
        chain = await self._provider.get_chain_snapshot(ticker)
        ranked = rank_contract_activity(chain, min_volume=min_volume, now=now)
        logger.debug("Activity rank %s: %d of %d contracts", ticker, len(ranked), len(chain))
        return ranked
