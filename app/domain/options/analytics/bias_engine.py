"""
BIAS ENGINE
Combine regime, flow, VWAP and wall context into a Bullish / Bearish /
NoTrade verdict.

Scoring is additive: each rule adds points to the bull or bear side. The
verdict is then damped by the previous verdict for the same underlying
(hysteresis), and finally floored: nothing below 40 points trades.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from app.domain.options.models.types import (
    Bias,
    BiasResponse,
    BiasScore,
    FlowAggregates,
    GammaRegime,
    OptionType,
    PriceVsVwap,
    Regime,
    VwapContext,
    WallSet,
)
from app.domain.options.state.expiring_cache import ExpiringCache
from app.domain.options.state.market_state import BiasMemory
from app.utils.time import now_seconds

logger = logging.getLogger(__name__)

PIN_MIN_NET_GAMMA = 200_000_000
PIN_VWAP_BAND_PCT = 0.25
PIN_PENALTY = 20

ATM_IMBALANCE_THRESHOLD = 0.2
ATM_IMBALANCE_POINTS = 25
OVERALL_IMBALANCE_THRESHOLD = 0.15
OVERALL_IMBALANCE_POINTS = 10

MOMENTUM_POINTS = 20
REVERSION_EXTENSION_PCT = 0.5
REVERSION_POINTS = 15
WEAK_SUPPORT_POINTS = 5

BURST_POINTS = 15
WALL_PROXIMITY_PCT = 0.3
WALL_POINTS = 10

FLIP_NET_SCORE = 10
HOLD_BAND = 10
PROMOTE_NET_SCORE = 15
PROMOTE_MAX_SCORE = 45
MIN_TRADE_SCORE = 40
MAX_REASONS = 3

HOLDING_TREND_REASON = "(Holding Trend)"
LOW_SIGNAL_REASON = "Low Signal Strength"


class BiasEngine:
    """
    Bias classifier with per-underlying memory.

    ``memory`` is owned by the caller (see EngineState.bias_memory); entries
    older than its TTL are simply not seen.
    """

    def __init__(self, memory: ExpiringCache[str, BiasMemory]):
        self._memory = memory

    def classify(
        self,
        underlying: str,
        context: VwapContext,
        regime: GammaRegime,
        flow: FlowAggregates,
        walls: WallSet,
        now: Optional[float] = None,
    ) -> BiasResponse:
        if now is None:
            now = now_seconds()
        key = underlying.upper()
        self._memory.evict(now)

        bull = 0.0
        bear = 0.0
        reasons: List[str] = []

        # 1) Pinning: long gamma near VWAP suppresses both directions
        is_short_gamma = regime.regime == Regime.SHORT_GAMMA
        is_long_gamma = regime.regime == Regime.LONG_GAMMA
        pinned = (
            is_long_gamma
            and regime.net_gamma_usd >= PIN_MIN_NET_GAMMA
            and abs(context.vwap_distance_pct) < PIN_VWAP_BAND_PCT
        )
        if pinned:
            reasons.append("Pinned (Long Gamma + Near VWAP)")
            bull -= PIN_PENALTY
            bear -= PIN_PENALTY

        # 2) Flow imbalance; ATM carries the most weight
        atm = flow.normalized_imbalance.atm
        overall = flow.normalized_imbalance.overall
        if atm > ATM_IMBALANCE_THRESHOLD:
            bull += ATM_IMBALANCE_POINTS
            reasons.append(f"ATM Bulls (+{atm * 100:.0f}%)")
        elif atm < -ATM_IMBALANCE_THRESHOLD:
            bear += ATM_IMBALANCE_POINTS
            reasons.append(f"ATM Bears ({atm * 100:.0f}%)")

        if overall > OVERALL_IMBALANCE_THRESHOLD:
            bull += OVERALL_IMBALANCE_POINTS
        elif overall < -OVERALL_IMBALANCE_THRESHOLD:
            bear += OVERALL_IMBALANCE_POINTS

        # 3) VWAP structure: momentum in short gamma, reversion otherwise
        distance = context.vwap_distance_pct
        if context.price_vs_vwap == PriceVsVwap.ABOVE:
            if is_short_gamma:
                bull += MOMENTUM_POINTS
                reasons.append("Above VWAP (Momentum)")
            elif not pinned:
                if distance > REVERSION_EXTENSION_PCT:
                    bear += REVERSION_POINTS
                    reasons.append("Overextended (Long Gamma Reversion)")
                else:
                    bull += WEAK_SUPPORT_POINTS
        elif context.price_vs_vwap == PriceVsVwap.BELOW:
            if is_short_gamma:
                bear += MOMENTUM_POINTS
                reasons.append("Below VWAP (Momentum)")
            elif not pinned:
                if distance < -REVERSION_EXTENSION_PCT:
                    bull += REVERSION_POINTS
                    reasons.append("Oversold (Long Gamma Reversion)")
                else:
                    bear += WEAK_SUPPORT_POINTS

        # 4) Flip and bursts
        if regime.gamma_flip:
            reasons.append("Gamma Flip Detected")

        if any(b.option_type == OptionType.CALL for b in flow.bursts):
            bull += BURST_POINTS
            reasons.append("Call Burst")
        if any(b.option_type == OptionType.PUT for b in flow.bursts):
            bear += BURST_POINTS
            reasons.append("Put Burst")

        # 5) Wall proximity
        to_call = walls.dist_to_call_wall_pct
        to_put = walls.dist_to_put_wall_pct
        if to_call is not None and 0 < to_call < WALL_PROXIMITY_PCT:
            bear += WALL_POINTS
            reasons.append("Near Call Wall (Resistance)")
        if to_put is not None and -WALL_PROXIMITY_PCT < to_put < 0:
            bull += WALL_POINTS
            reasons.append("Near Put Wall (Support)")

        net = bull - bear
        max_score = max(bull, bear)
        bias = self._apply_hysteresis(key, net, reasons, now)

        if bias == Bias.NO_TRADE:
            if net > PROMOTE_NET_SCORE and max_score > PROMOTE_MAX_SCORE:
                bias = Bias.BULLISH
            elif net < -PROMOTE_NET_SCORE and max_score > PROMOTE_MAX_SCORE:
                bias = Bias.BEARISH

        if max_score < MIN_TRADE_SCORE:
            bias = Bias.NO_TRADE
        if bias == Bias.NO_TRADE and not reasons:
            reasons.append(LOW_SIGNAL_REASON)

        self._memory.set(key, BiasMemory(bias=bias, score=net, ts=now), now)

        confidence = 0.0 if bias == Bias.NO_TRADE else min(abs(net) + 50, 100)
        logger.debug(
            "%s bias=%s bull=%.0f bear=%.0f net=%.0f confidence=%.0f",
            key, bias.value, bull, bear, net, confidence,
        )
        return BiasResponse(
            bias=bias,
            confidence=confidence,
            reasons=reasons[:MAX_REASONS],
            regime=regime,
            flow=flow,
            context=context,
            score=BiasScore(bull=bull, bear=bear, net=net),
            walls=walls,
        )

    def _apply_hysteresis(self, key: str, net: float, reasons: List[str], now: float) -> Bias:
        """
        Resolve the verdict against the previous one still in memory.

        Returns NoTrade when the memory has nothing to say, leaving the
        decision to the promotion thresholds.
        """
        prior = self._memory.get(key, now)
        if prior is None:
            return Bias.NO_TRADE

        if prior.bias == Bias.BULLISH and net < -FLIP_NET_SCORE:
            return Bias.BEARISH
        if prior.bias == Bias.BEARISH and net > FLIP_NET_SCORE:
            return Bias.BULLISH
        if prior.bias != Bias.NO_TRADE and abs(net) < HOLD_BAND:
            reasons.insert(0, HOLDING_TREND_REASON)
            return prior.bias
        return Bias.NO_TRADE
