"""Intraday VWAP context from minute bars."""
from typing import Sequence

from app.domain.options.models.types import MinuteBar, PriceVsVwap, VwapContext

# Band around VWAP treated as "At" (0.05%)
AT_VWAP_BAND = 0.0005


def compute_vwap_context(bars: Sequence[MinuteBar]) -> VwapContext:
    """
    VWAP over the session's bars and where the last close sits relative to it.

    Each bar contributes its own VWAP when the provider supplies one, else
    the typical price (h + l + c) / 3.
    """
    if not bars:
        return VwapContext.unknown()

    total_pv = 0.0
    total_volume = 0.0
    for bar in bars:
        price = bar.vwap if bar.vwap else (bar.high + bar.low + bar.close) / 3
        total_pv += price * bar.volume
        total_volume += bar.volume

    if total_volume <= 0:
        return VwapContext.unknown()

    vwap = total_pv / total_volume
    if vwap <= 0:
        return VwapContext.unknown()

    last_price = bars[-1].close
    if last_price > vwap * (1 + AT_VWAP_BAND):
        position = PriceVsVwap.ABOVE
    elif last_price < vwap * (1 - AT_VWAP_BAND):
        position = PriceVsVwap.BELOW
    else:
        position = PriceVsVwap.AT

    return VwapContext(
        vwap=vwap,
        price_vs_vwap=position,
        vwap_distance_pct=(last_price - vwap) / vwap * 100,
    )
