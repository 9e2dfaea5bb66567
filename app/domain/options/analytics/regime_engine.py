"""
GAMMA REGIME ENGINE
Net dealer gamma/delta for an underlying's chain and its regime label.

The caller owns the rolling history (one window per underlying); this module
only appends to it and reads it back.
"""
import logging
from typing import Iterable, Optional

from app.domain.options.analytics.gamma_exposure import delta_exposure, signed_gamma_exposure
from app.domain.options.models.types import GammaRegime, OptionQuoteSnapshot, Regime
from app.domain.options.state.expiring_cache import RollingWindow
from app.utils.time import now_seconds

logger = logging.getLogger(__name__)

LONG_GAMMA_THRESHOLD = 300_000_000
SHORT_GAMMA_THRESHOLD = -100_000_000
FLIP_THRESHOLD = 100_000_000


def net_exposures(contracts: Iterable[OptionQuoteSnapshot], spot_price: float) -> tuple[float, float]:
    net_gamma = 0.0
    net_delta = 0.0
    for contract in contracts:
        gex = signed_gamma_exposure(contract, spot_price)
        if gex is not None:
            net_gamma += gex
        dex = delta_exposure(contract)
        if dex is not None:
            net_delta += dex
    return net_gamma, net_delta


def classify_regime(net_gamma_usd: float) -> Regime:
    if net_gamma_usd > LONG_GAMMA_THRESHOLD:
        return Regime.LONG_GAMMA
    if net_gamma_usd < SHORT_GAMMA_THRESHOLD:
        return Regime.SHORT_GAMMA
    return Regime.NEUTRAL


def detect_gamma_flip(history: RollingWindow[float], current: float) -> bool:
    """
    True when the window saw one side of +/-100M and the current sample sits
    on the other side.
    """
    samples = history.values()
    if len(samples) <= 1:
        return False
    was_positive = any(value >= FLIP_THRESHOLD for value in samples)
    was_negative = any(value <= -FLIP_THRESHOLD for value in samples)
    current_positive = current >= FLIP_THRESHOLD
    current_negative = current <= -FLIP_THRESHOLD
    return (was_positive and current_negative) or (was_negative and current_positive)


def compute_regime(
    contracts: Iterable[OptionQuoteSnapshot],
    spot_price: float,
    history: RollingWindow[float],
    now: Optional[float] = None,
) -> GammaRegime:
    if now is None:
        now = now_seconds()

    net_gamma, net_delta = net_exposures(contracts, spot_price)
    history.append(net_gamma, now)
    gamma_flip = detect_gamma_flip(history, net_gamma)
    regime = classify_regime(net_gamma)

    logger.debug(
        "regime=%s net_gamma=%.0f net_delta=%.0f flip=%s window=%d",
        regime.value, net_gamma, net_delta, gamma_flip, len(history),
    )
    return GammaRegime(
        regime=regime,
        net_gamma_usd=net_gamma,
        net_delta=net_delta,
        gamma_flip=gamma_flip,
    )
