"""Call/put walls from per-strike dealer gamma exposure."""
import logging
from typing import Dict, Iterable, Optional

from app.domain.options.analytics.gamma_exposure import signed_gamma_exposure
from app.domain.options.models.types import OptionQuoteSnapshot, WallSet

logger = logging.getLogger(__name__)


def _distance_pct(wall: Optional[float], spot_price: float) -> Optional[float]:
    if wall is None or spot_price <= 0:
        return None
    return (wall - spot_price) / spot_price * 100


def strike_gamma_profile(
    contracts: Iterable[OptionQuoteSnapshot],
    spot_price: float,
) -> Dict[float, float]:
    """Sum signed gamma exposure per strike."""
    profile: Dict[float, float] = {}
    for contract in contracts:
        if contract.strike is None:
            continue
        gex = signed_gamma_exposure(contract, spot_price)
        if gex is None:
            continue
        profile[contract.strike] = profile.get(contract.strike, 0.0) + gex
    return profile


def compute_walls(contracts: Iterable[OptionQuoteSnapshot], spot_price: float) -> WallSet:
    """
    Call wall: strike with the largest positive aggregate exposure (resistance).
    Put wall: strike with the most negative aggregate exposure (support).
    """
    profile = strike_gamma_profile(contracts, spot_price)

    call_wall: Optional[float] = None
    put_wall: Optional[float] = None
    max_positive = 0.0
    max_negative = 0.0
    for strike, exposure in profile.items():
        if exposure > max_positive:
            max_positive = exposure
            call_wall = strike
        if exposure < max_negative:
            max_negative = exposure
            put_wall = strike

    logger.debug(
        "walls: %d strikes, call_wall=%s put_wall=%s", len(profile), call_wall, put_wall
    )
    return WallSet(
        call_wall=call_wall,
        put_wall=put_wall,
        dist_to_call_wall_pct=_distance_pct(call_wall, spot_price),
        dist_to_put_wall_pct=_distance_pct(put_wall, spot_price),
    )
