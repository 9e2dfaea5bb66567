"""Per-contract dealer exposure helpers shared by the wall and regime engines."""
from typing import Optional

from app.domain.options.models.types import OptionQuoteSnapshot, OptionType

CONTRACT_MULTIPLIER = 100


def signed_gamma_exposure(contract: OptionQuoteSnapshot, spot_price: float) -> Optional[float]:
    """
    Dealer gamma exposure in USD: gamma * OI * 100 * spot, negated for puts.

    None when gamma, open interest or option type is missing.
    """
    if contract.gamma is None or contract.open_interest is None or contract.option_type is None:
        return None
    gex = contract.gamma * contract.open_interest * CONTRACT_MULTIPLIER * spot_price
    return gex if contract.option_type == OptionType.CALL else -gex


def delta_exposure(contract: OptionQuoteSnapshot) -> Optional[float]:
    """delta * OI * 100; the contract's delta already carries the put sign."""
    if contract.delta is None or contract.open_interest is None:
        return None
    return contract.delta * contract.open_interest * CONTRACT_MULTIPLIER
