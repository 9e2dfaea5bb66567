import pytest

from app.domain.options.analytics.gamma_exposure import delta_exposure, signed_gamma_exposure
from app.domain.options.analytics.wall_engine import compute_walls, strike_gamma_profile
from app.domain.options.models.types import OptionType

SPOT = 450.0


def test_signed_gamma_exposure_negates_puts(contract_factory):
    call = contract_factory(450, OptionType.CALL, gamma=0.05, open_interest=1000)
    put = contract_factory(450, OptionType.PUT, gamma=0.05, open_interest=1000)
    assert signed_gamma_exposure(call, SPOT) == pytest.approx(2_250_000)
    assert signed_gamma_exposure(put, SPOT) == pytest.approx(-2_250_000)


def test_exposure_is_none_without_inputs(contract_factory):
    no_gamma = contract_factory(450, OptionType.CALL, gamma=None)
    no_oi = contract_factory(450, OptionType.CALL, open_interest=None, delta=0.5)
    assert signed_gamma_exposure(no_gamma, SPOT) is None
    assert signed_gamma_exposure(no_oi, SPOT) is None
    assert delta_exposure(no_oi) is None


def test_delta_exposure_keeps_put_sign(contract_factory):
    put = contract_factory(440, OptionType.PUT, delta=-0.4, open_interest=1000)
    assert delta_exposure(put) == pytest.approx(-40_000)


def test_walls_pick_extreme_strikes(contract_factory):
    chain = [
        contract_factory(445, OptionType.PUT, open_interest=3000),
        contract_factory(450, OptionType.CALL, open_interest=1000),
        contract_factory(455, OptionType.CALL, open_interest=2000),
        contract_factory(440, OptionType.PUT, open_interest=1000),
    ]
    walls = compute_walls(chain, SPOT)

    assert walls.call_wall == 455
    assert walls.put_wall == 445
    assert walls.dist_to_call_wall_pct == pytest.approx(5 / 450 * 100)
    assert walls.dist_to_put_wall_pct == pytest.approx(-5 / 450 * 100)
    assert walls.max_pain is None


def test_strike_profile_nets_calls_against_puts(contract_factory):
    chain = [
        contract_factory(450, OptionType.CALL, open_interest=3000),
        contract_factory(450, OptionType.PUT, open_interest=1000),
    ]
    profile = strike_gamma_profile(chain, SPOT)
    assert profile == {450: pytest.approx(2 * 2_250_000)}


def test_all_call_chain_has_no_put_wall(contract_factory):
    chain = [
        contract_factory(450, OptionType.CALL),
        contract_factory(455, OptionType.CALL, open_interest=5000),
    ]
    walls = compute_walls(chain, SPOT)
    assert walls.call_wall == 455
    assert walls.put_wall is None
    assert walls.dist_to_put_wall_pct is None


def test_empty_chain_has_no_walls():
    walls = compute_walls([], SPOT)
    assert walls.call_wall is None
    assert walls.put_wall is None
    assert walls.dist_to_call_wall_pct is None


def test_contracts_without_gamma_are_skipped(contract_factory):
    chain = [
        contract_factory(460, OptionType.CALL, gamma=None, open_interest=100_000),
        contract_factory(450, OptionType.CALL),
    ]
    assert compute_walls(chain, SPOT).call_wall == 450
