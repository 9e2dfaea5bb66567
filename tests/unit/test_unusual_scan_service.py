from datetime import datetime, timezone

import pytest

from app.domain.options.models.types import OptionType, TradeIntent
from app.infrastructure.market_data.types import ProviderError
from app.services.unusual_scan_service import (
    UnusualScanService,
    candidate_from_snapshot,
    filter_candidates,
)

NOW = datetime(2026, 10, 16, 15, 0, tzinfo=timezone.utc).timestamp()


def test_candidate_uses_day_vwap_as_price(contract_factory):
    contract = contract_factory(450, OptionType.CALL, day_vwap=1.08, day_volume=100)
    candidate = candidate_from_snapshot(contract, min_volume=5, now=NOW)
    assert candidate.price == 1.08
    assert candidate.size == 100
    assert candidate.premium == pytest.approx(1.08 * 100 * 100)
    assert candidate.intent == TradeIntent.BULLISH_BUY


def test_candidate_falls_back_to_mid(contract_factory):
    contract = contract_factory(450, OptionType.PUT, day_volume=100)
    candidate = candidate_from_snapshot(contract, min_volume=5, now=NOW)
    assert candidate.price == pytest.approx(1.05)


@pytest.mark.parametrize(
    "overrides",
    [{"bid": None}, {"ask": None}, {"underlying_price": None}, {"day_volume": 2}],
)
def test_candidate_skips_unusable_snapshots(contract_factory, overrides):
    contract = contract_factory(450, OptionType.CALL, **overrides)
    assert candidate_from_snapshot(contract, min_volume=5, now=NOW) is None


def test_filter_candidates(contract_factory):
    quiet = candidate_from_snapshot(contract_factory(450, OptionType.CALL, day_volume=100), 5, NOW)
    loud = candidate_from_snapshot(
        contract_factory(455, OptionType.CALL, day_volume=5000, open_interest=500, bid=1.08, ask=1.10), 5, NOW,
    )
    put = candidate_from_snapshot(contract_factory(440, OptionType.PUT, day_volume=100), 5, NOW)
    everything = [quiet, loud, put]

    assert filter_candidates(everything, min_premium=100_000) == [loud]
    assert filter_candidates(everything, flags=["0DTE", "HIGH_VOL_OI"]) == [loud]
    assert filter_candidates(everything, intents=[TradeIntent.BEARISH_BUY]) == [put]
    assert filter_candidates(everything, min_score=loud.score + 1) == []
    assert filter_candidates(everything) == everything


class FailingChainProvider:
    def __init__(self, inner, failing):
        self._inner = inner
        self._failing = failing

    async def get_chain_snapshot(self, underlying, expiration_date=None):
        if underlying in self._failing:
            raise ProviderError("chain unavailable")
        return await self._inner.get_chain_snapshot(underlying, expiration_date)


class TestUnusualScanService:
    @pytest.mark.asyncio
    async def test_scan_ticker_keeps_candidates_above_min_score(self, provider_factory, contract_factory):
        provider = provider_factory(chain=[
            contract_factory(450, OptionType.CALL, day_volume=100),
            contract_factory(455, OptionType.CALL, day_volume=1),
        ])
        service = UnusualScanService(provider)

        found = await service.scan_ticker("SPY", now=NOW)

        assert len(found) == 1
        assert found[0].strike == 450

    @pytest.mark.asyncio
    async def test_scan_ranks_across_tickers(self, provider_factory, contract_factory):
        provider = provider_factory()
        provider.chains["SPY"] = [contract_factory(450, OptionType.CALL, day_volume=100)]
        provider.chains["AAPL"] = [
            contract_factory(230, OptionType.CALL, underlying="AAPL", day_volume=5000,
                             open_interest=500, bid=1.08, ask=1.10, underlying_price=231.0),
        ]
        service = UnusualScanService(provider)

        found = await service.scan(["spy", "aapl"])

        assert [c.underlying for c in found] == ["AAPL", "SPY"]
        assert found[0].score >= found[1].score

    @pytest.mark.asyncio
    async def test_exclude_indices(self, provider_factory):
        provider = provider_factory()
        service = UnusualScanService(provider)

        await service.scan(["SPY", "QQQ", "AAPL"], exclude_indices=True)

        assert provider.chain_calls == ["AAPL"]

    @pytest.mark.asyncio
    async def test_failed_ticker_is_skipped(self, provider_factory, contract_factory):
        inner = provider_factory()
        inner.chains["AAPL"] = [
            contract_factory(230, OptionType.CALL, underlying="AAPL", underlying_price=231.0),
        ]
        service = UnusualScanService(FailingChainProvider(inner, {"SPY"}))

        found = await service.scan(["SPY", "AAPL"])

        assert [c.underlying for c in found] == ["AAPL"]

    @pytest.mark.asyncio
    async def test_rank_activity_orders_chain(self, provider_factory, contract_factory):
        provider = provider_factory()
        provider.chains["SPY"] = [
            contract_factory(440, OptionType.PUT, day_volume=60, open_interest=1000),
            contract_factory(450, OptionType.CALL, day_volume=6000, open_interest=500),
            contract_factory(455, OptionType.CALL, day_volume=10),
        ]
        service = UnusualScanService(provider)

        ranked = await service.rank_activity("spy", min_volume=50, now=NOW)

        assert [a.snapshot.strike for a in ranked] == [450, 440]
        assert ranked[0].score == 100
        assert provider.chain_calls == ["SPY"]

    @pytest.mark.asyncio
    async def test_rank_activity_propagates_provider_error(self, provider_factory):
        service = UnusualScanService(FailingChainProvider(provider_factory(), {"SPY"}))

        with pytest.raises(ProviderError):
            await service.rank_activity("SPY")
