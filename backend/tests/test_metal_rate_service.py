"""
Tests for the spot price cache
"""
import threading
from decimal import Decimal
from unittest.mock import patch

import httpx
import pytest
from sqlalchemy import func, select

from halal_tools.core.config import get_settings
from halal_tools.models.metal_rate import MetalRate
from halal_tools.services.metal_rate_service import (MetalRateFetchError,
                                                     MetalRateService,
                                                     per_gram)


def _transport(payload=None, status_code=200, exc=None, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if exc is not None:
            raise exc
        return httpx.Response(status_code, json=payload)
    return httpx.MockTransport(handler)


def _count(db):
    return db.execute(select(func.count(MetalRate.id))).scalar_one()


def test_per_gram_rounds_half_up():
    assert per_gram(930000) == Decimal("29900.17")
    assert per_gram("31.1035") == Decimal("1.00")
    assert per_gram(0.1555175) == Decimal("0.01")  # exactly 0.005 per gram


@pytest.mark.parametrize("bad", [0, -5, "abc", None])
def test_per_gram_rejects_non_prices(bad):
    with pytest.raises(MetalRateFetchError):
        per_gram(bad)


@pytest.mark.asyncio
async def test_refresh_stores_live_rates(db):
    seen = []
    payload = {"success": True, "rates": {"PKRXAU": 930000, "PKRXAG": 10500}}
    service = MetalRateService(db, transport=_transport(payload, seen=seen))

    snapshot = await service.refresh()

    assert snapshot.gold == Decimal("29900.17")
    assert snapshot.silver == Decimal("337.58")
    assert snapshot.is_fallback is False
    params = seen[0].url.params
    assert params["base"] == "PKR"
    assert params["currencies"] == "XAU,XAG"
    assert params["api_key"] == "test-metal-key"


@pytest.mark.asyncio
async def test_failure_appends_fallback_copy(db):
    payload = {"rates": {"PKRXAU": 930000, "PKRXAG": 10500}}
    await MetalRateService(db, transport=_transport(payload)).refresh()

    failing = MetalRateService(db, transport=_transport(exc=httpx.ConnectTimeout("timed out")))
    fallback = await failing.refresh()

    assert fallback.is_fallback is True
    assert fallback.gold == Decimal("29900.17")
    assert fallback.silver == Decimal("337.58")
    assert _count(db) == 2

    latest = failing.get_latest()
    assert latest.id == fallback.id
    assert latest.is_fallback is True


@pytest.mark.asyncio
async def test_refresh_writes_outside_the_event_loop_thread(db):
    loop_thread = threading.get_ident()
    writer_threads = []
    original_append = MetalRateService._append

    def tracking_append(self, snapshot):
        writer_threads.append(threading.get_ident())
        original_append(self, snapshot)

    payload = {"rates": {"PKRXAU": 930000, "PKRXAG": 10500}}
    with patch.object(MetalRateService, "_append", tracking_append):
        await MetalRateService(db, transport=_transport(payload)).refresh()
        await MetalRateService(db, transport=_transport(exc=httpx.ConnectError("refused"))).refresh()

    assert len(writer_threads) == 2
    assert loop_thread not in writer_threads
    assert _count(db) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("payload, status_code", [
    ({"rates": {"PKRXAU": 930000}}, 200),
    ({"rates": {}}, 200),
    ({"error": "invalid key"}, 200),
    ({"message": "server error"}, 500),
])
async def test_bad_responses_fall_back(db, payload, status_code):
    db.add(MetalRate(gold=Decimal("100.00"), silver=Decimal("2.00"), is_fallback=False))
    db.commit()
    service = MetalRateService(db, transport=_transport(payload, status_code=status_code))

    snapshot = await service.refresh()

    assert snapshot.is_fallback is True
    assert snapshot.gold == Decimal("100.00")
    assert _count(db) == 2


@pytest.mark.asyncio
async def test_failure_without_history_appends_nothing(db):
    service = MetalRateService(db, transport=_transport(exc=httpx.ConnectError("refused")))

    assert await service.refresh() is None
    assert _count(db) == 0
    assert service.get_latest() is None


@pytest.mark.asyncio
async def test_missing_api_key_falls_back(db):
    settings = get_settings().model_copy(update={"metal_api_key": None})
    seen = []
    service = MetalRateService(db, settings=settings, transport=_transport({}, seen=seen))

    assert await service.refresh() is None
    assert seen == []


@pytest.mark.asyncio
async def test_base_currency_is_configurable(db):
    settings = get_settings().model_copy(update={"metal_base_currency": "USD"})
    payload = {"rates": {"USDXAU": 3110.35, "USDXAG": 31.1035}}
    service = MetalRateService(db, settings=settings, transport=_transport(payload))

    snapshot = await service.refresh()

    assert snapshot.gold == Decimal("100.00")
    assert snapshot.silver == Decimal("1.00")
