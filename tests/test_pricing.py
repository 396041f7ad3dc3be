"""Tests for cached price and transport fee lookups."""

import pytest

from conftest import FakeBackend, make_accessor
from fleetalerts.pricing.base_price import (
    ALL_BASE_PRICES_KEY,
    BasePriceService,
    base_price_key,
)
from fleetalerts.pricing.transport_fee import TransportFeeService, transport_fees_key


@pytest.fixture
def price_backend(settings) -> FakeBackend:
    return FakeBackend(
        {
            settings.base_prices_table: [
                {"id": "p1", "vehicle_model_id": "10", "daily_price": 450},
                {"id": "p2", "vehicle_model_id": "11", "daily_price": 600},
            ],
            settings.vehicle_models_table: [{"id": "10", "name": "AT5"}],
            settings.transport_fees_table: [
                {"id": 3, "org_id": "org1", "pickup_fee": 150, "dropoff_fee": 100, "currency": "MAD"},
            ],
        }
    )


@pytest.mark.asyncio
async def test_base_prices_are_cached(price_backend, settings) -> None:
    service = BasePriceService(price_backend, make_accessor(ttl_seconds=300))

    first = await service.get_all_base_prices()
    second = await service.get_all_base_prices()

    assert first == second
    assert price_backend.call_count(settings.base_prices_table) == 1


@pytest.mark.asyncio
async def test_single_base_price_and_models(price_backend, settings) -> None:
    service = BasePriceService(price_backend, make_accessor())

    price = await service.get_base_price("10")
    models = await service.get_vehicle_models()

    assert price["id"] == "p1"
    assert models == [{"id": "10", "name": "AT5"}]
    assert price_backend.calls[0]["limit"] == 1
    assert price_backend.calls[0]["filters"]["vehicle_model_id"] == "eq.10"


@pytest.mark.asyncio
async def test_missing_base_price_returns_none(settings) -> None:
    service = BasePriceService(FakeBackend({settings.base_prices_table: []}), make_accessor())

    assert await service.get_base_price("99") is None


@pytest.mark.asyncio
async def test_batch_lookup_primes_single_entries(price_backend, settings) -> None:
    service = BasePriceService(price_backend, make_accessor())

    prices = await service.get_batch_base_prices(["10", "11"])
    cached = await service.get_base_price("11")

    assert set(prices) == {"10", "11"}
    assert cached["id"] == "p2"
    assert price_backend.call_count(settings.base_prices_table) == 1
    assert price_backend.calls[0]["filters"]["vehicle_model_id"] == "in.(10,11)"


@pytest.mark.asyncio
async def test_batch_lookup_with_no_ids_skips_backend(price_backend) -> None:
    service = BasePriceService(price_backend, make_accessor())

    assert await service.get_batch_base_prices([]) == {}
    assert price_backend.calls == []


@pytest.mark.asyncio
async def test_invalidate_one_model_drops_the_list_too(price_backend) -> None:
    service = BasePriceService(price_backend, make_accessor())
    await service.get_all_base_prices()
    await service.get_base_price("10")
    await service.get_vehicle_models()

    service.invalidate("10")

    assert base_price_key("10") not in service.accessor
    assert ALL_BASE_PRICES_KEY not in service.accessor
    assert "vehicle_models" in service.accessor


@pytest.mark.asyncio
async def test_invalidate_all_prices(price_backend) -> None:
    service = BasePriceService(price_backend, make_accessor())
    await service.get_all_base_prices()
    await service.get_base_price("10")

    service.invalidate()

    assert len(service.accessor) == 0


@pytest.mark.asyncio
async def test_transport_fees_lookup_and_invalidate(price_backend, settings) -> None:
    service = TransportFeeService(price_backend, make_accessor())

    fees = await service.get_transport_fees("org1")
    await service.get_transport_fees("org1")

    assert fees.pickup_fee == 150
    assert fees.dropoff_fee == 100
    assert fees.id == "3"
    assert fees.is_default is False
    assert price_backend.call_count(settings.transport_fees_table) == 1

    service.invalidate("org1")
    assert transport_fees_key("org1") not in service.accessor


@pytest.mark.asyncio
async def test_transport_fees_default_when_unconfigured(settings) -> None:
    service = TransportFeeService(FakeBackend({settings.transport_fees_table: []}), make_accessor())

    fees = await service.get_transport_fees("org2")

    assert fees.is_default is True
    assert fees.pickup_fee == 0
    assert fees.org_id == "org2"
