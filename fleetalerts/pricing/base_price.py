"""Cached base price and vehicle model lookups."""

from functools import partial
from typing import Any

from fleetalerts.core.config import get_settings
from fleetalerts.core.logging import get_logger
from fleetalerts.resilience.accessor import ResilientAccessor
from fleetalerts.storage.backend import RecordBackend

logger = get_logger(__name__)

BASE_PRICE_TTL_SECONDS = 300

ALL_BASE_PRICES_KEY = "base_prices_with_models"
VEHICLE_MODELS_KEY = "vehicle_models"


def base_price_key(vehicle_model_id: str) -> str:
    return f"base_price_{vehicle_model_id}"


class BasePriceService:
    """Read-through cache over the base price and vehicle model tables."""

    def __init__(self, backend: RecordBackend, accessor: ResilientAccessor | None = None):
        settings = get_settings()
        self._backend = backend
        self._accessor = accessor or ResilientAccessor.from_settings(
            name="base_prices",
            ttl_seconds=BASE_PRICE_TTL_SECONDS,
        )
        self._prices_table = settings.base_prices_table
        self._models_table = settings.vehicle_models_table

    @property
    def accessor(self) -> ResilientAccessor:
        return self._accessor

    @property
    def _price_columns(self) -> str:
        return f"*,vehicle_model:{self._models_table}(id,name,model,vehicle_type)"

    async def get_all_base_prices(self) -> list[dict[str, Any]]:
        """Active base prices with their vehicle model, newest first."""
        return await self._accessor.get_or_fetch(
            ALL_BASE_PRICES_KEY,
            partial(
                self._backend.select,
                self._prices_table,
                filters={"is_active": "eq.true"},
                order="updated_at.desc",
                columns=self._price_columns,
            ),
        )

    async def get_base_price(self, vehicle_model_id: str) -> dict[str, Any] | None:
        """Active base price of one vehicle model, None if it has none."""
        rows = await self._accessor.get_or_fetch(
            base_price_key(vehicle_model_id),
            partial(
                self._backend.select,
                self._prices_table,
                filters={"vehicle_model_id": f"eq.{vehicle_model_id}", "is_active": "eq.true"},
                columns=self._price_columns,
                limit=1,
            ),
        )
        return rows[0] if rows else None

    async def get_vehicle_models(self) -> list[dict[str, Any]]:
        """Active vehicle models ordered by name."""
        return await self._accessor.get_or_fetch(
            VEHICLE_MODELS_KEY,
            partial(
                self._backend.select,
                self._models_table,
                filters={"is_active": "eq.true"},
                order="name.asc",
                columns="id,name,model,vehicle_type",
            ),
        )

    async def get_batch_base_prices(self, vehicle_model_ids: list[str]) -> dict[str, dict[str, Any]]:
        """Fetch base prices for many models in one query and cache each one.

        Returns:
            Mapping of vehicle model id to base price row
        """
        if not vehicle_model_ids:
            return {}
        id_list = ",".join(str(model_id) for model_id in vehicle_model_ids)
        rows = await self._accessor.call(
            partial(
                self._backend.select,
                self._prices_table,
                filters={"vehicle_model_id": f"in.({id_list})", "is_active": "eq.true"},
                columns=self._price_columns,
            ),
            operation="batch_base_prices",
        )
        prices: dict[str, dict[str, Any]] = {}
        for row in rows:
            model_id = str(row.get("vehicle_model_id"))
            prices[model_id] = row
            self._accessor.prime(base_price_key(model_id), [row])
        logger.debug("Batch base prices loaded", requested=len(vehicle_model_ids), found=len(prices))
        return prices

    def invalidate(self, vehicle_model_id: str | None = None) -> None:
        """Drop cached prices after a write.

        Args:
            vehicle_model_id: Model whose price changed, None to drop every price
        """
        if vehicle_model_id is None:
            self._accessor.invalidate_prefix("base_price")
        else:
            self._accessor.invalidate(base_price_key(vehicle_model_id))
            self._accessor.invalidate(ALL_BASE_PRICES_KEY)
