"""Cached transport fee lookups."""

from datetime import datetime
from functools import partial

from pydantic import BaseModel, Field

from fleetalerts.core.config import get_settings
from fleetalerts.core.logging import get_logger
from fleetalerts.resilience.accessor import ResilientAccessor
from fleetalerts.storage.backend import RecordBackend

logger = get_logger(__name__)


class TransportFees(BaseModel):
    """Pickup and drop-off fees of one organization."""

    pickup_fee: float = Field(default=0.0, ge=0)
    dropoff_fee: float = Field(default=0.0, ge=0)
    currency: str = "MAD"
    id: str | None = None
    org_id: str | None = None
    updated_at: datetime | None = None
    is_default: bool = False


def transport_fees_key(org_id: str) -> str:
    return f"transport_fees/{org_id}"


class TransportFeeService:
    """Read-through cache over the transport fee table."""

    def __init__(self, backend: RecordBackend, accessor: ResilientAccessor | None = None):
        self._backend = backend
        self._accessor = accessor or ResilientAccessor.from_settings(name="transport_fees")
        self._table = get_settings().transport_fees_table

    @property
    def accessor(self) -> ResilientAccessor:
        return self._accessor

    async def get_transport_fees(self, org_id: str) -> TransportFees:
        """Active fees of an organization, defaults when none are configured."""
        rows = await self._accessor.get_or_fetch(
            transport_fees_key(org_id),
            partial(
                self._backend.select,
                self._table,
                filters={"org_id": f"eq.{org_id}", "is_active": "eq.true"},
                order="updated_at.desc",
                columns="id,org_id,pickup_fee,dropoff_fee,currency,is_active,updated_at",
                limit=1,
            ),
        )
        if not rows:
            logger.info("No transport fees configured, using defaults", org_id=org_id)
            return TransportFees(org_id=org_id, is_default=True)

        row = rows[0]
        return TransportFees(
            pickup_fee=float(row.get("pickup_fee") or 0),
            dropoff_fee=float(row.get("dropoff_fee") or 0),
            currency=row.get("currency") or "MAD",
            id=None if row.get("id") is None else str(row["id"]),
            org_id=org_id,
            updated_at=row.get("updated_at"),
        )

    def invalidate(self, org_id: str) -> None:
        """Drop cached fees after the organization's fees were written."""
        self._accessor.invalidate(transport_fees_key(org_id))
