"""Default set of alert source adapters."""

from fleetalerts.adapters.base import SourceAdapter
from fleetalerts.adapters.fuel import FuelAdapter
from fleetalerts.adapters.maintenance import MaintenanceAdapter
from fleetalerts.adapters.price_approval import PriceApprovalAdapter
from fleetalerts.adapters.rental import RentalReturnAdapter
from fleetalerts.adapters.vehicle import VehicleAdapter
from fleetalerts.resilience.accessor import ResilientAccessor
from fleetalerts.storage.backend import RecordBackend

ADAPTER_CLASSES: tuple[type[SourceAdapter], ...] = (
    VehicleAdapter,
    FuelAdapter,
    MaintenanceAdapter,
    RentalReturnAdapter,
    PriceApprovalAdapter,
)


def build_adapters(backend: RecordBackend, accessor: ResilientAccessor) -> list[SourceAdapter]:
    """Create one adapter per source sharing a backend and accessor."""
    return [adapter_cls(backend, accessor) for adapter_cls in ADAPTER_CLASSES]
