"""Base class for alert source adapters."""

from abc import ABC, abstractmethod
from datetime import datetime
from functools import partial
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from fleetalerts.core.errors import FetchError, PermanentAdapterError
from fleetalerts.core.logging import get_logger
from fleetalerts.models.alert import Alert, AlertCategory, AlertSource
from fleetalerts.models.records import BackendRecord
from fleetalerts.models.thresholds import ThresholdConfig
from fleetalerts.resilience.accessor import ResilientAccessor
from fleetalerts.storage.backend import RecordBackend

logger = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BackendRecord)


def format_amount(amount: float | None, currency: str = "MAD") -> str:
    """Format a money amount, treating missing values as zero."""
    return f"{(amount or 0.0):.2f} {currency}"


class SourceAdapter(ABC, Generic[RecordT]):
    """Translate one domain's backend rows into canonical alerts.

    Subclasses declare the table query and implement build_alerts(), which
    must stay pure so a pass can be replayed with a fixed ``now``.
    """

    source: AlertSource
    category: AlertCategory
    record_model: type[RecordT]

    filters: dict[str, str] = {}
    order: str | None = None

    def __init__(
        self,
        backend: RecordBackend,
        accessor: ResilientAccessor,
        table: str | None = None,
    ):
        """Initialize adapter.

        Args:
            backend: Record backend to query
            accessor: Resilient accessor wrapping the query
            table: Table name override, defaults to the configured table
        """
        self._backend = backend
        self._accessor = accessor
        self._table = table or self.default_table()

    @abstractmethod
    def default_table(self) -> str:
        """Return the configured table name."""
        pass

    @property
    def table(self) -> str:
        return self._table

    @property
    def columns(self) -> str:
        return "*"

    @property
    def cache_key(self) -> str:
        filters = ",".join(f"{column}={value}" for column, value in sorted(self.filters.items()))
        return f"{self.source.value}:{self.table}:{filters}"

    async def fetch(self, now: datetime, thresholds: ThresholdConfig | None = None) -> list[Alert]:
        """Fetch rows and build alerts for one aggregation pass.

        Args:
            now: Time reference shared by the whole pass
            thresholds: Classification windows, defaults when omitted

        Returns:
            Alerts for this source, empty when the backing table is unavailable

        Raises:
            FetchError: Fetch failed and no previously cached rows exist
        """
        thresholds = thresholds or ThresholdConfig()

        try:
            rows = await self._load_rows()
        except PermanentAdapterError as e:
            logger.warning("Source unavailable, skipping", source=self.source.value, error=str(e))
            return []
        except FetchError as e:
            stale = self._accessor.peek(self.cache_key)
            if stale is None:
                raise
            logger.warning(
                "Fetch failed, using stale rows",
                source=self.source.value,
                error=str(e.last_error),
                rows=len(stale),
            )
            rows = stale

        records = self.parse_rows(rows)
        alerts = self.build_alerts(records, now, thresholds)
        logger.debug(
            "Source alerts built",
            source=self.source.value,
            records=len(records),
            alerts=len(alerts),
        )
        return alerts

    async def _load_rows(self) -> list[dict[str, Any]]:
        fetch_fn = partial(
            self._backend.select,
            self.table,
            filters=dict(self.filters),
            order=self.order,
            columns=self.columns,
        )
        return await self._accessor.get_or_fetch(self.cache_key, fetch_fn)

    def parse_rows(self, rows: list[dict[str, Any]]) -> list[RecordT]:
        """Validate rows, skipping malformed ones."""
        records: list[RecordT] = []
        for row in rows:
            try:
                records.append(self.record_model.model_validate(row))
            except ValidationError as e:
                logger.warning(
                    "Skipping malformed row",
                    source=self.source.value,
                    row_id=row.get("id") if isinstance(row, dict) else None,
                    errors=e.error_count(),
                )
        return records

    @abstractmethod
    def build_alerts(
        self,
        records: list[RecordT],
        now: datetime,
        thresholds: ThresholdConfig,
    ) -> list[Alert]:
        """Classify records against now.

        Args:
            records: Validated records
            now: Pass time reference
            thresholds: Classification windows

        Returns:
            Alerts for records that need attention
        """
        pass
