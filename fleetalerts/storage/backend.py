"""Record query backends for the hosted relational database."""

from abc import ABC, abstractmethod
from typing import Any

import httpx

from fleetalerts.core.config import get_settings
from fleetalerts.core.errors import PermanentAdapterError, TransientFetchError
from fleetalerts.core.logging import get_logger

logger = get_logger(__name__)

# PostgREST / Postgres codes meaning the table is not there
_MISSING_TABLE_CODES = frozenset({"42P01", "PGRST205"})


class RecordBackend(ABC):
    """Abstract row source queried by the source adapters and lookup services."""

    @abstractmethod
    async def select(
        self,
        table: str,
        *,
        filters: dict[str, str] | None = None,
        order: str | None = None,
        columns: str = "*",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch rows from a table.

        Args:
            table: Table name
            filters: Column filters in PostgREST operator syntax, e.g. {"status": "eq.scheduled"}
            order: Ordering, e.g. "date.asc"
            columns: Column selection, may embed related tables
            limit: Maximum number of rows

        Returns:
            List of row dictionaries

        Raises:
            TransientFetchError: Network or server error worth retrying
            PermanentAdapterError: Missing table, bad credentials or misconfiguration
        """
        pass

    async def close(self) -> None:
        """Clean up resources. Override if needed."""
        pass


class PostgrestBackend(RecordBackend):
    """Backend speaking the PostgREST HTTP API (as exposed by Supabase)."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        schema: str = "public",
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize backend.

        Args:
            base_url: Project URL; requests go to {base_url}/rest/v1/{table}
            api_key: Service or anon key sent as apikey and bearer token
            schema: Database schema profile
            client: Pre-built HTTP client (tests inject a mock transport)
        """
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._schema = schema
        self._own_client = client is None
        self._client = client or httpx.AsyncClient()

    @classmethod
    def from_settings(cls) -> "PostgrestBackend":
        settings = get_settings()
        return cls(
            base_url=settings.backend_url,
            api_key=settings.backend_api_key,
            schema=settings.backend_schema,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "Accept-Profile": self._schema}
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def select(
        self,
        table: str,
        *,
        filters: dict[str, str] | None = None,
        order: str | None = None,
        columns: str = "*",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        if not self._base_url:
            raise PermanentAdapterError("Record backend URL is not configured")

        params: dict[str, str] = {"select": columns}
        params.update(filters or {})
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)

        try:
            response = await self._client.get(
                f"{self._base_url}/rest/v1/{table}",
                params=params,
                headers=self._headers(),
            )
        except httpx.TransportError as e:
            raise TransientFetchError(f"{table}: {type(e).__name__}: {e}") from e

        self._raise_for_status(table, response)

        data = response.json()
        if not isinstance(data, list):
            raise PermanentAdapterError(f"{table}: expected a JSON array of rows")
        logger.debug("Backend query complete", table=table, rows=len(data))
        return data

    @staticmethod
    def _raise_for_status(table: str, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return

        code = ""
        message = response.text
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = str(body.get("code") or "")
            message = str(body.get("message") or message)

        if status >= 500 or status == 429:
            raise TransientFetchError(f"{table}: HTTP {status}: {message}")
        if status == 404 or code in _MISSING_TABLE_CODES:
            raise PermanentAdapterError(f"{table}: table not available ({code or status})")
        raise PermanentAdapterError(f"{table}: HTTP {status}: {message}")

    async def close(self) -> None:
        if self._own_client:
            await self._client.aclose()
