"""
Remote data sources the cache reads through.
"""

import asyncio
from typing import Any, Dict, List, Mapping, Optional, Protocol

import requests

from ..core.errors import RemoteQueryError
from ..core.logging import get_logger

logger = get_logger(__name__)

Row = Dict[str, Any]
Filters = Mapping[str, Any]


class RemoteDataSource(Protocol):
    async def query(
        self,
        table: str,
        filters: Optional[Filters] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> List[Row]: ...


def _apply_options(rows: List[Row], options: Mapping[str, Any]) -> List[Row]:
    order = options.get("order")
    if order:
        ascending = options.get("ascending", True)
        rows = sorted(rows, key=lambda r: (r.get(order) is None, r.get(order)), reverse=not ascending)
    select = options.get("select")
    if select and select != "*":
        columns = [c.strip() for c in select.split(",")]
        rows = [{c: r.get(c) for c in columns} for r in rows]
    limit = options.get("limit")
    if limit is not None:
        rows = rows[: int(limit)]
    return rows


def _matches(value: Any, wanted: Any) -> bool:
    # Query-string filters arrive as text, as they do over REST.
    return value == wanted or (value is not None and str(value) == str(wanted))


class InMemoryDataSource:
    """Tables held as lists of dicts. Used for tests and local runs.

    Equality filters only; ``fail(table)`` makes every later query on that
    table raise ``RemoteQueryError`` until ``recover(table)``.
    """

    def __init__(self, tables: Optional[Dict[str, List[Row]]] = None) -> None:
        self.tables: Dict[str, List[Row]] = {k: list(v) for k, v in (tables or {}).items()}
        self.calls: Dict[str, int] = {}
        self._failing: Dict[str, str] = {}

    def fail(self, table: str, message: str = "service unavailable") -> None:
        self._failing[table] = message

    def recover(self, table: str) -> None:
        self._failing.pop(table, None)

    async def query(
        self,
        table: str,
        filters: Optional[Filters] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> List[Row]:
        self.calls[table] = self.calls.get(table, 0) + 1
        # Yield once so callers see a real suspension point.
        await asyncio.sleep(0)
        if table in self._failing:
            raise RemoteQueryError(table, self._failing[table], status_code=503)
        if table not in self.tables:
            raise RemoteQueryError(table, "relation does not exist", status_code=404)
        rows = [
            dict(r)
            for r in self.tables[table]
            if all(_matches(r.get(col), val) for col, val in (filters or {}).items())
        ]
        return _apply_options(rows, options or {})


class PostgrestDataSource:
    """Reads the hosted backend's REST endpoint (``/rest/v1/<table>``).

    ``requests`` is blocking, so each query runs in a worker thread.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            }
        )

    def build_params(
        self, filters: Optional[Filters], options: Optional[Mapping[str, Any]]
    ) -> Dict[str, str]:
        options = options or {}
        params: Dict[str, str] = {"select": options.get("select", "*")}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if options.get("order"):
            direction = "asc" if options.get("ascending", True) else "desc"
            params["order"] = f"{options['order']}.{direction}"
        if options.get("limit") is not None:
            params["limit"] = str(int(options["limit"]))
        return params

    def _query_sync(self, table: str, params: Dict[str, str]) -> List[Row]:
        url = f"{self.base_url}/rest/v1/{table}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise RemoteQueryError(table, f"request failed: {e}") from e
        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = None
            message = body.get("message", response.text) if isinstance(body, dict) else response.text
            raise RemoteQueryError(table, message, status_code=response.status_code)
        try:
            rows = response.json()
        except ValueError as e:
            raise RemoteQueryError(table, "invalid JSON in response") from e
        if not isinstance(rows, list):
            raise RemoteQueryError(table, "expected a JSON array")
        return rows

    async def query(
        self,
        table: str,
        filters: Optional[Filters] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> List[Row]:
        params = self.build_params(filters, options)
        logger.debug(f"GET {table} params={params}")
        return await asyncio.to_thread(self._query_sync, table, params)
