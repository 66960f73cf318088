"""
Async Supabase (PostgREST) client.

Thin wrapper over httpx that speaks the PostgREST REST dialect used by
the hosted database: filters as query parameters, ``Prefer`` headers
for returned rows and exact counts, and JSON error payloads that are
translated into the application's error taxonomy.
"""

import logging
from typing import Any, Optional

import httpx

from agency.backend.query import Filter, QueryResult
from agency.config import BackendConfig
from agency.errors import ServiceError, from_backend_error

logger = logging.getLogger(__name__)


def _parse_content_range(header: Optional[str]) -> Optional[int]:
    """Total from a ``Content-Range: 0-11/42`` header (``*/0`` when empty)."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None


class SupabaseClient:
    """Table-level select/insert/update/delete against ``/rest/v1``."""

    def __init__(
        self,
        url: str,
        key: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not url or not key:
            raise ValueError("Supabase URL and key are required")
        self._client = httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={
                "apikey": key,
                "Authorization": f"Bearer {key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: BackendConfig) -> "SupabaseClient":
        """Client for the configured project.

        Raises:
            ServiceError: if SUPABASE_URL or SUPABASE_KEY is missing.
        """
        if not config.is_configured:
            raise ServiceError("Backend is not configured", code="BACKEND_NOT_CONFIGURED")
        return cls(config.url, config.key, timeout=config.timeout_sec)

    async def __aenter__(self) -> "SupabaseClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Optional[list[tuple[str, str]]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> httpx.Response:
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = await self._client.request(
                method, f"/{table}", params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            logger.error("Backend %s %s failed: %s", method, table, e)
            raise ServiceError(f"Backend request failed: {e}") from e

        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = {}
            if not isinstance(payload, dict):
                payload = {}
            logger.warning(
                "Backend %s %s returned %d: %s",
                method, table, response.status_code, payload.get("message") or response.text,
            )
            raise from_backend_error(
                payload.get("code"),
                payload.get("message") or response.text,
                payload.get("details"),
            )
        return response

    async def select(
        self,
        table: str,
        *,
        filters: Optional[list[Filter]] = None,
        order: Optional[list[tuple[str, bool]]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        count: bool = False,
        columns: str = "*",
    ) -> QueryResult:
        """Fetch rows. ``order`` is a list of (column, ascending) pairs."""
        params: list[tuple[str, str]] = [("select", columns)]
        params.extend(f.to_param() for f in filters or [])
        if order:
            params.append((
                "order",
                ",".join(f"{col}.{'asc' if asc else 'desc'}" for col, asc in order),
            ))
        if limit is not None:
            params.append(("limit", str(limit)))
        if offset:
            params.append(("offset", str(offset)))

        response = await self._request(
            "GET", table, params=params, prefer="count=exact" if count else None
        )
        total = _parse_content_range(response.headers.get("content-range")) if count else None
        return QueryResult(rows=response.json(), count=total)

    async def insert(self, table: str, values: dict[str, Any]) -> dict[str, Any]:
        response = await self._request(
            "POST", table, json=values, prefer="return=representation"
        )
        rows = response.json()
        if not rows:
            raise ServiceError(f"Insert into {table} returned no row")
        return rows[0]

    async def update(
        self, table: str, values: dict[str, Any], filters: list[Filter]
    ) -> list[dict[str, Any]]:
        if not filters:
            raise ValueError("Refusing to update without filters")
        response = await self._request(
            "PATCH",
            table,
            params=[f.to_param() for f in filters],
            json=values,
            prefer="return=representation",
        )
        return response.json()

    async def delete(self, table: str, filters: list[Filter]) -> list[dict[str, Any]]:
        if not filters:
            raise ValueError("Refusing to delete without filters")
        response = await self._request(
            "DELETE",
            table,
            params=[f.to_param() for f in filters],
            prefer="return=representation",
        )
        return response.json()
