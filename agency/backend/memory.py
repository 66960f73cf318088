"""
In-memory stand-in for the Supabase backend.

Implements the same select/insert/update/delete surface as
SupabaseClient over plain dict rows, including generated ids,
timestamps and the unique constraints of the real schema. Used by the
test suite and the offline console demo.
"""

import copy
import json
import logging
import uuid
from collections import defaultdict
from typing import Any, Optional

from agency.backend.query import Filter, QueryResult, format_value
from agency.errors import from_backend_error
from agency.utils import utc_now

logger = logging.getLogger(__name__)

UNIQUE_COLUMNS: dict[str, tuple[str, ...]] = {
    "booking_blackout_dates": ("date",),
    "case_studies": ("slug",),
}

TIMESTAMPED_TABLES = frozenset({"bookings", "available_time_slots", "case_studies"})


def _to_wire(values: dict[str, Any]) -> dict[str, Any]:
    """Round-trip through JSON so stored rows look like REST responses."""
    return json.loads(json.dumps(values, default=format_value))


def _sort_key(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return format_value(value)


class InMemoryBackend:
    """Dict-backed tables with PostgREST-compatible query semantics."""

    def __init__(self, tables: Optional[dict[str, list[dict[str, Any]]]] = None) -> None:
        self._tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for name, rows in (tables or {}).items():
            self._tables[name] = [_to_wire(r) for r in rows]

    async def close(self) -> None:
        return None

    def rows(self, table: str) -> list[dict[str, Any]]:
        """Snapshot of a table's rows."""
        return copy.deepcopy(self._tables[table])

    def reset(self) -> None:
        self._tables.clear()

    def _check_unique(self, table: str, row: dict[str, Any], exclude_id: Optional[str] = None) -> None:
        for column in UNIQUE_COLUMNS.get(table, ()):
            for existing in self._tables[table]:
                if existing.get("id") == exclude_id:
                    continue
                if existing.get(column) == row.get(column):
                    raise from_backend_error(
                        "23505",
                        f'duplicate key value violates unique constraint "{table}_{column}_key"',
                    )

    def _matching(self, table: str, filters: Optional[list[Filter]]) -> list[dict[str, Any]]:
        return [r for r in self._tables[table] if all(f.matches(r) for f in filters or [])]

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
        rows = self._matching(table, filters)
        for column, ascending in reversed(order or []):
            present = [r for r in rows if r.get(column) is not None]
            missing = [r for r in rows if r.get(column) is None]
            present.sort(key=lambda r: _sort_key(r[column]), reverse=not ascending)
            # PostgREST default: nulls last ascending, first descending
            rows = present + missing if ascending else missing + present

        total = len(rows)
        start = offset or 0
        rows = rows[start:start + limit] if limit is not None else rows[start:]
        if columns != "*":
            wanted = [c.strip() for c in columns.split(",")]
            rows = [{c: r.get(c) for c in wanted} for r in rows]
        return QueryResult(rows=copy.deepcopy(rows), count=total if count else None)

    async def insert(self, table: str, values: dict[str, Any]) -> dict[str, Any]:
        row = _to_wire(values)
        row.setdefault("id", str(uuid.uuid4()))
        now = utc_now().isoformat()
        row.setdefault("created_at", now)
        if table in TIMESTAMPED_TABLES:
            row.setdefault("updated_at", now)
        self._check_unique(table, row)
        self._tables[table].append(row)
        logger.debug("Inserted %s row %s", table, row["id"])
        return copy.deepcopy(row)

    async def update(
        self, table: str, values: dict[str, Any], filters: list[Filter]
    ) -> list[dict[str, Any]]:
        if not filters:
            raise ValueError("Refusing to update without filters")
        changes = _to_wire(values)
        updated = []
        for row in self._matching(table, filters):
            candidate = {**row, **changes}
            if table in TIMESTAMPED_TABLES and "updated_at" not in changes:
                candidate["updated_at"] = utc_now().isoformat()
            self._check_unique(table, candidate, exclude_id=row.get("id"))
            row.update(candidate)
            updated.append(copy.deepcopy(row))
        return updated

    async def delete(self, table: str, filters: list[Filter]) -> list[dict[str, Any]]:
        if not filters:
            raise ValueError("Refusing to delete without filters")
        removed = self._matching(table, filters)
        removed_ids = {id(r) for r in removed}
        self._tables[table] = [r for r in self._tables[table] if id(r) not in removed_ids]
        return copy.deepcopy(removed)
