"""
Query vocabulary shared by the REST client and the in-memory backend.

Filters render to PostgREST query parameters (``status=eq.pending``,
``tags=cs.{seo}``, ``or=(title.ilike.*x*,client_name.ilike.*x*)``) and
can also be evaluated against a plain dict row, so both backends accept
exactly the same queries.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

_NEEDS_QUOTES = set(',()"{}')


def format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _quote(value: Any) -> str:
    text = format_value(value)
    if any(ch in _NEEDS_QUOTES for ch in text):
        return '"' + text.replace('"', '\\"') + '"'
    return text


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _comparable(value: Any) -> Any:
    """Numbers stay numbers; ISO date/datetime strings become date/datetime objects."""
    if _is_number(value) or isinstance(value, (date, datetime)):
        return value
    text = str(value)
    try:
        if "T" in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00"))
        if len(text) == 10:
            return date.fromisoformat(text)
    except ValueError:
        pass
    return text


@dataclass(frozen=True)
class Filter:
    """A single column predicate."""

    column: str
    op: str
    value: Any = None

    def to_param(self) -> tuple[str, str]:
        if self.op == "or":
            inner = ",".join(f"{c}.{e}" for c, e in (f.to_param() for f in self.value))
            return "or", f"({inner})"
        if self.op == "in":
            return self.column, "in.(" + ",".join(_quote(v) for v in self.value) + ")"
        if self.op in ("cs", "ov"):
            return self.column, f"{self.op}.{{" + ",".join(_quote(v) for v in self.value) + "}"
        if self.op == "ilike":
            return self.column, f"ilike.*{self.value}*"
        if self.op == "is":
            return self.column, "is.null"
        return self.column, f"{self.op}.{format_value(self.value)}"

    def matches(self, row: dict[str, Any]) -> bool:
        if self.op == "or":
            return any(f.matches(row) for f in self.value)

        actual = row.get(self.column)
        if self.op == "is":
            return actual is None
        if self.op == "eq":
            return actual is not None and format_value(actual) == format_value(self.value)
        if self.op == "neq":
            return actual is None or format_value(actual) != format_value(self.value)
        if self.op == "in":
            return format_value(actual) in {format_value(v) for v in self.value}
        if self.op == "ilike":
            return str(self.value).lower() in str(actual or "").lower()
        if self.op == "cs":
            return set(self.value) <= set(actual or [])
        if self.op == "ov":
            return bool(set(self.value) & set(actual or []))
        if actual is None:
            return False

        left, right = _comparable(actual), _comparable(self.value)
        if type(left) is not type(right) or (
            isinstance(left, datetime) and (left.tzinfo is None) != (right.tzinfo is None)
        ):
            left, right = format_value(actual), format_value(self.value)
        if self.op == "gt":
            return left > right
        if self.op == "gte":
            return left >= right
        if self.op == "lt":
            return left < right
        if self.op == "lte":
            return left <= right
        raise ValueError(f"Unsupported filter operator: {self.op}")


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def neq(column: str, value: Any) -> Filter:
    return Filter(column, "neq", value)


def gte(column: str, value: Any) -> Filter:
    return Filter(column, "gte", value)


def lte(column: str, value: Any) -> Filter:
    return Filter(column, "lte", value)


def in_(column: str, values: list[Any]) -> Filter:
    return Filter(column, "in", list(values))


def contains_text(column: str, text: str) -> Filter:
    """Case-insensitive substring match."""
    return Filter(column, "ilike", text)


def contains_all(column: str, values: list[Any]) -> Filter:
    """Array column contains every value."""
    return Filter(column, "cs", list(values))


def overlaps(column: str, values: list[Any]) -> Filter:
    """Array column shares at least one value."""
    return Filter(column, "ov", list(values))


def is_null(column: str) -> Filter:
    return Filter(column, "is", None)


def any_of(*filters: Filter) -> Filter:
    return Filter("or", "or", list(filters))


@dataclass
class QueryResult:
    """Rows returned by a select, plus the exact total when it was requested."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    count: Optional[int] = None
