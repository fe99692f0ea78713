"""Client-side search, filtering and sorting over normalized records.

A :class:`QueryEngine` is configured once per page with the fields it may
search, filter and sort on. :meth:`QueryEngine.run` then turns a collection
plus a :class:`QueryState` into the ordered subset to render. Filtering always
happens before sorting and the result depends only on the inputs, so running
the engine twice with the same state returns the same list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence

from .constants import ALL
from .normalize import as_bool, as_float, parse_bool

logger = logging.getLogger(__name__)

SORT_NUMBER = "number"
SORT_DATE = "date"
SORT_FLAG = "flag"
SORT_TEXT = "text"


def get_path(record: Mapping[str, Any], path: str) -> Any:
    """Read a dotted path such as ``owner.name`` from a nested record."""
    value: Any = record
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def to_epoch_millis(value: Any) -> int:
    """Parse an ISO date/datetime string to epoch milliseconds, 0 if unparseable."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return 0
    else:
        return 0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


@dataclass(frozen=True)
class Bucket:
    """A half-open numeric interval ``lower < value <= upper``.

    ``None`` on either side means unbounded.
    """

    lower: Optional[float] = None
    upper: Optional[float] = None

    def contains(self, value: float) -> bool:
        """Return True if ``value`` falls inside the bucket."""
        if self.lower is not None and not value > self.lower:
            return False
        if self.upper is not None and not value <= self.upper:
            return False
        return True


@dataclass(frozen=True)
class SortKey:
    """One comparator in a sort chain."""

    field: str
    kind: str = SORT_NUMBER
    descending: bool = False

    def value(self, record: Mapping[str, Any]) -> Any:
        """Return the comparable value of ``record`` for this key."""
        raw = get_path(record, self.field)
        if self.kind == SORT_DATE:
            return to_epoch_millis(raw)
        if self.kind == SORT_FLAG:
            return int(as_bool(raw))
        if self.kind == SORT_TEXT:
            return str(raw or "").casefold()
        return as_float(raw)


def numeric(field_name: str, descending: bool = False) -> SortKey:
    """Sort by a number, ascending unless ``descending``."""
    return SortKey(field_name, SORT_NUMBER, descending)


def by_date(field_name: str, descending: bool = True) -> SortKey:
    """Sort by a date string, newest first unless told otherwise."""
    return SortKey(field_name, SORT_DATE, descending)


def flag_first(field_name: str) -> SortKey:
    """Put records whose flag is set ahead of the rest."""
    return SortKey(field_name, SORT_FLAG, True)


def alphabetical(field_name: str) -> SortKey:
    """Case-insensitive A-Z sort."""
    return SortKey(field_name, SORT_TEXT, False)


@dataclass(frozen=True)
class QueryState:
    """Ephemeral filter/sort state of one list view."""

    search: str = ""
    category: str = ALL
    sort: str = ""
    bucket: str = ALL
    filters: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_args(
        cls,
        args: Mapping[str, Any],
        filter_names: Iterable[str] = (),
        bucket_arg: str = "bucket",
    ) -> QueryState:
        """Build a state from request query arguments."""
        filters = {}
        for name in filter_names:
            value = (args.get(name) or "").strip()
            if value and value != ALL:
                filters[name] = value
        return cls(
            search=(args.get("search") or args.get("q") or "").strip(),
            category=(args.get("category") or ALL).strip() or ALL,
            sort=(args.get("sort") or "").strip(),
            bucket=(args.get(bucket_arg) or ALL).strip() or ALL,
            filters=filters,
        )


def _matches_value(value: Any, wanted: str) -> bool:
    if isinstance(value, (list, tuple, set)):
        return any(_matches_value(item, wanted) for item in value)
    if isinstance(value, bool):
        # An unrecognised spelling filters nothing, like an unknown bucket.
        flag = parse_bool(wanted)
        return flag is None or value == flag
    if value is None:
        return False
    return str(value) == wanted


class QueryEngine:
    """Search, filter and sort configuration for one kind of record."""

    def __init__(
        self,
        search_fields: Sequence[str],
        category_field: Optional[str] = None,
        sorts: Optional[Mapping[str, Sequence[SortKey]]] = None,
        default_sort: Optional[str] = None,
        bucket_field: Optional[str] = None,
        buckets: Optional[Mapping[str, Bucket]] = None,
        filter_fields: Optional[Mapping[str, str]] = None,
    ):
        """Initialize the engine.

        Args:
            search_fields: Fields (dotted paths allowed) matched by text search.
            category_field: Field compared against ``QueryState.category``.
            sorts: Named sort chains.
            default_sort: Sort used when the state names none or an unknown one.
            bucket_field: Numeric field tested against the named buckets.
            buckets: Named half-open intervals, owned by the caller.
            filter_fields: Map of filter name to record field for extra
                exact-match filters.
        """
        self.search_fields = tuple(search_fields)
        self.category_field = category_field
        self.sorts = dict(sorts or {})
        if self.sorts and default_sort not in self.sorts:
            raise ValueError(f"Default sort {default_sort!r} is not a known sort key.")
        self.default_sort = default_sort
        self.bucket_field = bucket_field
        self.buckets = dict(buckets or {})
        self.filter_fields = dict(filter_fields or {})

    def matches_search(self, record: Mapping[str, Any], query: str) -> bool:
        """Case-insensitive substring match against any search field."""
        needle = query.strip().casefold()
        if not needle:
            return True
        for path in self.search_fields:
            value = get_path(record, path)
            values = value if isinstance(value, (list, tuple)) else [value]
            for item in values:
                if isinstance(item, str) and needle in item.casefold():
                    return True
        return False

    def matches_category(self, record: Mapping[str, Any], category: str) -> bool:
        """Exact match on the category field; ``all`` matches everything."""
        if not category or category == ALL or not self.category_field:
            return True
        return _matches_value(get_path(record, self.category_field), category)

    def matches_bucket(self, record: Mapping[str, Any], bucket_name: str) -> bool:
        """Membership in a named bucket; ``all`` or unknown names match everything."""
        if not bucket_name or bucket_name == ALL or not self.bucket_field:
            return True
        bucket = self.buckets.get(bucket_name)
        if bucket is None:
            logger.debug(f"Ignoring unknown bucket {bucket_name!r}")
            return True
        return bucket.contains(as_float(get_path(record, self.bucket_field)))

    def matches_filters(
        self, record: Mapping[str, Any], filters: Mapping[str, str]
    ) -> bool:
        """Apply the extra exact-match filters the engine knows about."""
        for name, wanted in filters.items():
            path = self.filter_fields.get(name)
            if path is None or not wanted or wanted == ALL:
                continue
            if not _matches_value(get_path(record, path), wanted):
                return False
        return True

    def filter(
        self, records: Iterable[Mapping[str, Any]], state: QueryState
    ) -> list[Any]:
        """Return the records that pass every filter, in input order."""
        return [
            record
            for record in records
            if self.matches_search(record, state.search)
            and self.matches_category(record, state.category)
            and self.matches_bucket(record, state.bucket)
            and self.matches_filters(record, state.filters)
        ]

    def resolve_sort(self, sort_name: str) -> Optional[str]:
        """Return ``sort_name`` if known, else the default sort."""
        if sort_name in self.sorts:
            return sort_name
        return self.default_sort

    def sort(self, records: Iterable[Any], sort_name: str) -> list[Any]:
        """Stable sort by the named chain; primary key first in the chain."""
        ordered = list(records)
        name = self.resolve_sort(sort_name)
        if name is None:
            return ordered
        for key in reversed(self.sorts[name]):
            ordered.sort(key=key.value, reverse=key.descending)
        return ordered

    def run(
        self, records: Iterable[Mapping[str, Any]], state: Optional[QueryState] = None
    ) -> list[Any]:
        """Filter, then sort."""
        state = state or QueryState()
        return self.sort(self.filter(records, state), state.sort)
