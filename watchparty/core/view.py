"""Per-view collection state with a stale-response guard."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from watchparty.errors import AppError

from .collection import find_by_id, upsert_by_id

logger = logging.getLogger(__name__)


class CollectionView:
    """The in-memory copy of one collection owned by one view.

    Each load is tagged with a generation token. A response is only applied
    if its token is still the latest one and the view has not been closed,
    so a slow response can never overwrite newer data or land in a view the
    user already left.
    """

    def __init__(self, name: str = "") -> None:
        """Initialize an empty, open view."""
        self.name = name
        self.records: list[dict[str, Any]] = []
        self.error: Optional[str] = None
        self._generation = 0
        self._closed = False
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        """Return True until :meth:`close` is called."""
        return not self._closed

    def begin_load(self) -> int:
        """Start a load and return its generation token."""
        with self._lock:
            self._generation += 1
            return self._generation

    def is_current(self, token: int) -> bool:
        """Return True if ``token`` belongs to the latest load of an open view."""
        return self.is_open and token == self._generation

    def apply(
        self, token: int, records: list[dict[str, Any]], error: Optional[str] = None
    ) -> bool:
        """Replace the records if ``token`` is still current."""
        with self._lock:
            if not self.is_current(token):
                logger.debug(f"Dropping stale response for view {self.name!r}")
                return False
            self.records = list(records)
            self.error = error
            return True

    def load(
        self,
        fetch: Callable[[], list[dict[str, Any]]],
        on_error: Optional[Callable[[Exception], Optional[str]]] = None,
    ) -> bool:
        """Run ``fetch`` under a fresh token and apply its result.

        If ``on_error`` is given, application errors from ``fetch`` are passed
        to it and the view degrades to an empty list carrying the returned message.
        """
        token = self.begin_load()
        if on_error is None:
            return self.apply(token, fetch())
        try:
            records = fetch()
        except AppError as e:
            return self.apply(token, [], on_error(e))
        return self.apply(token, records)

    def merge(self, record: dict[str, Any]) -> bool:
        """Upsert one authoritative record, unless the view is closed."""
        with self._lock:
            if not self.is_open:
                logger.debug(f"Dropping late record for closed view {self.name!r}")
                return False
            self.records = upsert_by_id(self.records, record)
            return True

    def get(self, record_id: str) -> Optional[dict[str, Any]]:
        """Return the record with ``record_id`` if present."""
        return find_by_id(self.records, record_id)

    def close(self) -> None:
        """Mark the view as gone; later responses are ignored."""
        with self._lock:
            self._closed = True
