"""Serialized server mutations with upsert of the authoritative response."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional, Sequence

from watchparty.errors import AppError, ShapeError

from .collection import upsert_by_id

if TYPE_CHECKING:
    from .view import CollectionView

logger = logging.getLogger(__name__)

ACKNOWLEDGEMENT_KEYS = frozenset(
    {"success", "ok", "status", "message", "detail", "code"}
)


class MutationState(str, Enum):
    """Lifecycle of one mutation key."""

    IDLE = "idle"
    PENDING = "pending"
    MERGED = "merged"


@dataclass
class MutationResult:
    """Outcome of :meth:`MutationCoordinator.run`."""

    state: MutationState
    records: list[dict[str, Any]] = field(default_factory=list)
    record: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    ignored: bool = False

    @property
    def ok(self) -> bool:
        """Return True if the server accepted the mutation."""
        return self.state is MutationState.MERGED


def unwrap_entity(body: Any, entity_keys: Sequence[str] = ()) -> Optional[dict[str, Any]]:
    """Return the entity carried by a mutation response, or None for a bare ack.

    ``{"group": {...}}``, ``{"data": {...}}`` and a bare entity dict are all
    recognized. A body made only of acknowledgement keys such as
    ``{"success": true, "message": "Joined"}`` carries no entity.
    """
    if not isinstance(body, dict) or not body:
        return None
    for key in (*entity_keys, "data", "result"):
        nested = body.get(key)
        if isinstance(nested, dict) and nested:
            return nested
    if set(body) <= ACKNOWLEDGEMENT_KEYS:
        return None
    return body


class MutationCoordinator:
    """Runs at most one mutation per key at a time.

    A key names the thing being mutated, e.g. ``"u42:group:7"``. A second
    trigger while the key is pending is ignored rather than queued. On
    success the server's version of the entity (or, for a bare
    acknowledgement, a fresh copy from its detail endpoint) is upserted into
    the caller's records. On failure the records are returned unchanged with
    a user-facing message. Nothing is retried.
    """

    def __init__(self) -> None:
        """Initialize with no mutations in flight."""
        self._lock = threading.Lock()
        self._states: dict[str, MutationState] = {}

    def state(self, key: str) -> MutationState:
        """Return the current state of ``key``."""
        with self._lock:
            return self._states.get(key, MutationState.IDLE)

    def is_pending(self, key: str) -> bool:
        """Return True while a mutation for ``key`` is in flight."""
        return self.state(key) is MutationState.PENDING

    def _acquire(self, key: str) -> bool:
        with self._lock:
            if self._states.get(key) is MutationState.PENDING:
                return False
            self._states[key] = MutationState.PENDING
            return True

    def _release(self, key: str, state: MutationState) -> None:
        with self._lock:
            self._states[key] = state

    def run(
        self,
        key: str,
        request: Callable[[], Any],
        normalize: Callable[[Any], dict[str, Any]],
        records: Iterable[dict[str, Any]] = (),
        fetch_detail: Optional[Callable[[], Any]] = None,
        entity_keys: Sequence[str] = (),
        view: Optional[CollectionView] = None,
    ) -> MutationResult:
        """Issue ``request`` and merge its authoritative result.

        Args:
            key: The mutation key; at most one request per key is in flight.
            request: Sends the mutation; credentials are attached by the client.
            normalize: Turns the raw entity into a record.
            records: The caller's current collection.
            fetch_detail: Re-reads the entity when the response is a bare ack.
            entity_keys: Envelope keys that may wrap the entity in the response.
            view: Optional view to merge into; ignored once it is closed.

        Returns:
            A :class:`MutationResult`. ``ignored`` is set when the key was busy.
        """
        current = list(view.records if view is not None else records)
        if not self._acquire(key):
            logger.info(f"Ignoring duplicate mutation for {key} while one is pending")
            return MutationResult(MutationState.PENDING, current, ignored=True)

        state = MutationState.IDLE
        try:
            try:
                body = request()
            except ShapeError as e:
                logger.warning(f"Mutation {key} succeeded with an unreadable body: {e}")
                body = None
            except AppError as e:
                logger.warning(f"Mutation {key} failed: {e.message}")
                return MutationResult(MutationState.IDLE, current, error=e.message)

            entity = unwrap_entity(body, entity_keys)
            if entity is None and fetch_detail is not None:
                try:
                    entity = unwrap_entity(fetch_detail(), entity_keys)
                except AppError as e:
                    logger.warning(f"Could not refresh {key} after mutation: {e.message}")

            record = normalize(entity) if entity is not None else None
            if record is not None:
                current = upsert_by_id(current, record)
                if view is not None:
                    view.merge(record)
            state = MutationState.MERGED
            return MutationResult(state, current, record=record)
        finally:
            self._release(key, state)
