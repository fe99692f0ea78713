"""Unwrapping of list envelopes and id-keyed collection helpers."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Sequence

from .normalize import as_dict, as_int, first_text
from .types import PageInfo

logger = logging.getLogger(__name__)

ENVELOPE_KEYS = ("results", "data")


def extract_collection(payload: Any, keys: Sequence[str] = ENVELOPE_KEYS) -> list[Any]:
    """Unwrap a list response into a plain list of raw entities.

    Recognizes, in order, a bare list, then a ``results`` list, then a ``data``
    list. Any other shape yields an empty list. Never raises and never
    normalizes: callers compose it with a normalizer, e.g.
    ``[normalize_group(g) for g in extract_collection(body)]``.
    """
    if isinstance(payload, list):
        return list(payload)
    if isinstance(payload, dict):
        for key in keys:
            value = payload.get(key)
            if isinstance(value, list):
                return list(value)
        if payload:
            logger.warning(
                f"Unrecognized collection envelope with keys {sorted(payload)[:10]}"
            )
        return []
    if payload is not None:
        logger.warning(
            f"Unrecognized collection payload of type {type(payload).__name__}"
        )
    return []


def extract_page_info(payload: Any) -> PageInfo:
    """Read pagination metadata from a ``{results, count, next, ...}`` envelope."""
    data = as_dict(payload)
    items = extract_collection(payload)
    count = as_int(data.get("count"), len(items))
    return {
        "count": max(count, 0),
        "next": first_text(data, ("next",)),
        "previous": first_text(data, ("previous",)),
        "current_page": max(as_int(data.get("current_page"), 1), 1),
        "total_pages": max(as_int(data.get("total_pages"), 1), 1),
    }


def find_by_id(records: Iterable[dict[str, Any]], record_id: str) -> Optional[dict[str, Any]]:
    """Return the record with ``record_id`` or None."""
    for record in records:
        if record.get("id") == record_id:
            return record
    return None


def upsert_by_id(
    records: Sequence[dict[str, Any]], record: dict[str, Any]
) -> list[dict[str, Any]]:
    """Return a new list with ``record`` replacing its namesake, else prepended."""
    replaced = False
    out = []
    for existing in records:
        if not replaced and existing.get("id") == record.get("id"):
            out.append(record)
            replaced = True
        else:
            out.append(existing)
    if not replaced:
        out.insert(0, record)
    return out


def remove_by_id(
    records: Sequence[dict[str, Any]], record_id: str
) -> list[dict[str, Any]]:
    """Return a new list without the record ``record_id``."""
    return [record for record in records if record.get("id") != record_id]


def dedupe_by_id(records: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Drop later duplicates, keeping the first record seen for each id."""
    seen: set[str] = set()
    out = []
    for record in records:
        record_id = record.get("id")
        if record_id in seen:
            continue
        seen.add(record_id)
        out.append(record)
    return out
