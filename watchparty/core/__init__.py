"""Core (UI-agnostic) data layer for the watchparty front end.

This package contains:
- response normalization (loose backend JSON -> view-model records)
- collection envelope extraction and id-keyed helpers
- the client-side query engine (search, filters, buckets, sorts)
- the REST client and the mutation coordinator (imported directly)
"""

from .collection import extract_collection, upsert_by_id
from .query import Bucket, QueryEngine, QueryState
from .types import Group, Member, Party, Record, StoreItem, User, Video

__all__ = [
    "Bucket",
    "Group",
    "Member",
    "Party",
    "QueryEngine",
    "QueryState",
    "Record",
    "StoreItem",
    "User",
    "Video",
    "extract_collection",
    "upsert_by_id",
]
