"""Business logic for the search page."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional

from watchparty.core.collection import dedupe_by_id, extract_collection
from watchparty.core.constants import (
    ALL,
    FRIEND_REQUEST_PATH,
    LONG_VIDEO_SECONDS,
    RECENT_SEARCHES_LIMIT,
    SEARCH_PATH,
    SHORT_VIDEO_SECONDS,
    USER_DETAIL_PATH,
)
from watchparty.core.mutation import MutationResult, MutationState
from watchparty.core.normalize import (
    as_dict,
    normalize_party,
    normalize_user,
    normalize_video,
)
from watchparty.core.query import (
    Bucket,
    QueryEngine,
    QueryState,
    alphabetical,
    by_date,
    numeric,
)
from watchparty.errors import NotFoundError

if TYPE_CHECKING:
    from watchparty.core.client import ApiClient
    from watchparty.core.mutation import MutationCoordinator
    from watchparty.core.types import User

SEARCH_TYPES = ("all", "users", "videos", "parties")
SORT_LABELS = [
    ("relevance", "Relevance"),
    ("date", "Date"),
    ("popularity", "Popularity"),
]
DATE_RANGES = [
    ("all", "Any time"),
    ("today", "Today"),
    ("week", "This week"),
    ("month", "This month"),
    ("year", "This year"),
]

DURATION_BUCKETS = {
    "short": Bucket(upper=SHORT_VIDEO_SECONDS),
    "medium": Bucket(SHORT_VIDEO_SECONDS, LONG_VIDEO_SECONDS),
    "long": Bucket(lower=LONG_VIDEO_SECONDS),
}

# Relevance keeps the order the backend ranked the results in.
USER_QUERY = QueryEngine(
    search_fields=("username", "display_name"),
    sorts={
        "relevance": (),
        "date": (),
        "name": (alphabetical("display_name"),),
        "popularity": (numeric("mutual_friends", descending=True),),
    },
    default_sort="relevance",
)
VIDEO_QUERY = QueryEngine(
    search_fields=("title", "description", "tags"),
    sorts={
        "relevance": (),
        "date": (by_date("created_at"),),
        "popularity": (numeric("views", descending=True),),
    },
    default_sort="relevance",
    bucket_field="duration",
    buckets=DURATION_BUCKETS,
)
PARTY_QUERY = QueryEngine(
    search_fields=("name", "description", "tags"),
    sorts={
        "relevance": (),
        "date": (by_date("scheduled_for"),),
        "popularity": (numeric("participant_count", descending=True),),
    },
    default_sort="relevance",
    filter_fields={"active": "is_active", "full": "is_full"},
)

PARTY_STATUS_FILTERS = {"active": "true", "scheduled": "false"}
PARTY_AVAILABILITY_FILTERS = {"open": "false", "full": "true"}


def party_filters(args: Mapping[str, Any]) -> dict[str, str]:
    """Translate the ``status`` and ``availability`` arguments to record filters."""
    filters = {}
    status = PARTY_STATUS_FILTERS.get(args.get("status") or ALL)
    if status:
        filters["active"] = status
    availability = PARTY_AVAILABILITY_FILTERS.get(args.get("availability") or ALL)
    if availability:
        filters["full"] = availability
    return filters


def empty_results() -> dict[str, list]:
    return {"users": [], "videos": [], "parties": []}


def remember_search(history: Optional[list], query: str) -> list[str]:
    """Return ``history`` with ``query`` moved to the front, capped in size."""
    query = query.strip()
    entries = [entry for entry in (history or []) if isinstance(entry, str)]
    if not query:
        return entries[:RECENT_SEARCHES_LIMIT]
    entries = [entry for entry in entries if entry.casefold() != query.casefold()]
    return [query, *entries][:RECENT_SEARCHES_LIMIT]


class SearchService:
    """Backend search plus the local filters of the search page."""

    @staticmethod
    def search(
        client: ApiClient,
        query: str,
        search_type: str = "all",
        sort: str = "relevance",
        date_range: str = "all",
    ) -> dict[str, list]:
        """Run a backend search and normalize each result group."""
        params = {"q": query, "type": search_type, "sort": sort}
        if date_range and date_range != ALL:
            params["date_range"] = date_range
        body = as_dict(client.get(SEARCH_PATH, params=params))
        return {
            "users": dedupe_by_id(
                normalize_user(raw) for raw in extract_collection(body.get("users"))
            ),
            "videos": dedupe_by_id(
                normalize_video(raw) for raw in extract_collection(body.get("videos"))
            ),
            "parties": dedupe_by_id(
                normalize_party(raw) for raw in extract_collection(body.get("parties"))
            ),
        }

    @staticmethod
    def refine(results: dict[str, list], args: Mapping[str, Any]) -> dict[str, list]:
        """Apply the local filters and sort to backend results."""
        sort = args.get("sort") or "relevance"
        search_type = args.get("type") or ALL
        refined = {
            "users": USER_QUERY.run(results["users"], QueryState(sort=sort)),
            "videos": VIDEO_QUERY.run(
                results["videos"],
                QueryState(sort=sort, bucket=args.get("duration") or ALL),
            ),
            "parties": PARTY_QUERY.run(
                results["parties"], QueryState(sort=sort, filters=party_filters(args))
            ),
        }
        if search_type in refined:
            refined = {
                key: (value if key == search_type else [])
                for key, value in refined.items()
            }
        return refined

    @staticmethod
    def get_user(client: ApiClient, user_id: str) -> User:
        """Fetch one user profile."""
        body = as_dict(client.get(USER_DETAIL_PATH.format(user_id=user_id)))
        entity = as_dict(body.get("user")) or body
        if not entity:
            raise NotFoundError("User not found.")
        return normalize_user(entity)

    @staticmethod
    def send_friend_request(
        client: ApiClient,
        coordinator: MutationCoordinator,
        key: str,
        user: User,
        records: list[User] | tuple = (),
    ) -> MutationResult:
        """Send a friend request and merge the refreshed user record."""
        backend_id = user["backend_id"]
        if backend_id == "":
            return MutationResult(
                MutationState.IDLE, list(records), error="This user is not available."
            )
        if user["friendship_status"] in ("friends", "pending_sent", "blocked"):
            return MutationResult(
                MutationState.IDLE,
                list(records),
                error="A friend request cannot be sent to this user.",
            )

        def request():
            body = as_dict(
                client.post(FRIEND_REQUEST_PATH, json={"user_id": backend_id})
            )
            # The body describes the request, not the user; re-read the profile.
            return {"user": body["user"]} if as_dict(body.get("user")) else None

        return coordinator.run(
            key,
            request=request,
            normalize=normalize_user,
            records=records,
            fetch_detail=lambda: client.get(USER_DETAIL_PATH.format(user_id=backend_id)),
            entity_keys=("user",),
        )
