"""Business logic for the friends page: the friend list and suggestions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional

from watchparty.core.collection import (
    dedupe_by_id,
    extract_collection,
    extract_page_info,
    remove_by_id,
)
from watchparty.core.constants import (
    DISMISSED_SUGGESTIONS_LIMIT,
    FRIEND_SUGGESTIONS_PATH,
    FRIENDS_PATH,
)
from watchparty.core.normalize import normalize_user
from watchparty.core.query import QueryEngine, alphabetical, flag_first, numeric

if TYPE_CHECKING:
    from watchparty.core.client import ApiClient
    from watchparty.core.types import PageInfo, User

PEOPLE_SEARCH_FIELDS = ("display_name", "username", "bio", "location")

FRIEND_SORTS = {
    "online": (flag_first("is_online"), alphabetical("display_name")),
    "name": (alphabetical("display_name"),),
    "mutual": (numeric("mutual_friends", descending=True),),
}
FRIEND_SORT_LABELS = [
    ("online", "Online first"),
    ("name", "Name"),
    ("mutual", "Most mutual friends"),
]

FRIEND_QUERY = QueryEngine(
    search_fields=PEOPLE_SEARCH_FIELDS,
    filter_fields={"online": "is_online"},
    sorts=FRIEND_SORTS,
    default_sort="online",
)
SUGGESTION_QUERY = QueryEngine(
    search_fields=PEOPLE_SEARCH_FIELDS,
    sorts={"mutual": (numeric("mutual_friends", descending=True),)},
    default_sort="mutual",
)

SUGGESTION_ENVELOPE_KEYS = ("results", "suggestions", "data")


def remember_dismissal(dismissed: Optional[list], user_id: str) -> list[str]:
    """Return ``dismissed`` with ``user_id`` in front, capped in size."""
    entries = [entry for entry in (dismissed or []) if isinstance(entry, str)]
    entries = [entry for entry in entries if entry != user_id]
    return [user_id, *entries][:DISMISSED_SUGGESTIONS_LIMIT]


def suggestions_without_friends(
    friends: Iterable[User], suggestions: Iterable[User], dismissed: Iterable[str] = ()
) -> list[User]:
    """Drop suggested people who are already friends or were dismissed."""
    # A friend listed again as a suggestion keeps its friend record.
    people = dedupe_by_id([*friends, *suggestions])
    remaining = [user for user in people if user["friendship_status"] != "friends"]
    for user_id in dismissed:
        remaining = remove_by_id(remaining, user_id)
    return remaining


class FriendService:
    """Reads for the friend list and friend suggestions."""

    @staticmethod
    def get_friends(client: ApiClient, page: int = 1) -> tuple[list[User], PageInfo]:
        """Fetch one page of friends with its pagination metadata."""
        body = client.get(FRIENDS_PATH, params={"page": page} if page > 1 else None)
        friends = dedupe_by_id(normalize_user(raw) for raw in extract_collection(body))
        for friend in friends:
            friend["friendship_status"] = "friends"
        return friends, extract_page_info(body)

    @staticmethod
    def get_suggestions(client: ApiClient) -> list[User]:
        """Fetch the people the backend suggests befriending."""
        body = client.get(FRIEND_SUGGESTIONS_PATH)
        return dedupe_by_id(
            normalize_user(raw)
            for raw in extract_collection(body, SUGGESTION_ENVELOPE_KEYS)
        )
