"""Business logic for group-related operations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from flask import current_app

from watchparty.core.collection import dedupe_by_id, extract_collection
from watchparty.core.constants import (
    GROUP_DETAIL_PATH,
    GROUP_JOIN_PATH,
    GROUP_LEAVE_PATH,
    GROUP_MEMBERS_PATH,
    GROUPS_DISCOVER_PATH,
    GROUPS_MINE_PATH,
    GROUPS_PATH,
)
from watchparty.core.mutation import MutationResult, MutationState
from watchparty.core.normalize import normalize_group, normalize_member
from watchparty.core.query import (
    QueryEngine,
    alphabetical,
    by_date,
    numeric,
)
from watchparty.errors import AppError, NotFoundError

if TYPE_CHECKING:
    from watchparty.core.client import ApiClient
    from watchparty.core.mutation import MutationCoordinator
    from watchparty.core.types import Group, Member

GROUP_SORTS = {
    "members": (numeric("member_count", descending=True),),
    "newest": (by_date("created_at"),),
    "active": (by_date("last_activity"),),
    "name": (alphabetical("name"),),
}
GROUP_SORT_LABELS = [
    ("members", "Most members"),
    ("newest", "Newest"),
    ("active", "Recently active"),
    ("name", "Name"),
]

GROUP_QUERY = QueryEngine(
    search_fields=("name", "description", "tags", "categories"),
    category_field="categories",
    filter_fields={"privacy": "privacy"},
    sorts=GROUP_SORTS,
    default_sort="members",
)


class GroupService:
    """Reads and mutations for community groups."""

    @staticmethod
    def fetch_groups(
        client: ApiClient, path: str, current_user_id: Optional[str] = None
    ) -> list[Group]:
        """Fetch and normalize a list of groups."""
        body = client.get(path)
        return dedupe_by_id(
            normalize_group(raw, current_user_id) for raw in extract_collection(body)
        )

    @staticmethod
    def discover_groups(
        client: ApiClient, current_user_id: Optional[str] = None
    ) -> list[Group]:
        """Fetch the groups the user can discover."""
        return GroupService.fetch_groups(client, GROUPS_DISCOVER_PATH, current_user_id)

    @staticmethod
    def my_groups(client: ApiClient, current_user_id: Optional[str] = None) -> list[Group]:
        """Fetch the groups the user belongs to."""
        groups = GroupService.fetch_groups(client, GROUPS_MINE_PATH, current_user_id)
        for group in groups:
            # Everything on this endpoint is a membership, whatever the payload says.
            if not group["is_member"]:
                group["is_member"] = True
                if group["role"] == "none":
                    group["role"] = "member"
        return groups

    @staticmethod
    def get_group(
        client: ApiClient, group_id: str, current_user_id: Optional[str] = None
    ) -> Group:
        """Fetch one group, raising NotFoundError if the backend has none."""
        body = client.get(GROUP_DETAIL_PATH.format(group_id=group_id))
        if not isinstance(body, dict) or not body:
            raise NotFoundError("Group not found.")
        return normalize_group(body, current_user_id)

    @staticmethod
    def get_members(client: ApiClient, group_id: str) -> list[Member]:
        """Fetch the member list of a group, empty on failure."""
        try:
            body = client.get(GROUP_MEMBERS_PATH.format(group_id=group_id))
        except AppError as e:
            current_app.logger.warning(
                f"Could not load members of group {group_id}: {e.message}"
            )
            return []
        return dedupe_by_id(normalize_member(raw) for raw in extract_collection(body))

    @staticmethod
    def create_group(
        client: ApiClient,
        coordinator: MutationCoordinator,
        key: str,
        payload: dict[str, Any],
        current_user_id: Optional[str] = None,
        records: list[Group] | tuple = (),
    ) -> MutationResult:
        """Create a group and merge the server's copy into ``records``."""
        return coordinator.run(
            key,
            request=lambda: client.post(GROUPS_PATH, json=payload),
            normalize=lambda raw: normalize_group(raw, current_user_id),
            records=records,
            entity_keys=("group",),
        )

    @staticmethod
    def _membership_change(
        client: ApiClient,
        coordinator: MutationCoordinator,
        key: str,
        group: Group,
        path_template: str,
        current_user_id: Optional[str],
        records: list[Group] | tuple,
    ) -> MutationResult:
        backend_id = group["backend_id"]
        if backend_id == "":
            return MutationResult(
                MutationState.IDLE,
                list(records),
                error="This group is not available yet.",
            )
        return coordinator.run(
            key,
            request=lambda: client.post(path_template.format(group_id=backend_id)),
            normalize=lambda raw: normalize_group(raw, current_user_id),
            records=records,
            fetch_detail=lambda: client.get(
                GROUP_DETAIL_PATH.format(group_id=backend_id)
            ),
            entity_keys=("group",),
        )

    @staticmethod
    def join_group(
        client: ApiClient,
        coordinator: MutationCoordinator,
        key: str,
        group: Group,
        current_user_id: Optional[str] = None,
        records: list[Group] | tuple = (),
    ) -> MutationResult:
        """Join (or request to join) a group."""
        return GroupService._membership_change(
            client, coordinator, key, group, GROUP_JOIN_PATH, current_user_id, records
        )

    @staticmethod
    def leave_group(
        client: ApiClient,
        coordinator: MutationCoordinator,
        key: str,
        group: Group,
        current_user_id: Optional[str] = None,
        records: list[Group] | tuple = (),
    ) -> MutationResult:
        """Leave a group."""
        return GroupService._membership_change(
            client, coordinator, key, group, GROUP_LEAVE_PATH, current_user_id, records
        )
