"""Normalization of loosely typed backend payloads into view-model records.

Every public ``normalize_*`` function takes whatever the backend sent for one
entity and returns a fully populated dict: no declared field is ever ``None``.
Field names are resolved through explicit precedence chains so the templates
never have to guess between ``first_name`` and ``firstName``.
"""

from __future__ import annotations

import secrets
import string
from typing import Any, Iterable, Optional, Sequence

from .constants import (
    CURRENCY_CHOICES,
    DEFAULT_AVATAR,
    DEFAULT_CURRENCY,
    DEFAULT_GROUP_AVATAR,
    DEFAULT_PREVIEW_IMAGE,
    FALLBACK_CATEGORY,
    FALLBACK_GROUP_NAME,
    FALLBACK_ID_LENGTH,
    FALLBACK_ITEM_NAME,
    FALLBACK_MEMBER_NAME,
    FALLBACK_OWNER_NAME,
    FALLBACK_PARTY_NAME,
    FALLBACK_USER_NAME,
    FALLBACK_USERNAME,
    FALLBACK_VIDEO_TITLE,
    FRIENDSHIP_STATUS_CHOICES,
    GROUP_ID_PREFIX,
    ITEM_ID_PREFIX,
    MEMBER_ID_PREFIX,
    MEMBER_STATUS_CHOICES,
    PARTY_ID_PREFIX,
    PRIVACY_CHOICES,
    PRIVACY_INVITE_ONLY,
    PRIVACY_PRIVATE,
    PRIVACY_PUBLIC,
    RARITY_CHOICES,
    ROLE_CHOICES,
    ROLE_MEMBER,
    ROLE_NONE,
    ROLE_OWNER,
    USER_ID_PREFIX,
    VIDEO_ID_PREFIX,
    VIDEO_PRIVACY_CHOICES,
)
from .types import Group, Member, Party, Person, StoreItem, User, Video

_BASE36 = string.digits + string.ascii_lowercase
_TRUE_STRINGS = {"true", "1", "t", "yes", "y"}
_FALSE_STRINGS = {"false", "0", "f", "no", "n", ""}
_MEMBER_ROLES = {"owner", "admin", "moderator", "member"}


# --- Primitive coercion -----------------------------------------------------


def as_dict(value: Any) -> dict[str, Any]:
    """Return ``value`` if it is a dict, otherwise an empty dict."""
    return value if isinstance(value, dict) else {}


def first_present(
    data: dict[str, Any], keys: Iterable[str], default: Any = None
) -> Any:
    """Get first non-None value for a list of possible keys."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def first_text(data: dict[str, Any], keys: Iterable[str], default: str = "") -> str:
    """Get the first non-blank string (or number) for a list of possible keys."""
    for key in keys:
        value = data.get(key)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return default


def as_int(value: Any, default: int = 0) -> int:
    """Coerce ``value`` to an int, falling back to ``default``."""
    if isinstance(value, bool) or value is None:
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def as_float(value: Any, default: float = 0.0) -> float:
    """Coerce ``value`` to a float, falling back to ``default``."""
    if isinstance(value, bool) or value is None:
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if result != result:  # NaN
        return default
    return result


def parse_bool(value: Any) -> Optional[bool]:
    """Return the bool spelled by ``value``, or None if it spells neither."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return None


def as_bool(value: Any, default: bool = False) -> bool:
    """Coerce ``value`` to a bool, understanding the usual string spellings."""
    parsed = parse_bool(value)
    return default if parsed is None else parsed


def as_str_list(value: Any) -> list[str]:
    """Return the string items of ``value`` when it is a list."""
    if not isinstance(value, (list, tuple)):
        return []
    out = []
    for item in value:
        if isinstance(item, str) and item.strip():
            out.append(item.strip())
        elif isinstance(item, dict):
            label = first_text(item, ("name", "title", "slug"))
            if label:
                out.append(label)
    return out


def coerce_choice(value: Any, choices: Sequence[str], default: str) -> str:
    """Map ``value`` into the closed set ``choices``, else ``default``."""
    if not isinstance(value, str):
        return default
    candidate = value.strip().lower()
    if candidate in choices:
        return candidate
    hyphenated = candidate.replace("_", "-").replace(" ", "-")
    if hyphenated in choices:
        return hyphenated
    underscored = candidate.replace("-", "_").replace(" ", "_")
    if underscored in choices:
        return underscored
    return default


# --- Identifiers and names ----------------------------------------------------


def fallback_id(prefix: str) -> str:
    """Generate a client-side placeholder id such as ``group-3k9x0a2b``."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(FALLBACK_ID_LENGTH))
    return f"{prefix}-{suffix}"


def _is_numeric_id(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    if isinstance(value, float):
        return value.is_integer() and value >= 0
    if isinstance(value, str):
        return value.strip().isdecimal()
    return False


def resolve_id(
    data: dict[str, Any], prefix: str, keys: Sequence[str] = ("id",)
) -> tuple[str, int | str]:
    """Resolve the display id and the backend id of an entity.

    Precedence is numeric id, then ``slug``, then any other non-empty id, then
    a generated placeholder. The backend id is ``""`` for placeholders.
    """
    raw = first_present(data, keys)
    if _is_numeric_id(raw):
        number = int(float(raw)) if not isinstance(raw, str) else int(raw.strip())
        return str(number), number

    text_id = raw.strip() if isinstance(raw, str) else ""
    slug = first_text(data, ("slug",))
    if slug:
        return slug, text_id or slug
    if text_id:
        return text_id, text_id
    return fallback_id(prefix), ""


def resolve_display_name(
    data: dict[str, Any], fallback: str, alias_keys: Sequence[str] = ()
) -> str:
    """Resolve a human readable name.

    ``name``/``display_name`` (then any ``alias_keys``) win, then
    ``full_name``, then ``username``, then the composed first and last name,
    then ``fallback``.
    """
    name = first_text(data, ("name", "display_name", "displayName", *alias_keys))
    if name:
        return name
    name = first_text(data, ("full_name", "fullName"))
    if name:
        return name
    name = first_text(data, ("username",))
    if name:
        return name
    composed = " ".join(
        part
        for part in (
            first_text(data, ("first_name", "firstName")),
            first_text(data, ("last_name", "lastName")),
        )
        if part
    )
    return composed or fallback


def _resolve_avatar(data: dict[str, Any], default: str = DEFAULT_AVATAR) -> str:
    return first_text(
        data, ("avatar_url", "avatar", "profile_image", "image", "picture"), default
    )


def _count(data: dict[str, Any], keys: Sequence[str], list_key: str) -> int:
    value = first_present(data, keys)
    if value is not None:
        return max(as_int(value), 0)
    items = data.get(list_key)
    if isinstance(items, list):
        return len(items)
    return 0


# --- Entity normalizers -------------------------------------------------------


def normalize_person(data: Any, fallback_name: str = FALLBACK_USER_NAME) -> Person:
    """Normalize an embedded user reference (owner, host, author)."""
    data = as_dict(data)
    if isinstance(data.get("user"), dict):
        data = {**data["user"], **{k: v for k, v in data.items() if k != "user"}}
    person_id, _ = resolve_id(data, USER_ID_PREFIX, ("id", "user_id", "uuid"))
    return {
        "id": person_id,
        "name": resolve_display_name(data, fallback_name),
        "username": first_text(data, ("username", "handle"), FALLBACK_USERNAME),
        "avatar": _resolve_avatar(data),
    }


def normalize_user(data: Any) -> User:
    """Normalize a user from friend lists, suggestions or search results."""
    data = as_dict(data)
    nested = as_dict(data.get("user"))
    merged = {**nested, **data} if nested else data
    user_id, backend_id = resolve_id(merged, USER_ID_PREFIX, ("id", "user_id", "uuid"))
    if backend_id == "" and first_text(merged, ("username",)):
        user_id = backend_id = first_text(merged, ("username",))

    return {
        "id": user_id,
        "backend_id": backend_id,
        "username": first_text(merged, ("username", "handle"), FALLBACK_USERNAME),
        "display_name": resolve_display_name(merged, FALLBACK_USER_NAME),
        "first_name": first_text(merged, ("first_name", "firstName")),
        "last_name": first_text(merged, ("last_name", "lastName")),
        "avatar": _resolve_avatar(merged),
        "bio": first_text(merged, ("bio", "about")),
        "location": first_text(merged, ("location", "city")),
        "is_online": as_bool(
            first_present(merged, ("is_online", "isOnline", "online")),
            default=merged.get("status") == "online",
        ),
        "is_verified": as_bool(first_present(merged, ("is_verified", "isVerified"))),
        "friendship_status": coerce_choice(
            first_present(merged, ("friendship_status", "friendshipStatus")),
            FRIENDSHIP_STATUS_CHOICES,
            "none",
        ),
        "mutual_friends": max(
            as_int(
                first_present(
                    merged,
                    ("mutual_friends_count", "mutual_friends", "mutualFriends"),
                )
            ),
            0,
        ),
    }


def _resolve_privacy(data: dict[str, Any]) -> str:
    explicit = coerce_choice(data.get("privacy"), PRIVACY_CHOICES, "")
    if explicit:
        return explicit
    if as_bool(first_present(data, ("invite_only", "inviteOnly", "is_invite_only"))):
        return PRIVACY_INVITE_ONLY
    if as_bool(first_present(data, ("is_private", "isPrivate"))):
        return PRIVACY_PRIVATE
    if data.get("is_public") is not None and not as_bool(data.get("is_public")):
        return PRIVACY_PRIVATE
    return PRIVACY_PUBLIC


def _resolve_role(data: dict[str, Any], membership: dict[str, Any]) -> str:
    raw = first_present(data, ("role", "user_role", "userRole"))
    if isinstance(raw, dict):
        raw = first_present(raw, ("name", "role"))
    if raw is None:
        raw = membership.get("role")
    return coerce_choice(raw, ROLE_CHOICES, ROLE_NONE)


def _resolve_is_owner(
    data: dict[str, Any], role: str, owner: Person, current_user_id: Optional[str]
) -> bool:
    explicit = first_present(data, ("is_owner", "isOwner"))
    if explicit is not None:
        return as_bool(explicit)
    if role == ROLE_OWNER:
        return True
    return bool(current_user_id) and owner["id"] == str(current_user_id)


def _resolve_is_member(
    data: dict[str, Any], membership: dict[str, Any], role: str, is_owner: bool
) -> bool:
    explicit = first_present(data, ("is_member", "isMember", "joined"))
    if explicit is not None:
        return as_bool(explicit)
    if role in _MEMBER_ROLES:
        return True
    if membership:
        return membership.get("status", "active") == "active"
    return is_owner


def normalize_owner(data: Any) -> Person:
    """Normalize the owner of a group, accepting bare owner name fields."""
    owner_data = as_dict(data)
    return normalize_person(owner_data, FALLBACK_OWNER_NAME)


def normalize_group(data: Any, current_user_id: Optional[str] = None) -> Group:
    """Normalize a group/community payload.

    Args:
        data: The raw group dictionary from the backend.
        current_user_id: Optional id of the signed-in user, used to infer
            ownership when the backend does not say.

    Returns:
        A fully populated group record.
    """
    data = as_dict(data)
    group_id, backend_id = resolve_id(data, GROUP_ID_PREFIX, ("id", "uuid"))

    owner = normalize_owner(first_present(data, ("owner", "creator", "created_by")))
    if owner["name"] == FALLBACK_OWNER_NAME:
        owner["name"] = first_text(data, ("owner_name", "ownerName"), FALLBACK_OWNER_NAME)

    membership = as_dict(first_present(data, ("membership", "user_membership")))
    role = _resolve_role(data, membership)
    is_owner = _resolve_is_owner(data, role, owner, current_user_id)
    is_member = _resolve_is_member(data, membership, role, is_owner)
    if is_owner:
        role = ROLE_OWNER
    elif is_member and role == ROLE_NONE:
        role = ROLE_MEMBER
    elif not is_member:
        role = ROLE_NONE

    categories = as_str_list(data.get("categories"))
    category = first_text(data, ("category", "type"))
    if not category:
        category = categories[0] if categories else FALLBACK_CATEGORY
    elif not categories:
        categories = [category]

    stats = as_dict(data.get("stats"))
    created_at = first_text(data, ("created_at", "createdAt"))
    member_count = _count(
        data, ("member_count", "members_count", "memberCount"), "members"
    )

    return {
        "id": group_id,
        "backend_id": backend_id,
        "name": resolve_display_name(data, FALLBACK_GROUP_NAME, ("title",)),
        "description": first_text(data, ("description", "summary")),
        "avatar": _resolve_avatar(data, DEFAULT_GROUP_AVATAR),
        "privacy": _resolve_privacy(data),
        "member_count": member_count,
        "max_members": max(as_int(first_present(data, ("max_members", "maxMembers"))), 0),
        "category": category,
        "categories": categories,
        "tags": as_str_list(first_present(data, ("tags", "topics"))),
        "created_at": created_at,
        "last_activity": first_text(
            data, ("last_activity", "lastActivity", "updated_at"), created_at
        ),
        "owner": owner,
        "is_owner": is_owner,
        "is_member": is_member,
        "is_pending": as_bool(
            first_present(data, ("is_pending", "isPending")),
            default=membership.get("status") == "pending",
        ),
        "role": role,
        "stats": {
            "total_parties": max(
                as_int(first_present(stats, ("total_parties", "parties"))), 0
            ),
            "active_members": max(
                as_int(first_present(stats, ("active_members",), member_count)), 0
            ),
            "recent_activity": max(as_int(stats.get("recent_activity")), 0),
        },
    }


def normalize_member(data: Any) -> Member:
    """Normalize a group membership entry."""
    data = as_dict(data)
    member_id, backend_id = resolve_id(
        data, MEMBER_ID_PREFIX, ("id", "membership_id")
    )
    user_data = as_dict(data.get("user")) or data
    return {
        "id": member_id,
        "backend_id": backend_id,
        "user": normalize_person(user_data, FALLBACK_MEMBER_NAME),
        "role": coerce_choice(data.get("role"), ROLE_CHOICES[:-1], ROLE_MEMBER),
        "joined_at": first_text(data, ("joined_at", "joinedAt", "created_at")),
        "last_active": first_text(data, ("last_active", "lastActive", "last_seen")),
        "status": coerce_choice(data.get("status"), MEMBER_STATUS_CHOICES, "active"),
    }


def normalize_store_item(data: Any) -> StoreItem:
    """Normalize a store catalogue item.

    ``price`` may be a bare number or a ``{"amount", "currency"}`` object;
    ``rating`` may be a bare number or an ``{"average", "count"}`` object.
    """
    data = as_dict(data)
    item_id, backend_id = resolve_id(data, ITEM_ID_PREFIX, ("id", "item_id"))

    raw_price = data.get("price")
    price_obj = as_dict(raw_price)
    price = as_float(price_obj.get("amount") if price_obj else raw_price)
    currency = coerce_choice(
        price_obj.get("currency") or data.get("currency"),
        CURRENCY_CHOICES,
        DEFAULT_CURRENCY,
    )

    raw_rating = data.get("rating")
    rating_obj = as_dict(raw_rating)
    stats = as_dict(data.get("stats"))
    rating = as_float(rating_obj.get("average") if rating_obj else raw_rating)
    if not rating:
        rating = as_float(stats.get("rating"))
    rating_count = as_int(
        rating_obj.get("count")
        if rating_obj
        else first_present(data, ("reviews", "review_count"), stats.get("reviews"))
    )

    raw_discount = data.get("discount")
    discount_obj = as_dict(raw_discount)
    discount = as_float(discount_obj.get("percentage") if discount_obj else raw_discount)
    original_price = as_float(
        first_present(discount_obj, ("original_price",))
        or first_present(data, ("original_price", "originalPrice")),
        price,
    )

    images = as_str_list(first_present(data, ("preview_images", "images")))
    preview = first_text(data, ("preview", "icon", "image"))

    return {
        "id": item_id,
        "backend_id": backend_id,
        "name": resolve_display_name(data, FALLBACK_ITEM_NAME, ("title",)),
        "description": first_text(data, ("description", "summary")),
        "category": first_text(data, ("category",), FALLBACK_CATEGORY),
        "price": max(price, 0.0),
        "currency": currency,
        "rarity": coerce_choice(data.get("rarity"), RARITY_CHOICES, "common"),
        "tags": as_str_list(data.get("tags")),
        "preview_image": preview or (images[0] if images else DEFAULT_PREVIEW_IMAGE),
        "owned": as_bool(
            first_present(data, ("owned", "is_owned", "isOwned", "is_purchased"))
        ),
        "featured": as_bool(first_present(data, ("featured", "is_featured", "isFeatured"))),
        "is_new": as_bool(first_present(data, ("new", "is_new", "isNew"))),
        "limited_time": as_bool(
            first_present(data, ("limited_time", "is_limited", "isLimited"))
        ),
        "discount_percentage": min(max(discount, 0.0), 100.0),
        "original_price": original_price,
        "rating": rating,
        "rating_count": max(rating_count, 0),
        "popularity_rank": max(as_int(data.get("popularity_rank")), 0),
        "purchases": max(
            as_int(first_present(data, ("purchases",), stats.get("purchases"))), 0
        ),
        "release_date": first_text(
            data, ("release_date", "releaseDate", "created_at")
        ),
    }


def normalize_video(data: Any) -> Video:
    """Normalize a video search result."""
    data = as_dict(data)
    video_id, backend_id = resolve_id(data, VIDEO_ID_PREFIX, ("id", "uuid"))
    return {
        "id": video_id,
        "backend_id": backend_id,
        "title": first_text(data, ("title",))
        or resolve_display_name(data, FALLBACK_VIDEO_TITLE),
        "description": first_text(data, ("description", "summary")),
        "thumbnail": first_text(
            data, ("thumbnail", "thumbnail_url", "thumbnailUrl"), DEFAULT_PREVIEW_IMAGE
        ),
        "duration": max(as_int(first_present(data, ("duration", "duration_seconds"))), 0),
        "views": max(as_int(first_present(data, ("views", "view_count"))), 0),
        "likes": max(as_int(first_present(data, ("likes", "like_count"))), 0),
        "created_at": first_text(data, ("created_at", "createdAt", "uploaded_at")),
        "author": normalize_person(
            first_present(data, ("author", "uploader", "user")), FALLBACK_USER_NAME
        ),
        "privacy": coerce_choice(data.get("privacy"), VIDEO_PRIVACY_CHOICES, "public"),
        "tags": as_str_list(data.get("tags")),
    }


def normalize_party(data: Any) -> Party:
    """Normalize a watch party search result."""
    data = as_dict(data)
    party_id, backend_id = resolve_id(data, PARTY_ID_PREFIX, ("id", "uuid"))
    participant_count = _count(
        data,
        ("participant_count", "participants_count", "participantCount"),
        "participants",
    )
    max_participants = max(
        as_int(first_present(data, ("max_participants", "maxParticipants"))), 0
    )
    status = first_text(data, ("status",)).lower()
    return {
        "id": party_id,
        "backend_id": backend_id,
        "name": resolve_display_name(data, FALLBACK_PARTY_NAME, ("title",)),
        "description": first_text(data, ("description", "summary")),
        "host": normalize_person(
            first_present(data, ("host", "owner", "creator")), FALLBACK_USER_NAME
        ),
        "scheduled_for": first_text(
            data, ("scheduled_for", "scheduledFor", "scheduled_start")
        ),
        "is_active": as_bool(
            first_present(data, ("is_active", "isActive")),
            default=status in ("live", "active"),
        ),
        "participant_count": participant_count,
        "max_participants": max_participants,
        "is_private": as_bool(
            first_present(data, ("is_private", "isPrivate")),
            default=data.get("visibility") == "private",
        ),
        "is_full": bool(max_participants) and participant_count >= max_participants,
        "room_code": first_text(data, ("room_code", "roomCode")),
        "tags": as_str_list(data.get("tags")),
    }
