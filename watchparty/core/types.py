"""Core data types for the watchparty front end."""

from typing import Any, Dict, List, TypedDict, Union  # noqa: UP035


class _RecordBase(TypedDict):
    id: str
    backend_id: Union[int, str]  # noqa: UP007


class Record(_RecordBase, total=False):
    """Generic normalized entity."""


class Person(TypedDict):
    """A compact user reference embedded in other records."""

    id: str
    name: str
    username: str
    avatar: str


class User(Record, total=False):
    """A user as shown in friend lists and search results."""

    username: str
    display_name: str
    first_name: str
    last_name: str
    avatar: str
    bio: str
    location: str
    is_online: bool
    is_verified: bool
    friendship_status: str
    mutual_friends: int


class GroupStats(TypedDict):
    total_parties: int
    active_members: int
    recent_activity: int


class Group(Record, total=False):
    """A community group."""

    name: str
    description: str
    avatar: str
    privacy: str
    member_count: int
    max_members: int
    category: str
    categories: List[str]  # noqa: UP006
    tags: List[str]  # noqa: UP006
    created_at: str
    last_activity: str
    owner: Person
    is_owner: bool
    is_member: bool
    is_pending: bool
    role: str
    stats: GroupStats


class Member(Record, total=False):
    """A group membership entry."""

    user: Person
    role: str
    joined_at: str
    last_active: str
    status: str


class StoreItem(Record, total=False):
    """An item in the store catalogue."""

    name: str
    description: str
    category: str
    price: float
    currency: str
    rarity: str
    tags: List[str]  # noqa: UP006
    preview_image: str
    owned: bool
    featured: bool
    is_new: bool
    limited_time: bool
    discount_percentage: float
    original_price: float
    rating: float
    rating_count: int
    popularity_rank: int
    purchases: int
    release_date: str


class Video(Record, total=False):
    """A video search result."""

    title: str
    description: str
    thumbnail: str
    duration: int
    views: int
    likes: int
    created_at: str
    author: Person
    privacy: str
    tags: List[str]  # noqa: UP006


class Party(Record, total=False):
    """A watch party search result."""

    name: str
    description: str
    host: Person
    scheduled_for: str
    is_active: bool
    participant_count: int
    max_participants: int
    is_private: bool
    is_full: bool
    room_code: str
    tags: List[str]  # noqa: UP006


class PageInfo(TypedDict):
    """Pagination metadata from a list envelope."""

    count: int
    next: str
    previous: str
    current_page: int
    total_pages: int


JSONBody = Union[Dict[str, Any], List[Any], None]  # noqa: UP006, UP007
