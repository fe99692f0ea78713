"""Global constants for the watchparty front end."""

# Sentinel used by every categorical filter to mean "no filter"
ALL = "all"

# Placeholder id prefixes
GROUP_ID_PREFIX = "group"
MEMBER_ID_PREFIX = "member"
USER_ID_PREFIX = "user"
ITEM_ID_PREFIX = "item"
VIDEO_ID_PREFIX = "video"
PARTY_ID_PREFIX = "party"
FALLBACK_ID_LENGTH = 8

# Fallback display strings
FALLBACK_MEMBER_NAME = "Member"
FALLBACK_USER_NAME = "User"
FALLBACK_USERNAME = "user"
FALLBACK_GROUP_NAME = "Untitled Group"
FALLBACK_ITEM_NAME = "Store Item"
FALLBACK_VIDEO_TITLE = "Untitled video"
FALLBACK_PARTY_NAME = "Watch Party"
FALLBACK_OWNER_NAME = "Unknown"
FALLBACK_CATEGORY = "general"
DEFAULT_AVATAR = "/static/placeholder-user.jpg"
DEFAULT_GROUP_AVATAR = "/static/placeholder.svg"
DEFAULT_PREVIEW_IMAGE = "/static/placeholder.jpg"

# Group privacy
PRIVACY_PUBLIC = "public"
PRIVACY_PRIVATE = "private"
PRIVACY_INVITE_ONLY = "invite-only"
PRIVACY_CHOICES = (PRIVACY_PUBLIC, PRIVACY_PRIVATE, PRIVACY_INVITE_ONLY)

# Group roles
ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLE_MODERATOR = "moderator"
ROLE_MEMBER = "member"
ROLE_NONE = "none"
ROLE_CHOICES = (ROLE_OWNER, ROLE_ADMIN, ROLE_MODERATOR, ROLE_MEMBER, ROLE_NONE)

MEMBER_STATUS_CHOICES = ("active", "inactive", "banned")
FRIENDSHIP_STATUS_CHOICES = (
    "none",
    "pending_sent",
    "pending_received",
    "friends",
    "blocked",
)
VIDEO_PRIVACY_CHOICES = ("public", "friends", "private")

# Store
RARITY_CHOICES = ("common", "rare", "epic", "legendary")
CURRENCY_CHOICES = ("coins", "points", "gems", "premium", "usd")
DEFAULT_CURRENCY = "coins"

GROUP_CATEGORIES = (
    "Movies",
    "TV Shows",
    "Anime",
    "Gaming",
    "Music",
    "Sports",
    "Documentary",
    "Comedy",
    "Horror",
    "Action",
    "Drama",
    "Sci-Fi",
    "Education",
    "Technology",
)
STORE_CATEGORIES = ("themes", "emotes", "avatars", "badges", "features", "bundles")

# Search
RECENT_SEARCHES_LIMIT = 10
DISMISSED_SUGGESTIONS_LIMIT = 50
SHORT_VIDEO_SECONDS = 240
LONG_VIDEO_SECONDS = 1200

# Backend endpoints
GROUPS_DISCOVER_PATH = "/social/groups/discover/"
GROUPS_MINE_PATH = "/social/groups/my-groups/"
GROUPS_PATH = "/social/groups/"
GROUP_DETAIL_PATH = "/social/groups/{group_id}/"
GROUP_MEMBERS_PATH = "/social/groups/{group_id}/members/"
GROUP_JOIN_PATH = "/social/groups/{group_id}/join/"
GROUP_LEAVE_PATH = "/social/groups/{group_id}/leave/"
STORE_ITEMS_PATH = "/store/items/"
STORE_ITEM_DETAIL_PATH = "/store/items/{item_id}/"
STORE_INVENTORY_PATH = "/store/inventory/"
STORE_PURCHASE_PATH = "/store/purchase/"
SEARCH_PATH = "/search/"
FRIENDS_PATH = "/users/friends/"
FRIEND_SUGGESTIONS_PATH = "/users/friends/suggestions/"
FRIEND_REQUEST_PATH = "/users/friends/request/"
USER_DETAIL_PATH = "/users/{user_id}/"
AUTH_LOGIN_PATH = "/auth/login/"
AUTH_REFRESH_PATH = "/auth/refresh/"
AUTH_LOGOUT_PATH = "/auth/logout/"

# Session keys
SESSION_ACCESS_TOKEN = "access_token"  # nosec B105
SESSION_REFRESH_TOKEN = "refresh_token"  # nosec B105
SESSION_USER_ID = "user_id"
SESSION_USERNAME = "username"
SESSION_CART = "cart"
SESSION_RECENT_SEARCHES = "recent_searches"
SESSION_DISMISSED_SUGGESTIONS = "dismissed_suggestions"

# Generic user-facing messages
GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."
