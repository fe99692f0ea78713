"""Business logic for the store: catalogue, inventory, purchases and cart."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional

from flask import current_app

from watchparty.core.collection import dedupe_by_id, extract_collection
from watchparty.core.constants import (
    STORE_INVENTORY_PATH,
    STORE_ITEM_DETAIL_PATH,
    STORE_ITEMS_PATH,
    STORE_PURCHASE_PATH,
)
from watchparty.core.mutation import MutationResult, MutationState
from watchparty.core.normalize import (
    as_dict,
    as_int,
    first_present,
    normalize_store_item,
    resolve_id,
)
from watchparty.core.query import (
    Bucket,
    QueryEngine,
    alphabetical,
    by_date,
    flag_first,
    numeric,
)
from watchparty.errors import AppError, NotFoundError

if TYPE_CHECKING:
    from watchparty.core.client import ApiClient
    from watchparty.core.mutation import MutationCoordinator
    from watchparty.core.types import StoreItem

MAX_CART_QUANTITY = 99

STORE_BUCKETS = {
    "free": Bucket(upper=0),
    "low": Bucket(0, 100),
    "medium": Bucket(100, 500),
    "high": Bucket(lower=500),
}
PRICE_LABELS = [
    ("all", "Any price"),
    ("free", "Free"),
    ("low", "Up to 100"),
    ("medium", "100 to 500"),
    ("high", "Over 500"),
]

STORE_SORTS = {
    "featured": (flag_first("featured"), flag_first("is_new")),
    "price_low": (numeric("price"),),
    "price_high": (numeric("price", descending=True),),
    "rating": (numeric("rating", descending=True),),
    "popularity": (numeric("popularity_rank"),),
    "newest": (by_date("release_date"),),
    "name": (alphabetical("name"),),
}
SORT_LABELS = [
    ("featured", "Featured"),
    ("price_low", "Price: low to high"),
    ("price_high", "Price: high to low"),
    ("rating", "Top rated"),
    ("popularity", "Most popular"),
    ("newest", "Newest"),
    ("name", "Name"),
]

STORE_QUERY = QueryEngine(
    search_fields=("name", "description", "tags"),
    category_field="category",
    sorts=STORE_SORTS,
    default_sort="featured",
    bucket_field="price",
    buckets=STORE_BUCKETS,
    filter_fields={"rarity": "rarity", "owned": "owned"},
)


def owned_item_ids(inventory: Any) -> set[str]:
    """Collect the ids of the items in an inventory payload.

    Entries may be bare ids, ``{"item_id": ...}`` rows or rows wrapping the
    full item under ``"item"``.
    """
    ids = set()
    for entry in extract_collection(inventory):
        if isinstance(entry, dict):
            nested = as_dict(entry.get("item"))
            if nested:
                ids.add(resolve_id(nested, "item", ("id", "item_id"))[0])
                continue
            raw = first_present(entry, ("item_id", "id"))
        else:
            raw = entry
        if raw is not None and str(raw).strip():
            ids.add(str(raw).strip())
    return ids


def purchase_payload(lines: Iterable[tuple[Any, int]]) -> dict[str, Any]:
    """Build the purchase request body from ``(backend_id, quantity)`` pairs."""
    return {
        "items": [
            {"item_id": backend_id, "quantity": quantity}
            for backend_id, quantity in lines
        ]
    }


class StoreService:
    """Reads and purchases against the store endpoints."""

    @staticmethod
    def get_inventory_ids(client: ApiClient) -> set[str]:
        """Return the ids of the items the user owns, empty on failure."""
        try:
            return owned_item_ids(client.get(STORE_INVENTORY_PATH))
        except AppError as e:
            current_app.logger.warning(f"Could not load inventory: {e.message}")
            return set()

    @staticmethod
    def get_inventory(client: ApiClient) -> list[StoreItem]:
        """Fetch the items the user owns.

        Inventory rows that embed the item are used as they are. Rows that only
        name an id are resolved through the catalogue, and ids the catalogue does
        not know are skipped.
        """
        body = client.get(STORE_INVENTORY_PATH)
        items = []
        for entry in extract_collection(body):
            nested = as_dict(entry.get("item")) if isinstance(entry, dict) else {}
            if nested:
                items.append(normalize_store_item(nested))
        ids = owned_item_ids(body) - {item["id"] for item in items}
        if ids:
            catalogue = extract_collection(client.get(STORE_ITEMS_PATH))
            for raw in catalogue:
                item = normalize_store_item(raw)
                if item["id"] in ids:
                    items.append(item)
        for item in items:
            item["owned"] = True
        return dedupe_by_id(items)

    @staticmethod
    def get_catalogue(client: ApiClient) -> list[StoreItem]:
        """Fetch the catalogue and mark the items the user already owns."""
        body = client.get(STORE_ITEMS_PATH)
        items = dedupe_by_id(normalize_store_item(raw) for raw in extract_collection(body))
        owned = StoreService.get_inventory_ids(client)
        for item in items:
            if item["id"] in owned:
                item["owned"] = True
        return items

    @staticmethod
    def get_item(client: ApiClient, item_id: str) -> StoreItem:
        """Fetch one item, raising NotFoundError if the backend has none."""
        body = client.get(STORE_ITEM_DETAIL_PATH.format(item_id=item_id))
        entity = as_dict(body)
        entity = as_dict(entity.get("item")) or entity
        if not entity:
            raise NotFoundError("Item not found.")
        return normalize_store_item(entity)

    @staticmethod
    def purchase_item(
        client: ApiClient,
        coordinator: MutationCoordinator,
        key: str,
        item: StoreItem,
        records: list[StoreItem] | tuple = (),
    ) -> MutationResult:
        """Buy one unit of ``item`` and merge its refreshed copy."""
        backend_id = item["backend_id"]
        if backend_id == "":
            return MutationResult(
                MutationState.IDLE,
                list(records),
                error="This item is not available yet.",
            )
        if item["owned"]:
            return MutationResult(
                MutationState.IDLE, list(records), error="You already own this item."
            )

        receipt: dict[str, Any] = {}

        def request():
            body = client.post(
                STORE_PURCHASE_PATH, json=purchase_payload([(backend_id, 1)])
            )
            receipt.update(as_dict(body))
            # Only an embedded item counts as the entity; the rest is a receipt.
            return {"item": receipt["item"]} if as_dict(receipt.get("item")) else None

        def normalize(raw):
            record = normalize_store_item(raw)
            owned = owned_item_ids(receipt.get("updated_inventory"))
            if not owned:
                owned = StoreService.get_inventory_ids(client)
            # The inventory decides ownership; without one the item copy does.
            if owned:
                record["owned"] = record["id"] in owned
            return record

        return coordinator.run(
            key,
            request=request,
            normalize=normalize,
            records=records,
            fetch_detail=lambda: client.get(
                STORE_ITEM_DETAIL_PATH.format(item_id=backend_id)
            ),
            entity_keys=("item",),
        )

    @staticmethod
    def checkout(
        client: ApiClient,
        coordinator: MutationCoordinator,
        key: str,
        lines: list[dict[str, Any]],
    ) -> MutationResult:
        """Buy every line of the cart in one request."""
        purchasable = [line for line in lines if line["item"]["backend_id"] != ""]
        if not purchasable:
            return MutationResult(MutationState.IDLE, error="Your cart is empty.")
        payload = purchase_payload(
            (line["item"]["backend_id"], line["quantity"]) for line in purchasable
        )

        def request():
            client.post(STORE_PURCHASE_PATH, json=payload)
            # The receipt carries no single entity; the caller reloads the catalogue.
            return None

        return coordinator.run(key, request=request, normalize=normalize_store_item)


class Cart:
    """A cart of item ids and quantities kept in a plain mapping.

    The mapping is typically the Flask session entry, so it must stay
    JSON-serializable: ``{item_id: quantity}``.
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        """Initialize from previously stored cart data."""
        self.quantities: dict[str, int] = {}
        for item_id, quantity in (data or {}).items():
            quantity = as_int(quantity)
            if quantity > 0:
                self.quantities[str(item_id)] = min(quantity, MAX_CART_QUANTITY)

    def __len__(self):
        return sum(self.quantities.values())

    def add(self, item_id: str, quantity: int = 1) -> int:
        """Add ``quantity`` units and return the new quantity."""
        current = self.quantities.get(item_id, 0)
        self.quantities[item_id] = max(min(current + quantity, MAX_CART_QUANTITY), 1)
        return self.quantities[item_id]

    def remove(self, item_id: str) -> bool:
        """Drop an item entirely."""
        return self.quantities.pop(item_id, None) is not None

    def clear(self) -> None:
        self.quantities.clear()

    def to_dict(self) -> dict[str, int]:
        return dict(self.quantities)

    def lines(self, catalogue: Iterable[StoreItem]) -> list[dict[str, Any]]:
        """Resolve the cart against the catalogue, skipping unknown ids."""
        by_id = {item["id"]: item for item in catalogue}
        out = []
        for item_id, quantity in self.quantities.items():
            item = by_id.get(item_id)
            if item is None:
                continue
            out.append(
                {"item": item, "quantity": quantity, "subtotal": item["price"] * quantity}
            )
        return out

    @staticmethod
    def totals(lines: Iterable[Mapping[str, Any]]) -> dict[str, float]:
        """Sum the line subtotals per currency."""
        totals: dict[str, float] = defaultdict(float)
        for line in lines:
            totals[line["item"]["currency"]] += line["subtotal"]
        return dict(totals)
