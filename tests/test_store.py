"""Tests for the store blueprint and its services."""

import unittest
from unittest.mock import MagicMock

from watchparty.core.constants import (
    SESSION_CART,
    STORE_INVENTORY_PATH,
    STORE_ITEM_DETAIL_PATH,
    STORE_ITEMS_PATH,
    STORE_PURCHASE_PATH,
)
from watchparty.core.mutation import MutationCoordinator
from watchparty.core.normalize import normalize_store_item
from watchparty.errors import NetworkError, ValidationError
from watchparty.store.services import Cart, StoreService, owned_item_ids

from tests.helpers import RouteTestCase

THEME = {"id": 1, "name": "Neon Theme", "price": 120, "category": "themes", "featured": True}
EMOTE = {"id": 2, "name": "Wave Emote", "price": 0, "category": "emotes"}
BADGE = {"id": 3, "name": "Gold Badge", "price": 500, "category": "badges", "rarity": "epic"}


class OwnedItemIdsTestCase(unittest.TestCase):
    """Tests for reading inventory payloads."""

    def test_shapes(self):
        inventory = {
            "results": [
                {"item": {"id": 1}},
                {"item_id": 2},
                3,
                {"unrelated": True},
            ]
        }
        self.assertEqual(owned_item_ids(inventory), {"1", "2", "3"})

    def test_empty(self):
        self.assertEqual(owned_item_ids(None), set())


class CartTestCase(unittest.TestCase):
    """Tests for the session cart."""

    def test_add_remove_and_caps(self):
        cart = Cart({"1": 2, "2": "0", "3": "x"})
        self.assertEqual(cart.to_dict(), {"1": 2})
        self.assertEqual(cart.add("1", 200), 99)
        self.assertEqual(cart.add("2"), 1)
        self.assertEqual(len(cart), 100)
        self.assertTrue(cart.remove("2"))
        self.assertFalse(cart.remove("2"))

    def test_lines_and_totals(self):
        catalogue = [
            normalize_store_item(THEME),
            normalize_store_item({**BADGE, "price": {"amount": 5, "currency": "gems"}}),
        ]
        cart = Cart({"1": 2, "3": 1, "99": 4})
        lines = cart.lines(catalogue)
        self.assertEqual([line["item"]["id"] for line in lines], ["1", "3"])
        self.assertEqual(Cart.totals(lines), {"coins": 240.0, "gems": 5.0})


class InventoryServiceTestCase(unittest.TestCase):
    """Tests for StoreService.get_inventory."""

    def setUp(self):
        self.client = MagicMock()
        self.bodies = {STORE_ITEMS_PATH: {"results": [THEME, EMOTE, BADGE]}}
        self.client.get.side_effect = lambda path, params=None: self.bodies[path]

    def test_embedded_and_bare_entries(self):
        self.bodies[STORE_INVENTORY_PATH] = [
            {"item": {**THEME, "name": "Neon Theme (owned copy)"}},
            {"item_id": 3},
            {"item_id": 42},
            1,
        ]
        items = StoreService.get_inventory(self.client)
        self.assertEqual([item["id"] for item in items], ["1", "3"])
        self.assertEqual(items[0]["name"], "Neon Theme (owned copy)")
        self.assertTrue(all(item["owned"] for item in items))

    def test_embedded_entries_skip_catalogue(self):
        self.bodies[STORE_INVENTORY_PATH] = {"results": [{"item": EMOTE}]}
        items = StoreService.get_inventory(self.client)
        self.assertEqual([item["id"] for item in items], ["2"])
        self.client.get.assert_called_once_with(STORE_INVENTORY_PATH)

    def test_empty_inventory(self):
        self.bodies[STORE_INVENTORY_PATH] = []
        self.assertEqual(StoreService.get_inventory(self.client), [])


class PurchaseServiceTestCase(unittest.TestCase):
    """Tests for StoreService purchases."""

    def setUp(self):
        self.client = MagicMock()
        self.coordinator = MutationCoordinator()
        self.item = normalize_store_item(THEME)

    def test_purchase_refetches_item(self):
        self.client.post.return_value = {"success": True, "updated_inventory": [{"item_id": 1}]}
        self.client.get.return_value = {"id": 1, "name": "Neon Theme", "price": 120}
        result = StoreService.purchase_item(
            self.client, self.coordinator, "7:item:1", self.item, [self.item]
        )
        self.assertTrue(result.ok)
        self.assertTrue(result.records[0]["owned"])
        self.client.post.assert_called_once_with(
            STORE_PURCHASE_PATH, json={"items": [{"item_id": 1, "quantity": 1}]}
        )
        self.client.get.assert_called_once_with(STORE_ITEM_DETAIL_PATH.format(item_id=1))

    def test_acknowledged_purchase_reads_ownership_from_inventory(self):
        bodies = {
            STORE_ITEM_DETAIL_PATH.format(item_id=1): {**THEME, "owned": False},
            STORE_INVENTORY_PATH: [{"item_id": 2}],
        }
        self.client.post.return_value = {"success": True}
        self.client.get.side_effect = lambda path, params=None: bodies[path]
        result = StoreService.purchase_item(
            self.client, self.coordinator, "7:item:1", self.item, [self.item]
        )
        self.assertTrue(result.ok)
        self.assertFalse(result.records[0]["owned"])

        bodies[STORE_INVENTORY_PATH] = [{"item_id": 1}, {"item_id": 2}]
        result = StoreService.purchase_item(
            self.client, self.coordinator, "7:item:1", self.item, [self.item]
        )
        self.assertTrue(result.records[0]["owned"])

    def test_purchase_failure(self):
        self.client.post.side_effect = ValidationError("Insufficient balance.")
        result = StoreService.purchase_item(
            self.client, self.coordinator, "7:item:1", self.item, [self.item]
        )
        self.assertFalse(result.ok)
        self.assertEqual(result.error, "Insufficient balance.")
        self.assertFalse(result.records[0]["owned"])

    def test_owned_item_is_not_bought_again(self):
        owned = {**self.item, "owned": True}
        result = StoreService.purchase_item(self.client, self.coordinator, "7:item:1", owned)
        self.assertEqual(result.error, "You already own this item.")
        self.client.post.assert_not_called()

    def test_checkout_posts_every_line(self):
        lines = Cart({"1": 2, "3": 1}).lines(
            [normalize_store_item(THEME), normalize_store_item(BADGE)]
        )
        self.client.post.return_value = {"success": True}
        result = StoreService.checkout(self.client, self.coordinator, "7:cart", lines)
        self.assertTrue(result.ok)
        self.client.post.assert_called_once_with(
            STORE_PURCHASE_PATH,
            json={"items": [{"item_id": 1, "quantity": 2}, {"item_id": 3, "quantity": 1}]},
        )

    def test_checkout_empty_cart(self):
        result = StoreService.checkout(self.client, self.coordinator, "7:cart", [])
        self.assertEqual(result.error, "Your cart is empty.")
        self.client.post.assert_not_called()


class StoreRoutesTestCase(RouteTestCase):
    """Test case for the store blueprint."""

    client_patch_targets = ("watchparty.store.routes.get_api_client",)

    def setUp(self):
        """Set up a signed-in user and a small catalogue."""
        super().setUp()
        self.login()
        self.api.gets[STORE_ITEMS_PATH] = {"results": [THEME, EMOTE, BADGE]}
        self.api.gets[STORE_INVENTORY_PATH] = [{"item_id": 2}]
        for item in (THEME, EMOTE, BADGE):
            self.api.gets[STORE_ITEM_DETAIL_PATH.format(item_id=item["id"])] = item

    def test_view_store(self):
        response = self.client.get("/store/")
        self.assertEqual(response.status_code, 200)
        for name in (b"Neon Theme", b"Wave Emote", b"Gold Badge"):
            self.assertIn(name, response.data)

    def test_price_bucket_and_search(self):
        response = self.client.get("/store/?price=free")
        self.assertIn(b"Wave Emote", response.data)
        self.assertNotIn(b"Gold Badge", response.data)

        response = self.client.get("/store/?search=wave")
        self.assertIn(b"Wave Emote", response.data)
        self.assertNotIn(b"Gold Badge", response.data)

    def test_owned_filter_uses_inventory(self):
        response = self.client.get("/store/?owned=true")
        self.assertIn(b"Wave Emote", response.data)
        self.assertNotIn(b"Gold Badge", response.data)

    def test_unrecognised_owned_value_shows_everything(self):
        response = self.client.get("/store/?owned=maybe")
        for name in (b"Neon Theme", b"Wave Emote", b"Gold Badge"):
            self.assertIn(name, response.data)

    def test_view_store_degrades_on_error(self):
        self.api.gets[STORE_ITEMS_PATH] = NetworkError()
        response = self.client.get("/store/")
        self.assertEqual(response.status_code, 200)
        self.assertIn(NetworkError().message.encode(), response.data)

    def test_view_inventory(self):
        response = self.client.get("/store/inventory")
        self.assertEqual(response.status_code, 200)
        self.assertIn(b"Wave Emote", response.data)
        self.assertNotIn(b"Gold Badge", response.data)
        self.assertIn(b"1 of 1 items", response.data)

    def test_inventory_search(self):
        self.api.gets[STORE_INVENTORY_PATH] = [{"item_id": 2}, {"item_id": 3}]
        response = self.client.get("/store/inventory?search=gold")
        self.assertIn(b"Gold Badge", response.data)
        self.assertNotIn(b"Wave Emote", response.data)

    def test_view_inventory_degrades_on_error(self):
        self.api.gets[STORE_INVENTORY_PATH] = NetworkError()
        response = self.client.get("/store/inventory")
        self.assertEqual(response.status_code, 200)
        self.assertIn(NetworkError().message.encode(), response.data)
        self.assertIn(b"You do not own any items yet.", response.data)

    def test_view_item(self):
        response = self.client.get("/store/items/3")
        self.assertEqual(response.status_code, 200)
        self.assertIn(b"Gold Badge", response.data)
        self.assertIn(b"Buy now", response.data)

    def test_purchase_item(self):
        self.api.posts[STORE_PURCHASE_PATH] = {"success": True, "updated_inventory": [{"item_id": 3}]}
        response = self.client.post("/store/items/3/purchase", follow_redirects=True)
        self.assertIn(b"You bought Gold Badge.", response.data)
        self.assertEqual(
            self.api.posted(STORE_PURCHASE_PATH), [{"items": [{"item_id": 3, "quantity": 1}]}]
        )

    def test_purchase_failure(self):
        self.api.posts[STORE_PURCHASE_PATH] = ValidationError("Insufficient balance.")
        response = self.client.post("/store/items/3/purchase", follow_redirects=True)
        self.assertIn(b"Insufficient balance.", response.data)

    def test_cart_flow(self):
        response = self.client.post("/store/cart/add/1", data={"quantity": 2})
        self.assertEqual(response.status_code, 302)
        self.client.post("/store/cart/add/3", data={"quantity": 1})
        with self.client.session_transaction() as sess:
            self.assertEqual(sess[SESSION_CART], {"1": 2, "3": 1})

        response = self.client.get("/store/cart")
        self.assertIn(b"Neon Theme", response.data)
        self.assertIn(b"740.0 coins", response.data)

        self.api.posts[STORE_PURCHASE_PATH] = {"success": True}
        response = self.client.post("/store/cart/checkout", follow_redirects=True)
        self.assertIn(b"Purchase complete.", response.data)
        self.assertEqual(
            self.api.posted(STORE_PURCHASE_PATH),
            [{"items": [{"item_id": 1, "quantity": 2}, {"item_id": 3, "quantity": 1}]}],
        )
        with self.client.session_transaction() as sess:
            self.assertEqual(sess[SESSION_CART], {})

    def test_owned_item_not_added_to_cart(self):
        self.api.gets[STORE_ITEM_DETAIL_PATH.format(item_id=2)] = {**EMOTE, "owned": True}
        self.client.post("/store/cart/add/2", data={"quantity": 1})
        with self.client.session_transaction() as sess:
            self.assertNotIn(SESSION_CART, sess)

    def test_remove_from_cart(self):
        with self.client.session_transaction() as sess:
            sess[SESSION_CART] = {"1": 1, "3": 2}
        self.client.post("/store/cart/remove/1")
        with self.client.session_transaction() as sess:
            self.assertEqual(sess[SESSION_CART], {"3": 2})

    def test_failed_checkout_keeps_cart(self):
        with self.client.session_transaction() as sess:
            sess[SESSION_CART] = {"1": 1}
        self.api.posts[STORE_PURCHASE_PATH] = ValidationError("Insufficient balance.")
        response = self.client.post("/store/cart/checkout", follow_redirects=True)
        self.assertIn(b"Insufficient balance.", response.data)
        with self.client.session_transaction() as sess:
            self.assertEqual(sess[SESSION_CART], {"1": 1})
