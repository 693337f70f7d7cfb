"""
Cart tests.

Verifies:
- A cart exists for every authenticated user, empty on first read
- Adding the same product twice merges into one line
- Quantity updates, removal and clear
- Item operations never reach another user's cart
"""

import pytest

from storefront.models import Cart, CartItem
from storefront.validation import MAX_STOCK


class TestCartBasics:

    def test_first_read_returns_empty_cart(self, client, db_session, customer, customer_headers):
        resp = client.get("/api/cart", headers=customer_headers)
        assert resp.status_code == 200
        cart = resp.json["cart"]
        assert cart["user_id"] == customer.id
        assert cart["items"] == []
        assert cart["total"] == "0.00"
        assert db_session.query(Cart).filter_by(user_id=customer.id).count() == 1

    def test_requires_auth(self, client, db_session):
        assert client.get("/api/cart").status_code == 401
        assert client.post("/api/cart/add", json={"productId": 1}).status_code == 401

    def test_add_merges_lines(self, client, db_session, customer_headers, make_product):
        product = make_product("Widget", price_cents=250)

        client.post("/api/cart/add", json={"productId": product.id, "quantity": 2}, headers=customer_headers)
        resp = client.post("/api/cart/add", json={"product_id": product.id, "quantity": 3}, headers=customer_headers)

        assert resp.status_code == 200
        cart = resp.json["cart"]
        assert len(cart["items"]) == 1
        assert cart["items"][0]["quantity"] == 5
        assert cart["items"][0]["subtotal"] == "12.50"
        assert cart["item_count"] == 5
        assert cart["total_cents"] == 1250

    def test_quantity_defaults_to_one(self, client, db_session, customer_headers, make_product):
        product = make_product("Widget")
        resp = client.post("/api/cart/add", json={"productId": product.id}, headers=customer_headers)
        assert resp.json["cart"]["items"][0]["quantity"] == 1

    def test_add_more_than_stock_is_allowed(self, client, db_session, customer_headers, make_product):
        product = make_product("Scarce", stock=1)
        resp = client.post("/api/cart/add", json={"productId": product.id, "quantity": 5}, headers=customer_headers)
        assert resp.status_code == 200
        assert resp.json["cart"]["items"][0]["quantity"] == 5

    def test_cart_reflects_current_price(self, client, db_session, customer_headers, make_product):
        product = make_product("Widget", price_cents=1000)
        client.post("/api/cart/add", json={"productId": product.id}, headers=customer_headers)

        product.price_cents = 1500
        db_session.commit()

        cart = client.get("/api/cart", headers=customer_headers).json["cart"]
        assert cart["total_cents"] == 1500


class TestCartValidation:

    def test_missing_product_id(self, client, db_session, customer_headers):
        resp = client.post("/api/cart/add", json={"quantity": 1}, headers=customer_headers)
        assert resp.status_code == 400

    def test_unknown_product(self, client, db_session, customer_headers):
        resp = client.post("/api/cart/add", json={"productId": 9999}, headers=customer_headers)
        assert resp.status_code == 404

    @pytest.mark.parametrize("quantity", [0, -1, "abc", 1.5, MAX_STOCK + 1, 10**20, 2**62])
    def test_bad_quantity(self, client, db_session, customer_headers, make_product, quantity):
        product = make_product("Widget")
        resp = client.post(
            "/api/cart/add",
            json={"productId": product.id, "quantity": quantity},
            headers=customer_headers,
        )
        assert resp.status_code == 400
        assert db_session.query(CartItem).count() == 0

    def test_merged_line_cannot_exceed_cap(self, client, db_session, customer_headers, make_product):
        product = make_product("Widget")
        first = client.post(
            "/api/cart/add",
            json={"productId": product.id, "quantity": MAX_STOCK},
            headers=customer_headers,
        )
        assert first.status_code == 200

        resp = client.post("/api/cart/add", json={"productId": product.id, "quantity": 1}, headers=customer_headers)
        assert resp.status_code == 400

        item = db_session.query(CartItem).filter_by(product_id=product.id).one()
        db_session.refresh(item)
        assert item.quantity == MAX_STOCK
        assert isinstance(item.quantity, int)

    def test_update_above_cap_rejected(self, client, db_session, customer_headers, make_product):
        product = make_product("Widget")
        item_id = client.post(
            "/api/cart/add", json={"productId": product.id, "quantity": 2}, headers=customer_headers
        ).json["cart"]["items"][0]["id"]

        resp = client.put(f"/api/cart/item/{item_id}", json={"quantity": MAX_STOCK + 1}, headers=customer_headers)
        assert resp.status_code == 400
        assert client.get("/api/cart", headers=customer_headers).json["cart"]["items"][0]["quantity"] == 2

    @pytest.mark.parametrize("product_id", [3.9, True, "1.0"])
    def test_product_id_must_be_integer(self, client, db_session, customer_headers, make_product, product_id):
        make_product("Widget")
        resp = client.post("/api/cart/add", json={"productId": product_id, "quantity": 1}, headers=customer_headers)
        assert resp.status_code == 400
        assert db_session.query(CartItem).count() == 0

    @pytest.mark.parametrize("body", [[1], ["productId", 1], "text", 7])
    def test_non_object_body(self, client, db_session, customer_headers, body):
        resp = client.post("/api/cart/add", json=body, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Invalid JSON payload"


class TestCartItems:

    def _add(self, client, headers, product_id, quantity=1):
        cart = client.post("/api/cart/add", json={"productId": product_id, "quantity": quantity}, headers=headers).json["cart"]
        return cart["items"][0]["id"]

    def test_update_quantity(self, client, db_session, customer_headers, make_product):
        item_id = self._add(client, customer_headers, make_product("Widget").id)

        resp = client.put(f"/api/cart/item/{item_id}", json={"quantity": 4}, headers=customer_headers)
        assert resp.status_code == 200
        assert resp.json["cart"]["items"][0]["quantity"] == 4

    def test_update_to_zero_removes_line(self, client, db_session, customer_headers, make_product):
        item_id = self._add(client, customer_headers, make_product("Widget").id, 2)

        resp = client.put(f"/api/cart/item/{item_id}", json={"quantity": 0}, headers=customer_headers)
        assert resp.status_code == 200
        assert resp.json["cart"]["items"] == []

    def test_remove_item(self, client, db_session, customer_headers, make_product):
        item_id = self._add(client, customer_headers, make_product("Widget").id)

        resp = client.delete(f"/api/cart/item/{item_id}", headers=customer_headers)
        assert resp.status_code == 200
        assert resp.json["cart"]["items"] == []

        # Idempotent
        resp = client.delete(f"/api/cart/item/{item_id}", headers=customer_headers)
        assert resp.status_code == 200

    def test_clear(self, client, db_session, customer_headers, make_product):
        self._add(client, customer_headers, make_product("A").id)
        self._add(client, customer_headers, make_product("B").id)

        resp = client.delete("/api/cart/clear", headers=customer_headers)
        assert resp.status_code == 200
        assert resp.json["cart"]["items"] == []
        assert db_session.query(CartItem).count() == 0

    def test_cannot_touch_foreign_item(self, client, db_session, customer_headers, other_headers, make_product):
        item_id = self._add(client, customer_headers, make_product("Widget").id, 2)

        resp = client.put(f"/api/cart/item/{item_id}", json={"quantity": 9}, headers=other_headers)
        assert resp.status_code == 404

        client.delete(f"/api/cart/item/{item_id}", headers=other_headers)

        cart = client.get("/api/cart", headers=customer_headers).json["cart"]
        assert cart["items"][0]["quantity"] == 2

    def test_update_unknown_item(self, client, db_session, customer_headers):
        resp = client.put("/api/cart/item/4242", json={"quantity": 1}, headers=customer_headers)
        assert resp.status_code == 404
