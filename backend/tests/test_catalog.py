"""
Catalog tests: product listing and filters, admin product writes, categories.
"""

import pytest

from storefront.models import CartItem, Product, Review


class TestProductListing:

    def test_newest_first(self, client, db_session, make_product):
        make_product("Old")
        make_product("New")
        resp = client.get("/api/products")
        assert resp.status_code == 200
        assert [p["name"] for p in resp.json["items"]] == ["New", "Old"]
        assert resp.json["count"] == 2
        assert "pagination" not in resp.json

    def test_search_matches_name_and_description(self, client, db_session, make_product):
        make_product("Blue Mug")
        make_product("Lamp")
        resp = client.get("/api/products?search=MUG")
        assert [p["name"] for p in resp.json["items"]] == ["Blue Mug"]

        resp = client.get("/api/products?search=lamp desc")
        assert [p["name"] for p in resp.json["items"]] == ["Lamp"]

    def test_price_range_inclusive(self, client, db_session, make_product):
        make_product("Cheap", price_cents=500)
        make_product("Mid", price_cents=1000)
        make_product("Dear", price_cents=5000)
        resp = client.get("/api/products?min_price=5&max_price=10.00")
        assert {p["name"] for p in resp.json["items"]} == {"Cheap", "Mid"}

    def test_bad_price_filter(self, client, db_session):
        assert client.get("/api/products?min_price=cheap").status_code == 400

    def test_category_filter(self, client, db_session, category, make_product):
        make_product("In", category=category)
        make_product("Out")
        resp = client.get(f"/api/products?category_id={category.id}")
        assert [p["name"] for p in resp.json["items"]] == ["In"]
        assert resp.json["items"][0]["category"]["name"] == "Gadgets"

    def test_pagination(self, client, db_session, make_product):
        for n in range(5):
            make_product(f"P{n}")
        resp = client.get("/api/products?page=2&per_page=2")
        assert [p["name"] for p in resp.json["items"]] == ["P2", "P1"]
        pagination = resp.json["pagination"]
        assert pagination["total"] == 5
        assert pagination["total_pages"] == 3
        assert pagination["has_next"] is True
        assert pagination["has_prev"] is True

    def test_detail_includes_rating(self, client, db_session, customer, other_customer, make_product):
        product = make_product("Rated")
        db_session.add_all([
            Review(user_id=customer.id, product_id=product.id, rating=5),
            Review(user_id=other_customer.id, product_id=product.id, rating=4),
        ])
        db_session.commit()

        resp = client.get(f"/api/products/{product.id}")
        assert resp.status_code == 200
        assert resp.json["product"]["average_rating"] == 4.5
        assert resp.json["product"]["review_count"] == 2

    def test_detail_unknown(self, client, db_session):
        assert client.get("/api/products/404").status_code == 404


class TestProductAdmin:

    def test_create_with_decimal_price(self, client, db_session, admin_headers, category):
        resp = client.post(
            "/api/products",
            json={"name": "Kettle", "price": "19.99", "stock": 4, "categoryId": category.id},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        product = resp.json["product"]
        assert product["price_cents"] == 1999
        assert product["price"] == "19.99"
        assert product["stock"] == 4
        assert product["category_id"] == category.id

    @pytest.mark.parametrize(
        "body",
        [
            {"price": "1.00"},
            {"name": "No price"},
            {"name": "Neg", "price": "-1"},
            {"name": "Bad", "price": "abc"},
            {"name": "Neg stock", "price": "1", "stock": -2},
            {"name": "Both", "price": "1", "price_cents": 100},
            {"name": "Extra", "price": "1", "rating": 5},
        ],
    )
    def test_create_rejects(self, client, db_session, admin_headers, body):
        resp = client.post("/api/products", json=body, headers=admin_headers)
        assert resp.status_code == 400
        assert db_session.query(Product).count() == 0

    def test_create_unknown_category(self, client, db_session, admin_headers):
        resp = client.post("/api/products", json={"name": "X", "price": "1", "category_id": 77}, headers=admin_headers)
        assert resp.status_code == 404

    def test_partial_update(self, client, db_session, admin_headers, make_product):
        product = make_product("Widget", price_cents=1000, stock=3)
        resp = client.put(f"/api/products/{product.id}", json={"stock": 30}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["product"]["stock"] == 30
        assert resp.json["product"]["price_cents"] == 1000

    def test_update_unknown(self, client, db_session, admin_headers):
        assert client.put("/api/products/404", json={"stock": 1}, headers=admin_headers).status_code == 404

    def test_delete_removes_cart_lines_and_reviews(self, client, db_session, customer, customer_headers, admin_headers, make_product):
        product = make_product("Doomed")
        client.post("/api/cart/add", json={"productId": product.id}, headers=customer_headers)
        client.post(f"/api/reviews/{product.id}", json={"rating": 3}, headers=customer_headers)
        product_id = product.id

        resp = client.delete(f"/api/products/{product_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert db_session.get(Product, product_id) is None
        assert db_session.query(CartItem).count() == 0
        assert db_session.query(Review).count() == 0


class TestCategories:

    def test_list_sorted_by_name(self, client, db_session, admin_headers):
        for name in ("Toys", "Books"):
            client.post("/api/categories", json={"name": name}, headers=admin_headers)
        resp = client.get("/api/categories")
        assert [c["name"] for c in resp.json["categories"]] == ["Books", "Toys"]

    def test_duplicate_name_case_insensitive(self, client, db_session, admin_headers, category):
        resp = client.post("/api/categories", json={"name": "gadgets"}, headers=admin_headers)
        assert resp.status_code == 409

    def test_blank_name(self, client, db_session, admin_headers):
        assert client.post("/api/categories", json={"name": "  "}, headers=admin_headers).status_code == 400

    def test_rename(self, client, db_session, admin_headers, category):
        resp = client.put(f"/api/categories/{category.id}", json={"name": "Devices"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["category"]["name"] == "Devices"

    def test_delete_keeps_products(self, client, db_session, admin_headers, category, make_product):
        product = make_product("Orphan", category=category)
        resp = client.delete(f"/api/categories/{category.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert db_session.get(Product, product.id).category_id is None
