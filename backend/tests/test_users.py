"""
User account tests: profile, password change, username lookup and deletion.
"""

import pytest

from storefront.models import Cart, Order, Review, SessionToken, User

from conftest import PASSWORD


class TestProfile:

    def test_update_profile(self, client, db_session, customer_headers):
        resp = client.put(
            "/api/users/me",
            json={"name": "Renamed", "profile_picture": "https://img.test/me.png"},
            headers=customer_headers,
        )
        assert resp.status_code == 200
        assert resp.json["user"]["name"] == "Renamed"
        assert resp.json["user"]["profile_picture"] == "https://img.test/me.png"

    def test_role_is_not_a_profile_field(self, client, db_session, customer, customer_headers):
        resp = client.put("/api/users/me", json={"role": "SUPERADMIN"}, headers=customer_headers)
        assert resp.status_code == 400
        assert db_session.get(User, customer.id).role == "USER"

    def test_taken_username(self, client, db_session, customer_headers, other_customer):
        resp = client.put("/api/users/me", json={"username": other_customer.username}, headers=customer_headers)
        assert resp.status_code == 409

    def test_check_username(self, client, db_session, customer):
        assert client.get("/api/users/check-username?username=CUSTOMER").json["available"] is False
        assert client.get("/api/users/check-username?username=fresh_name").json["available"] is True
        assert client.get("/api/users/check-username").status_code == 400

    def test_admin_lists_users(self, client, db_session, customer, admin_headers):
        resp = client.get("/api/users", headers=admin_headers)
        assert resp.status_code == 200
        assert {u["username"] for u in resp.json["users"]} == {"customer", "admin"}


class TestChangePassword:

    def test_change_password(self, client, db_session, customer, customer_headers):
        resp = client.put(
            "/api/users/me/password",
            json={"currentPassword": PASSWORD, "newPassword": "N3w!password"},
            headers=customer_headers,
        )
        assert resp.status_code == 200

        login = client.post("/api/auth/login", json={"username": customer.username, "password": "N3w!password"})
        assert login.status_code == 200

    def test_wrong_current_password(self, client, db_session, customer_headers):
        resp = client.put(
            "/api/users/me/password",
            json={"current_password": "Wrong123!", "new_password": "N3w!password"},
            headers=customer_headers,
        )
        assert resp.status_code == 400
        assert resp.json["error"] == "Current password is incorrect"

    def test_weak_new_password(self, client, db_session, customer_headers):
        resp = client.put(
            "/api/users/me/password",
            json={"current_password": PASSWORD, "new_password": "weak"},
            headers=customer_headers,
        )
        assert resp.status_code == 400


class TestDeleteUser:

    def test_self_delete_cascades(self, client, db_session, customer, customer_headers, make_product):
        product = make_product("Widget", stock=5)
        client.post("/api/cart/add", json={"productId": product.id}, headers=customer_headers)
        client.post(
            "/api/orders",
            json={"address": "a", "city": "b", "zip_code": "c", "country": "d"},
            headers=customer_headers,
        )
        client.post(f"/api/reviews/{product.id}", json={"rating": 5}, headers=customer_headers)
        customer_id = customer.id

        resp = client.delete(f"/api/users/{customer_id}", headers=customer_headers)
        assert resp.status_code == 200
        assert resp.json == {"success": True, "session_terminated": True}

        assert db_session.get(User, customer_id) is None
        assert db_session.query(Cart).filter_by(user_id=customer_id).count() == 0
        assert db_session.query(Order).filter_by(user_id=customer_id).count() == 0
        assert db_session.query(Review).filter_by(user_id=customer_id).count() == 0
        assert db_session.query(SessionToken).filter_by(user_id=customer_id).count() == 0

        assert client.get("/api/users/me", headers=customer_headers).status_code == 401

    def test_admin_deletes_user(self, client, db_session, customer, admin_headers):
        resp = client.delete(f"/api/users/{customer.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["session_terminated"] is False

    def test_user_cannot_delete_other(self, client, db_session, customer_headers, other_customer):
        resp = client.delete(f"/api/users/{other_customer.id}", headers=customer_headers)
        assert resp.status_code == 403
        assert db_session.get(User, other_customer.id) is not None

    def test_admin_cannot_delete_superadmin(self, client, db_session, admin_headers, superadmin):
        resp = client.delete(f"/api/users/{superadmin.id}", headers=admin_headers)
        assert resp.status_code == 403

    def test_delete_unknown(self, client, db_session, admin_headers):
        assert client.delete("/api/users/9999", headers=admin_headers).status_code == 404
