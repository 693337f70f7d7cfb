"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- USER role denied admin operations (403), and denials are audited
- ADMIN can perform privileged operations
- Only SUPERADMIN changes roles, and never their own
"""

import pytest

from storefront.models import SecurityEvent, User


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/cart"),
            ("POST", "/api/cart/add"),
            ("DELETE", "/api/cart/clear"),
            ("GET", "/api/orders"),
            ("POST", "/api/orders"),
            ("GET", "/api/orders/all"),
            ("PATCH", "/api/orders/1/status"),
            ("GET", "/api/users"),
            ("GET", "/api/users/me"),
            ("PATCH", "/api/users/1/role"),
            ("DELETE", "/api/users/1"),
            ("POST", "/api/products"),
            ("PUT", "/api/products/1"),
            ("DELETE", "/api/products/1"),
            ("POST", "/api/categories"),
            ("POST", "/api/reviews/1"),
            ("GET", "/api/admin/stats"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    @pytest.mark.parametrize("path", ["/api/products", "/api/categories", "/health"])
    def test_public_reads(self, client, db_session, path):
        assert client.get(path).status_code == 200


# =============================================================================
# USER DENIED ADMIN OPERATIONS (403)
# =============================================================================


class TestUserDeniedAdmin:

    def test_cannot_create_product(self, client, db_session, customer_headers):
        resp = client.post("/api/products", json={"name": "X", "price": "1.00"}, headers=customer_headers)
        assert resp.status_code == 403
        assert resp.json["required_role"] == "ADMIN"

    def test_cannot_list_users(self, client, db_session, customer_headers):
        assert client.get("/api/users", headers=customer_headers).status_code == 403

    def test_cannot_view_stats(self, client, db_session, customer_headers):
        assert client.get("/api/admin/stats", headers=customer_headers).status_code == 403

    def test_cannot_create_category(self, client, db_session, customer_headers):
        assert client.post("/api/categories", json={"name": "X"}, headers=customer_headers).status_code == 403

    def test_denial_is_audited(self, client, db_session, customer, customer_headers):
        client.get("/api/admin/stats", headers=customer_headers)
        event = db_session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").one()
        assert event.user_id == customer.id
        assert event.resource == "/api/admin/stats"


class TestAdminAllowed:

    def test_admin_creates_product(self, client, db_session, admin_headers):
        resp = client.post("/api/products", json={"name": "X", "price": "1.00"}, headers=admin_headers)
        assert resp.status_code == 201

    def test_superadmin_inherits_admin(self, client, db_session, superadmin_headers):
        assert client.get("/api/users", headers=superadmin_headers).status_code == 200


# =============================================================================
# ROLE CHANGES
# =============================================================================


class TestRoleChanges:

    def test_superadmin_promotes_user(self, client, db_session, customer, superadmin_headers):
        resp = client.patch(f"/api/users/{customer.id}/role", json={"role": "ADMIN"}, headers=superadmin_headers)
        assert resp.status_code == 200
        assert resp.json["user"]["role"] == "ADMIN"
        assert db_session.query(SecurityEvent).filter_by(event_type="ROLE_CHANGED").count() == 1

    def test_admin_cannot_change_roles(self, client, db_session, customer, admin_headers):
        resp = client.patch(f"/api/users/{customer.id}/role", json={"role": "ADMIN"}, headers=admin_headers)
        assert resp.status_code == 403
        assert db_session.get(User, customer.id).role == "USER"

    @pytest.mark.parametrize("role", ["USER", "ADMIN", "SUPERADMIN"])
    def test_superadmin_cannot_change_own_role(self, client, db_session, superadmin, superadmin_headers, role):
        resp = client.patch(f"/api/users/{superadmin.id}/role", json={"role": role}, headers=superadmin_headers)
        assert resp.status_code == 403
        assert db_session.get(User, superadmin.id).role == "SUPERADMIN"

        event = db_session.query(SecurityEvent).filter_by(event_type="ROLE_CHANGE_DENIED").one()
        assert event.reason == "Users cannot change their own role"

    def test_user_cannot_promote_self(self, client, db_session, customer, customer_headers):
        resp = client.patch(f"/api/users/{customer.id}/role", json={"role": "SUPERADMIN"}, headers=customer_headers)
        assert resp.status_code == 403

    def test_invalid_role(self, client, db_session, customer, superadmin_headers):
        resp = client.patch(f"/api/users/{customer.id}/role", json={"role": "GOD"}, headers=superadmin_headers)
        assert resp.status_code == 400

    def test_unknown_target(self, client, db_session, superadmin_headers):
        resp = client.patch("/api/users/9999/role", json={"role": "ADMIN"}, headers=superadmin_headers)
        assert resp.status_code == 404

    def test_new_role_applies_to_existing_session(self, client, db_session, customer, customer_headers, superadmin_headers):
        assert client.get("/api/admin/stats", headers=customer_headers).status_code == 403
        client.patch(f"/api/users/{customer.id}/role", json={"role": "ADMIN"}, headers=superadmin_headers)
        assert client.get("/api/admin/stats", headers=customer_headers).status_code == 200
