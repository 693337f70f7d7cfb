"""
Pytest fixtures for storefront backend tests.

Provides the application on an in-memory database, a test client, and
users/catalog fixtures. Every test starts from empty tables.
"""

import pytest

from storefront import create_app
from storefront.extensions import db
from storefront.models import Category, Product, User
from storefront.services.auth_service import hash_password


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash():
    """Hash the shared test password once per session."""
    return hash_password(PASSWORD)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_user(db_session, password_hash):
    """Factory: make_user("alice", role="ADMIN") -> User with password PASSWORD."""
    def _make(username: str, role: str = "USER") -> User:
        user = User(
            email=f"{username}@shop.test",
            username=username,
            name=username.title(),
            password_hash=password_hash,
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture(scope='function')
def customer(make_user):
    return make_user("customer")


@pytest.fixture(scope='function')
def other_customer(make_user):
    return make_user("other")


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user("admin", role="ADMIN")


@pytest.fixture(scope='function')
def superadmin(make_user):
    return make_user("owner", role="SUPERADMIN")


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="Gadgets")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product("Widget", price_cents=1000, stock=5) -> Product."""
    def _make(name: str, price_cents: int = 1000, stock: int = 10, category=None) -> Product:
        product = Product(
            name=name,
            description=f"{name} description",
            price_cents=price_cents,
            stock=stock,
            category_id=category.id if category else None,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def customer_headers(client, customer):
    return auth_headers(get_auth_token(client, customer.username))


@pytest.fixture(scope='function')
def other_headers(client, other_customer):
    return auth_headers(get_auth_token(client, other_customer.username))


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.username))


@pytest.fixture(scope='function')
def superadmin_headers(client, superadmin):
    return auth_headers(get_auth_token(client, superadmin.username))
