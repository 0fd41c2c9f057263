"""
Pytest fixtures for the lounge backend tests.

Provides the in-memory app, a per-test table wipe, accounts, and test client.
"""

from decimal import Decimal

import pytest
from lounge import create_app
from lounge.extensions import db
from lounge.models import Device, Product, User
from lounge.services.auth_service import hash_password


PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DEFAULT_SESSION_MINUTES': 60,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        db.session.expunge_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_user(db_session, email: str, role: str) -> User:
    user = User(email=email, password_hash=hash_password(PASSWORD), role=role, is_active=True)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user(db_session, "admin@lounge.test", "admin")


@pytest.fixture(scope='function')
def plain_user(db_session):
    return _make_user(db_session, "staff@lounge.test", "user")


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password,
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.email))


@pytest.fixture(scope='function')
def user_headers(client, plain_user):
    return auth_headers(get_auth_token(client, plain_user.email))


@pytest.fixture(scope='function')
def device(db_session):
    """An external station at 1.5/hour with 0.25/hour per extra controller."""
    d = Device(
        name="External 1",
        type="external",
        status="available",
        hourly_rate=Decimal("1.5"),
        extra_controller_rate=Decimal("0.25"),
        location="external",
    )
    db_session.add(d)
    db_session.commit()
    return d


@pytest.fixture(scope='function')
def vip_device(db_session):
    d = Device(
        name="VIP",
        type="vip",
        status="available",
        hourly_rate=Decimal("2"),
        extra_controller_rate=Decimal("0"),
        location="vip",
    )
    db_session.add(d)
    db_session.commit()
    return d


@pytest.fixture(scope='function')
def cola(db_session):
    p = Product(name="Coca-Cola", price=Decimal("0.50"), stock=10, category="market")
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def coffee(db_session):
    p = Product(name="Turkish coffee", price=Decimal("0.75"), stock=5, category="coffee")
    db_session.add(p)
    db_session.commit()
    return p
