"""
Shared fixtures: an isolated in-memory database per test, a TestClient
bound to it, and ready-made customer/admin accounts with bearer tokens.
"""

import os

# Must be set before anything imports core.config
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.auth import Caller, create_access_token
from core.database import (
    Base,
    enable_sqlite_foreign_keys,
    get_db,
    get_session_factory,
    init_db,
)
from tests.factories import (
    ALL_FACTORIES,
    AdminUserFactory,
    MenuItemFactory,
    UserFactory,
    bind_session,
)


@pytest.fixture(scope="function")
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine)
    init_db(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """Create a fresh database session for each test."""
    db = session_factory()
    bind_session(db, *ALL_FACTORIES)
    try:
        yield db
    finally:
        bind_session(None, *ALL_FACTORIES)
        db.close()


@pytest.fixture(scope="function")
def client(db_session, session_factory):
    """Create a test client with database dependency override."""
    from app.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def customer(db_session):
    return UserFactory(email="asha@example.com", name="Asha")


@pytest.fixture
def other_customer(db_session):
    return UserFactory(email="ravi@example.com", name="Ravi")


@pytest.fixture
def admin_user(db_session):
    return AdminUserFactory(email="admin@example.com", name="Admin")


@pytest.fixture
def customer_caller(customer):
    return Caller.model_validate(customer)


@pytest.fixture
def other_caller(other_customer):
    return Caller.model_validate(other_customer)


@pytest.fixture
def admin_caller(admin_user):
    return Caller.model_validate(admin_user)


def _auth_headers(user):
    token = create_access_token(
        {"sub": str(user.id), "email": user.email, "is_admin": user.is_admin}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer_headers(customer):
    return _auth_headers(customer)


@pytest.fixture
def other_headers(other_customer):
    return _auth_headers(other_customer)


@pytest.fixture
def admin_headers(admin_user):
    return _auth_headers(admin_user)


@pytest.fixture
def make_menu_item(db_session):
    """Catalog rows with explicit stock and availability."""

    def _make(name="Samosa", price="50.00", stock=3, unlimited_stock=False,
              is_available=True, category="Snacks"):
        return MenuItemFactory(
            name=name,
            price=Decimal(price),
            stock=stock,
            unlimited_stock=unlimited_stock,
            is_available=is_available,
            category=category,
        )

    return _make
