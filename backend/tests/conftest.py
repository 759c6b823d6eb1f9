"""Shared test fixtures.

Tests run against an in-memory SQLite database; the schema is created before
and dropped after every test, so tests never pollute each other.
"""

from __future__ import annotations

import os

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from decimal import Decimal  # noqa: E402
from typing import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from backend.app.api.deps import get_quote_defaults  # noqa: E402
from backend.app.api.v1.endpoints.auth import login_limiter  # noqa: E402
from backend.app.core.database import Base, SessionLocal, engine, get_db  # noqa: E402
from backend.app.core.security import create_access_token, get_password_hash  # noqa: E402
from backend.app.main import app  # noqa: E402
from backend.app.models.audit import AuditLog  # noqa: E402,F401
from backend.app.models.catalog import Category, Product  # noqa: E402
from backend.app.models.client import Client  # noqa: E402
from backend.app.models.equipment import Equipment  # noqa: E402,F401
from backend.app.models.quote import Quote, QuoteItem  # noqa: E402,F401
from backend.app.models.user import RoleEnum, User  # noqa: E402
from backend.app.services.quote_config import QuoteDefaults  # noqa: E402


# ─── DB session on a fresh schema ─────────────────────────────────────────────


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    """Yield a session on a freshly created schema; dropped after the test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def quote_defaults() -> QuoteDefaults:
    return QuoteDefaults(
        tax_rate=Decimal("0.16"),
        currency="MXN",
        payment_conditions="100% Anticipado",
        delivery_time="15 días hábiles",
        warranty="12 meses",
        observations="Sin observaciones",
        folio_prefix="BHL",
        timezone="America/Mexico_City",
        max_folio_attempts=3,
    )


@pytest.fixture()
def client(db: Session, quote_defaults: QuoteDefaults) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the test session."""

    def _override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_quote_defaults] = lambda: quote_defaults
    login_limiter.reset()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ─── Users & tokens ───────────────────────────────────────────────────────────


def _make_user(db: Session, username: str, role: RoleEnum) -> User:
    user = User(
        username=username,
        email=f"{username}@bhl.test",
        hashed_password=get_password_hash("secret123"),
        first_name=username.split("_")[-1].capitalize(),
        last_name="Test",
        role=role,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture()
def admin_user(db: Session) -> User:
    return _make_user(db, "test_admin", RoleEnum.ADMIN)


@pytest.fixture()
def manager_user(db: Session) -> User:
    return _make_user(db, "test_manager", RoleEnum.MANAGER)


@pytest.fixture()
def sales_user(db: Session) -> User:
    return _make_user(db, "test_sales", RoleEnum.USER)


@pytest.fixture()
def admin_token(admin_user: User) -> str:
    return create_access_token(subject=str(admin_user.id))


@pytest.fixture()
def manager_token(manager_user: User) -> str:
    return create_access_token(subject=str(manager_user.id))


@pytest.fixture()
def sales_token(sales_user: User) -> str:
    return create_access_token(subject=str(sales_user.id))


def auth(token: str) -> dict[str, str]:
    """Return Authorization header dict."""
    return {"Authorization": f"Bearer {token}"}


# ─── Domain fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def hospital(db: Session) -> Client:
    c = Client(
        name="Hospital General de Zona 1",
        contact="Dra. Laura Méndez",
        email="compras@hgz1.test",
        phone="5551234567",
        city="Ciudad de México",
        full_address="Av. Cuauhtémoc 330, Ciudad de México",
    )
    db.add(c)
    db.commit()
    return c


@pytest.fixture()
def category(db: Session) -> Category:
    cat = Category(name="Monitoreo", description="Monitores de signos vitales", slug="monitoreo")
    db.add(cat)
    db.commit()
    return cat


@pytest.fixture()
def product(db: Session, category: Category) -> Product:
    p = Product(
        code="MON-100",
        name="Monitor multiparámetro",
        description="Monitor de 12 pulgadas",
        brand="Mindray",
        category_id=category.id,
        package_quantity=1,
        package_price=Decimal("100.00"),
        unit_price=Decimal("100.00"),
    )
    db.add(p)
    db.commit()
    return p
