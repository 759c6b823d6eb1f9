"""Tests for categories and products."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from backend.app.models.catalog import Category, Product
from backend.app.services.catalog import (
    final_price,
    is_expired,
    is_near_expiry,
    per_unit,
    slugify,
)
from backend.tests.conftest import auth

CATEGORIES = "/api/v1/categories"
PRODUCTS = "/api/v1/products"


class TestPricingHelpers:
    def test_slugify_strips_accents(self) -> None:
        assert slugify("Equipo Médico / Ventilación") == "equipo-medico-ventilacion"

    def test_per_unit(self) -> None:
        assert per_unit(Decimal("100"), 3) == Decimal("33.33")
        assert per_unit(None, 3) is None

    def test_final_price_from_factors(self) -> None:
        p = Product(
            factory_price=Decimal("100"),
            landed_factor=Decimal("1.2"),
            margin_factor=Decimal("1.5"),
            currency_factor=Decimal("1"),
            sales_commission=Decimal("10"),
        )
        assert final_price(p) == Decimal("198.00")

    def test_final_price_falls_back_to_package_price(self) -> None:
        p = Product(package_price=Decimal("75.50"))
        assert final_price(p) == Decimal("75.50")

    def test_expiry_flags(self) -> None:
        today = date(2025, 4, 7)
        assert is_expired(Product(expiry_date=today - timedelta(days=1)), today)
        assert not is_expired(Product(expiry_date=today), today)
        assert is_near_expiry(Product(expiry_date=today + timedelta(days=30)), today)
        assert not is_near_expiry(Product(expiry_date=today + timedelta(days=31)), today)
        assert not is_near_expiry(Product(expiry_date=None), today)


class TestCategories:
    def test_create_derives_slug(self, client: TestClient, manager_token: str) -> None:
        resp = client.post(
            CATEGORIES,
            json={"name": "Cirugía General", "description": "Instrumental"},
            headers=auth(manager_token),
        )
        assert resp.status_code == 201
        assert resp.json()["slug"] == "cirugia-general"
        assert resp.json()["product_count"] == 0

    def test_duplicate_name_case_insensitive(
        self, client: TestClient, manager_token: str, category: Category
    ) -> None:
        resp = client.post(
            CATEGORIES,
            json={"name": "MONITOREO", "description": "x"},
            headers=auth(manager_token),
        )
        assert resp.status_code == 409

    def test_cannot_be_own_parent(
        self, client: TestClient, manager_token: str, category: Category
    ) -> None:
        resp = client.put(
            f"{CATEGORIES}/{category.id}",
            json={"parent_category_id": str(category.id)},
            headers=auth(manager_token),
        )
        assert resp.status_code == 400

    def test_delete_refused_while_in_use(
        self, client: TestClient, manager_token: str, product: Product, category: Category
    ) -> None:
        resp = client.delete(f"{CATEGORIES}/{category.id}", headers=auth(manager_token))
        assert resp.status_code == 409

    def test_list_shows_product_count(
        self, client: TestClient, sales_token: str, product: Product
    ) -> None:
        data = client.get(CATEGORIES, headers=auth(sales_token)).json()
        assert data[0]["product_count"] == 1


class TestProducts:
    def test_create_upper_cases_code_and_derives_unit_price(
        self, client: TestClient, manager_token: str, category: Category
    ) -> None:
        resp = client.post(
            PRODUCTS,
            json={
                "code": " elec-01 ",
                "name": "Electrodos adulto",
                "category_id": str(category.id),
                "package_quantity": 50,
                "package_price": "250.00",
                "cost": "100.00",
            },
            headers=auth(manager_token),
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["code"] == "ELEC-01"
        assert Decimal(data["unit_price"]) == Decimal("5.00")
        assert Decimal(data["unit_cost"]) == Decimal("2.00")
        assert Decimal(data["final_price"]) == Decimal("250.00")
        assert data["category_name"] == "Monitoreo"

    def test_duplicate_code_is_409(
        self, client: TestClient, manager_token: str, product: Product
    ) -> None:
        resp = client.post(
            PRODUCTS, json={"code": "mon-100", "name": "Otro"}, headers=auth(manager_token)
        )
        assert resp.status_code == 409

    def test_sales_user_is_read_only(
        self, client: TestClient, sales_token: str, product: Product
    ) -> None:
        assert client.get(PRODUCTS, headers=auth(sales_token)).status_code == 200
        resp = client.post(PRODUCTS, json={"code": "X", "name": "X"}, headers=auth(sales_token))
        assert resp.status_code == 403

    def test_search_and_price_filter(
        self, client: TestClient, sales_token: str, product: Product, db: Session
    ) -> None:
        db.add(Product(code="BOM-1", name="Bomba de infusión", package_price=Decimal("900")))
        db.commit()
        found = client.get(PRODUCTS, params={"search": "bomba"}, headers=auth(sales_token)).json()
        assert [p["code"] for p in found["items"]] == ["BOM-1"]

        cheap = client.get(PRODUCTS, params={"max_price": "500"}, headers=auth(sales_token)).json()
        assert [p["code"] for p in cheap["items"]] == ["MON-100"]

    def test_soft_delete(
        self, client: TestClient, manager_token: str, product: Product, db: Session
    ) -> None:
        resp = client.delete(f"{PRODUCTS}/{product.id}", headers=auth(manager_token))
        assert resp.status_code == 200
        assert client.get(f"{PRODUCTS}/{product.id}", headers=auth(manager_token)).status_code == 404
        db.refresh(product)
        assert product.deleted_at is not None
