"""
System tests: bootstrap, health, CORS and error rendering.
"""

import pytest
from sqlalchemy.exc import OperationalError

from conftest import get_auth_token
from salesdesk.extensions import db
from salesdesk.models import User, Category, Product, Customer, StockMovement
from salesdesk.services import products_service
from salesdesk.services.ledger_service import reconcile


class TestInitDb:

    def test_wrong_key(self, client):
        resp = client.post("/api/init-db", json={"init_key": "guess"})
        assert resp.status_code == 403
        assert resp.json == {"message": "Invalid initialization key"}
        assert db.session.query(User).count() == 0

    def test_missing_key(self, client):
        resp = client.post("/api/init-db", json={})
        assert resp.status_code == 403

    def test_unset_key_always_refuses(self, app, client):
        app.config["DB_INIT_KEY"] = None
        resp = client.post("/api/init-db", json={"init_key": None})
        assert resp.status_code == 403

    def test_schema_failure_is_internal_error(self, client, monkeypatch):
        def unavailable():
            raise OperationalError("CREATE TABLE users", {}, Exception("database is locked"))

        monkeypatch.setattr(db, "create_all", unavailable)
        resp = client.post("/api/init-db", json={"init_key": "test-init-key"})
        assert resp.status_code == 500
        assert resp.json == {"message": "Database initialization failed"}

    def test_seeds_demo_data_once(self, client):
        resp = client.post("/api/init-db", json={"init_key": "test-init-key"})
        assert resp.status_code == 200
        assert resp.json["seeded"] == {"users": 2, "categories": 5, "products": 5, "customers": 3}

        again = client.post("/api/init-db", json={"init_key": "test-init-key"})
        assert again.json["seeded"] == {"users": 0, "categories": 0, "products": 0, "customers": 0}

        assert db.session.query(User).count() == 2
        assert db.session.query(Category).count() == 5
        assert db.session.query(Product).count() == 5
        assert db.session.query(Customer).count() == 3

    def test_seeded_logins_and_ledger(self, client):
        client.post("/api/init-db", json={"init_key": "test-init-key"})

        assert get_auth_token(client, "admin", "admin123")
        assert get_auth_token(client, "sales_rep", "sales123")

        headphones = db.session.query(Product).filter_by(sku="WBH-001").one()
        assert headphones.stock_quantity == 50
        assert db.session.query(StockMovement).filter_by(reference_type="restock").count() == 5
        assert reconcile()["mismatches"] == []


class TestCors:

    def test_preflight_skips_auth(self, client):
        resp = client.options("/api/sales")
        assert resp.status_code == 200
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        assert resp.headers["Access-Control-Allow-Methods"] == "GET, POST, PUT, DELETE, OPTIONS"
        assert resp.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"

    def test_headers_on_errors(self, client):
        resp = client.get("/api/products")
        assert resp.status_code == 401
        assert resp.headers["Access-Control-Allow-Origin"] == "*"


class TestErrorRendering:

    def test_unknown_route(self, client):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert set(resp.json) == {"message"}

    def test_method_not_allowed(self, client):
        resp = client.patch("/api/products")
        assert resp.status_code == 405
        assert set(resp.json) == {"message"}

    def test_unexpected_error_hides_details(self, client, rep_headers, monkeypatch):
        def broken():
            raise RuntimeError("connection string with secrets")

        monkeypatch.setattr(products_service, "list_products", broken)
        resp = client.get("/api/products", headers=rep_headers)
        assert resp.status_code == 500
        assert resp.json == {"message": "Server error"}


class TestHealth:

    def test_healthy(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert resp.json["checks"]["database"]["status"] == "healthy"


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/analytics"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("PUT", "/api/products?id=1"),
            ("DELETE", "/api/products?id=1"),
            ("GET", "/api/products/price-history?id=1"),
            ("GET", "/api/categories"),
            ("GET", "/api/customers"),
            ("POST", "/api/customers"),
            ("GET", "/api/sales"),
            ("GET", "/api/sales/1"),
            ("POST", "/api/sales"),
            ("DELETE", "/api/sales?id=1"),
            ("GET", "/api/inventory/movements"),
            ("POST", "/api/inventory/adjust"),
            ("GET", "/api/inventory/reconcile"),
            ("GET", "/api/admin/users"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
