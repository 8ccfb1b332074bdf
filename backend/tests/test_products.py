"""Catalog tests: products, price history and categories."""

from salesdesk.extensions import db
from salesdesk.models import Product, PriceHistory, StockMovement


class TestCreateProduct:

    def test_create_with_initial_stock(self, client, rep_headers, category):
        resp = client.post("/api/products", json={
            "name": "Desk Lamp",
            "sku": "DL-001",
            "category_id": category.id,
            "cost_price": "12.50",
            "selling_price": 29.99,
            "stock_quantity": 7,
        }, headers=rep_headers)

        assert resp.status_code == 201
        product = resp.json["product"]
        assert product["selling_price"] == 29.99
        assert product["stock_quantity"] == 7

        movement = db.session.query(StockMovement).filter_by(product_id=product["id"]).one()
        assert (movement.movement_type, movement.reference_type, movement.quantity) == ("in", "restock", 7)

        history = db.session.query(PriceHistory).filter_by(product_id=product["id"]).one()
        assert history.event_type == "created"

    def test_required_fields(self, client, rep_headers):
        resp = client.post("/api/products", json={"name": "No Prices"}, headers=rep_headers)
        assert resp.status_code == 400
        assert resp.json == {"message": "Name, cost price, and selling price are required"}

    def test_duplicate_sku(self, client, rep_headers, product_a):
        resp = client.post("/api/products", json={
            "name": "Clone", "sku": "PROD-A-001", "cost_price": 1, "selling_price": 2,
        }, headers=rep_headers)
        assert resp.status_code == 400
        assert resp.json == {"message": "SKU already exists"}

    def test_negative_price_rejected(self, client, rep_headers):
        resp = client.post("/api/products", json={
            "name": "Bad", "cost_price": -1, "selling_price": 2,
        }, headers=rep_headers)
        assert resp.status_code == 400

    def test_unknown_category(self, client, rep_headers):
        resp = client.post("/api/products", json={
            "name": "Orphan", "category_id": 9999, "cost_price": 1, "selling_price": 2,
        }, headers=rep_headers)
        assert resp.status_code == 404
        assert resp.json == {"message": "Category not found"}


class TestListProducts:

    def test_list_includes_names(self, client, rep_headers, product_a, product_b):
        resp = client.get("/api/products", headers=rep_headers)
        assert resp.status_code == 200
        assert [p["name"] for p in resp.json] == ["Product B", "Product A"]
        assert resp.json[0]["category_name"] == "Electronics"
        assert resp.json[0]["created_by_username"] == "admin_user"


class TestUpdateProduct:

    def test_price_change_writes_history(self, client, rep_headers, product_a):
        resp = client.put(f"/api/products?id={product_a.id}", json={"selling_price": 12.5}, headers=rep_headers)
        assert resp.status_code == 200
        assert resp.json["product"]["selling_price"] == 12.5

        history = client.get(f"/api/products/price-history?id={product_a.id}", headers=rep_headers).json
        assert [h["event_type"] for h in history] == ["created", "updated"]
        assert history[1]["old_price"] == 10.0
        assert history[1]["new_price"] == 12.5

    def test_same_price_writes_no_history(self, client, rep_headers, product_a):
        client.put(f"/api/products?id={product_a.id}", json={"selling_price": 10}, headers=rep_headers)
        assert db.session.query(PriceHistory).filter_by(product_id=product_a.id).count() == 1

    def test_stock_edit_is_a_ledger_adjustment(self, client, rep_headers, product_a):
        resp = client.put(f"/api/products?id={product_a.id}", json={"stock_quantity": 15}, headers=rep_headers)
        assert resp.json["product"]["stock_quantity"] == 15

        movement = (
            db.session.query(StockMovement)
            .filter_by(product_id=product_a.id, reference_type="manual_adjustment")
            .one()
        )
        assert (movement.movement_type, movement.quantity) == ("out", 5)

    def test_partial_update_keeps_other_fields(self, client, rep_headers, product_a):
        client.put(f"/api/products?id={product_a.id}", json={"description": "Updated"}, headers=rep_headers)
        product = db.session.get(Product, product_a.id)
        assert product.description == "Updated"
        assert product.sku == "PROD-A-001"

    def test_sku_taken_by_other_product(self, client, rep_headers, product_a, product_b):
        resp = client.put(f"/api/products?id={product_b.id}", json={"sku": "PROD-A-001"}, headers=rep_headers)
        assert resp.status_code == 400
        assert resp.json == {"message": "SKU already exists"}

    def test_missing_id(self, client, rep_headers):
        resp = client.put("/api/products", json={"name": "x"}, headers=rep_headers)
        assert resp.status_code == 400
        assert resp.json == {"message": "Product ID is required"}

    def test_not_found(self, client, rep_headers):
        resp = client.put("/api/products?id=9999", json={"name": "x"}, headers=rep_headers)
        assert resp.status_code == 404


class TestDeleteProduct:

    def test_delete_unused(self, client, rep_headers, product_a):
        resp = client.delete(f"/api/products?id={product_a.id}", headers=rep_headers)
        assert resp.status_code == 200
        assert resp.json == {"message": "Product deleted successfully"}
        assert db.session.get(Product, product_a.id) is None

    def test_delete_used_in_sale(self, client, rep_headers, product_a):
        client.post("/api/sales", json={
            "items": [{"product_id": product_a.id, "quantity": 1, "unit_price": 10}],
        }, headers=rep_headers)

        resp = client.delete(f"/api/products?id={product_a.id}", headers=rep_headers)
        assert resp.status_code == 400
        assert resp.json == {"message": "Cannot delete product that has been used in sales"}

    def test_delete_missing(self, client, rep_headers):
        resp = client.delete("/api/products?id=9999", headers=rep_headers)
        assert resp.status_code == 404
        assert resp.json == {"message": "Product not found"}


class TestCategories:

    def test_create_and_list(self, client, rep_headers):
        resp = client.post("/api/categories", json={"name": "Books"}, headers=rep_headers)
        assert resp.status_code == 201

        listing = client.get("/api/categories", headers=rep_headers)
        assert [c["name"] for c in listing.json] == ["Books"]

    def test_name_required(self, client, rep_headers):
        resp = client.post("/api/categories", json={"name": "  "}, headers=rep_headers)
        assert resp.status_code == 400
