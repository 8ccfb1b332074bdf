# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/salesdesk/routes/products.py
"""
Product management routes.

SECURITY: All routes require authentication.
- Reads are open to any authenticated user
- Writes require MANAGE_CATALOG permission

PUT and DELETE address the product with ?id=.
"""
from flask import Blueprint, request, jsonify, g

from ..errors import InvalidInput
from ..models import Product
from ..services import products_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    required_id,
)
from ..decorators import require_auth, require_permission

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "category_id", "sku",
        "cost_price", "selling_price", "stock_quantity", "min_stock_level",
    },
    required_on_create={"name", "cost_price", "selling_price"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """List all products, newest first, with category and creator names."""
    return jsonify(products_service.list_products())


@products_bp.post("")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_product_route():
    """
    Create a new product.

    stock_quantity, when given, is recorded as a restock movement.
    """
    payload = request.get_json(silent=True) or {}
    if any(payload.get(f) in (None, "") for f in PRODUCT_POLICY.required_on_create):
        raise InvalidInput("Name, cost price, and selling price are required")

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    product = products_service.create_product(patch=patch, actor_id=g.current_user.id)
    return jsonify({
        "message": "Product created successfully",
        "product": product.to_dict(),
    }), 201


@products_bp.put("")
@require_auth
@require_permission("MANAGE_CATALOG")
def update_product_route():
    """Partial update; only provided fields change."""
    product_id = required_id("Product", request.args.get("id"))
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    product = products_service.update_product(
        product_id=product_id, patch=patch, actor_id=g.current_user.id,
    )
    return jsonify({
        "message": "Product updated successfully",
        "product": product.to_dict(),
    })


@products_bp.delete("")
@require_auth
@require_permission("MANAGE_CATALOG")
def delete_product_route():
    """Delete a product that no sale references."""
    product_id = required_id("Product", request.args.get("id"))
    products_service.delete_product(product_id=product_id)
    return jsonify({"message": "Product deleted successfully"})


@products_bp.get("/price-history")
@require_auth
def price_history_route():
    product_id = required_id("Product", request.args.get("id"))
    entries = products_service.price_history(product_id)
    return jsonify([e.to_dict() for e in entries])
