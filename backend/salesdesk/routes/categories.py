# Overview: Flask API routes for categories operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..errors import InvalidInput
from ..services import products_service
from ..decorators import require_auth, require_permission

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
def list_categories():
    return jsonify([c.to_dict() for c in products_service.list_categories()])


@categories_bp.post("")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_category_route():
    data = request.get_json(silent=True) or {}
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise InvalidInput("Category name is required")
    if len(name.strip()) > 100:
        raise InvalidInput("name exceeds max length 100")

    category = products_service.create_category(
        name=name.strip(),
        description=data.get("description") or None,
    )
    return jsonify({
        "message": "Category created successfully",
        "category": category.to_dict(),
    }), 201
