# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

# backend/salesdesk/routes/inventory.py
"""
Stock ledger routes.

Every stock change is a StockMovement; these endpoints expose the movement
log, post manual adjustments and restocks, and replay the log against the
stored quantities.
"""
from flask import Blueprint, request, jsonify, g

from ..models.inventory import CAUSE_MANUAL_ADJUSTMENT
from ..services import ledger_service
from ..validation import parse_int
from ..decorators import require_auth, require_permission

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/movements")
@require_auth
@require_permission("VIEW_STOCK_LEDGER")
def list_movements_route():
    """
    Query params:
    - product_id: int (optional)
    - reference_type: sale | sale_reversal | manual_adjustment | restock (optional)
    - limit: int (optional, default 100, max 500)
    """
    product_id = request.args.get("product_id")
    limit = request.args.get("limit")

    movements = ledger_service.list_movements(
        product_id=parse_int("product_id", product_id) if product_id else None,
        reference_type=request.args.get("reference_type") or None,
        limit=parse_int("limit", limit) if limit else 100,
    )
    return jsonify([m.to_dict() for m in movements])


@inventory_bp.post("/adjust")
@require_auth
@require_permission("ADJUST_STOCK")
def adjust_route():
    """
    Post a manual adjustment or restock.

    Body: product_id, quantity_delta (signed, non-zero), reason?, notes?
    """
    data = request.get_json(silent=True) or {}

    product, movement = ledger_service.adjust_stock(
        actor_id=g.current_user.id,
        product_id=parse_int("product_id", data.get("product_id")),
        quantity_delta=data.get("quantity_delta"),
        cause=data.get("reason") or CAUSE_MANUAL_ADJUSTMENT,
        notes=data.get("notes"),
    )
    return jsonify({
        "message": "Stock adjusted successfully",
        "product": product.to_dict(),
        "movement": movement.to_dict(),
    }), 201


@inventory_bp.get("/reconcile")
@require_auth
@require_permission("VIEW_STOCK_LEDGER")
def reconcile_route():
    product_id = request.args.get("product_id")
    result = ledger_service.reconcile(
        parse_int("product_id", product_id) if product_id else None
    )
    return jsonify(result)
