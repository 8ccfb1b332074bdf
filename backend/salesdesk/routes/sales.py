# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/salesdesk/routes/sales.py
"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g

from ..services import sales_service
from ..validation import required_id
from ..decorators import require_auth, require_permission


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    """All sales, most recent first."""
    return jsonify(sales_service.list_sales())


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale_route(sale_id: int):
    return jsonify({"sale": sales_service.get_sale(sale_id)})


@sales_bp.post("")
@require_auth
@require_permission("RECORD_SALE")
def create_sale_route():
    """
    Record a sale.

    Body: items [{product_id, quantity, unit_price}], customer_id?,
    discount_amount?, tax_amount?, payment_method?, notes?

    Stock and the customer's total are updated in the same transaction.
    """
    data = request.get_json(silent=True) or {}

    sale = sales_service.create_sale(
        actor=g.current_user,
        items=data.get("items"),
        customer_id=data.get("customer_id"),
        discount_amount=data.get("discount_amount", 0),
        tax_amount=data.get("tax_amount", 0),
        payment_method=data.get("payment_method"),
        notes=data.get("notes"),
    )

    return jsonify({
        "message": "Sale created successfully",
        "sale": sales_service.get_sale(sale.id),
    }), 201


@sales_bp.put("")
@require_auth
@require_permission("RECORD_SALE")
def update_sale_route():
    """Edit payment method, payment status or notes. Amounts never change."""
    sale_id = required_id("Sale", request.args.get("id"))
    data = request.get_json(silent=True) or {}

    sale = sales_service.update_sale(
        sale_id=sale_id,
        payment_method=data.get("payment_method"),
        payment_status=data.get("payment_status"),
        notes=data.get("notes"),
        notes_provided="notes" in data,
    )
    return jsonify({
        "message": "Sale updated successfully",
        "sale": sale.to_dict(),
    })


@sales_bp.delete("")
@require_auth
def delete_sale_route():
    """
    Delete a sale, restoring stock and the customer's total.

    Admin only; the capability check lives in sales_service.delete_sale.
    """
    sale_id = required_id("Sale", request.args.get("id"))
    sales_service.delete_sale(actor=g.current_user, sale_id=sale_id)
    return jsonify({"message": "Sale deleted successfully"})
