# Overview: Flask API routes for customers operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..errors import InvalidInput
from ..models import Customer
from ..services import customers_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_customer,
    required_id,
)
from ..decorators import require_auth, require_permission

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address", "customer_type"},
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers():
    return jsonify(customers_service.list_customers())


@customers_bp.post("")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    if payload.get("name") in (None, ""):
        raise InvalidInput("Customer name is required")

    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    enforce_rules_customer(patch)

    customer = customers_service.create_customer(patch=patch, actor_id=g.current_user.id)
    return jsonify({
        "message": "Customer created successfully",
        "customer": customer.to_dict(),
    }), 201


@customers_bp.put("")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def update_customer_route():
    customer_id = required_id("Customer", request.args.get("id"))
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    enforce_rules_customer(patch)

    customer = customers_service.update_customer(customer_id=customer_id, patch=patch)
    return jsonify({
        "message": "Customer updated successfully",
        "customer": customer.to_dict(),
    })


@customers_bp.delete("")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def delete_customer_route():
    """Delete a customer with no sales history."""
    customer_id = required_id("Customer", request.args.get("id"))
    customers_service.delete_customer(customer_id=customer_id)
    return jsonify({"message": "Customer deleted successfully"})
