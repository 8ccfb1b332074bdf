# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

# backend/salesdesk/routes/admin.py
"""
Admin routes for user management.

All endpoints require authentication and MANAGE_USERS.
"""

from flask import Blueprint, request, jsonify, g

from ..errors import InvalidInput
from ..services import auth_service
from ..validation import required_id
from ..decorators import require_auth, require_permission

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/users")
@require_auth
@require_permission("MANAGE_USERS")
def list_users():
    users = [u.to_dict() for u in auth_service.list_users()]
    return jsonify({"users": users, "count": len(users)})


@admin_bp.put("/users")
@require_auth
@require_permission("MANAGE_USERS")
def update_user_route():
    """
    Change a user's role, active flag or full name.

    Admins cannot deactivate or demote themselves.
    """
    user_id = required_id("User", request.args.get("id"))
    data = request.get_json(silent=True) or {}

    if user_id == g.current_user.id:
        if data.get("is_active") is False:
            raise InvalidInput("Cannot deactivate your own account")
        if data.get("role") not in (None, g.current_user.role):
            raise InvalidInput("Cannot change your own role")

    user = auth_service.update_user(
        user_id,
        role=data.get("role"),
        is_active=data.get("is_active"),
        full_name=data.get("full_name"),
    )
    return jsonify({
        "message": "User updated successfully",
        "user": user.to_dict(),
    })
