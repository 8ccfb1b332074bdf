# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/salesdesk/routes/auth.py
"""
Authentication API routes

Login and self-registration both answer with the user and a signed bearer
token. The token goes in the Authorization header of every other request.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import InvalidInput
from ..services import auth_service
from ..services import session_service
from ..permissions import capabilities_for_role
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _public_user(user) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "full_name": user.full_name,
        "role": user.role,
    }


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and issue a token.

    SECURITY:
    - Unknown username and wrong password give the same message
    - Deactivated accounts are refused with 'Account is inactive'
    """
    data = request.get_json(silent=True) or {}
    username = data.get("username")
    password = data.get("password")

    if not isinstance(username, str) or not isinstance(password, str) or not username or not password:
        raise InvalidInput("Username and password are required")

    user = auth_service.authenticate(username, password)
    token = session_service.issue_token(user)
    current_app.logger.info("User %s logged in", user.username)

    return jsonify({
        "message": "Login successful",
        "user": _public_user(user),
        "token": token,
    })


@auth_bp.post("/register")
def register_route():
    """Self-registration; role defaults to sales_rep."""
    data = request.get_json(silent=True) or {}

    user = auth_service.register_user(data)
    token = session_service.issue_token(user)

    body = _public_user(user)
    body["created_at"] = user.to_dict()["created_at"]
    return jsonify({
        "message": "User registered successfully",
        "user": body,
        "token": token,
    }), 201


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current identity and the capabilities its role grants."""
    body = g.current_user.to_dict()
    body["capabilities"] = capabilities_for_role(g.current_user.role)
    return jsonify({"user": body})
