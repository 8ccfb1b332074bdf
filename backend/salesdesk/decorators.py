# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, g

from .errors import Unauthenticated, Forbidden
from .permissions import role_has_capability, validate_capability_code
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.current_user to the session_service.Identity resolved from the
    users table.

    SECURITY: Raises Unauthenticated (401) if:
    - No Authorization header, or not a Bearer credential
    - Invalid, expired or foreign token
    - User no longer exists or has been deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = session_service.bearer_token(request.headers.get("Authorization"))
        g.current_user = session_service.verify_token(token)
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require the caller's role to hold permission_code. Use below @require_auth."""
    if not validate_capability_code(permission_code):
        raise ValueError(f"Unknown capability code: {permission_code}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                raise Unauthenticated("Access token required")

            if not role_has_capability(g.current_user.role, permission_code):
                raise Forbidden(f"Permission denied: requires {permission_code}")

            return f(*args, **kwargs)

        return decorated_function
    return decorator
