# Overview: Service-layer operations for session; issues and verifies bearer tokens.

"""
Session Token Service

Tokens are HS256 JWTs carrying userId, username and role. They are
stateless: verification checks the signature and expiry, then re-reads the
user so that deactivation takes effect immediately.

The identity returned to routes always comes from the users table, not the
token claims, so a role change applies on the next request.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from flask import current_app
from jose import jwt, JWTError

from ..extensions import db
from ..errors import Unauthenticated, AccountInactive
from ..models import User
from salesdesk.time_utils import utcnow


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as resolved for one request."""
    id: int
    username: str
    role: str

    def to_dict(self) -> dict:
        return {"id": self.id, "username": self.username, "role": self.role}


def issue_token(user: User) -> str:
    """Sign a token for user; lifetime is JWT_EXPIRES_HOURS."""
    now = utcnow()
    payload = {
        "userId": user.id,
        "username": user.username,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(hours=current_app.config["JWT_EXPIRES_HOURS"]),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET"],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Raises Unauthenticated on failure."""
    try:
        return jwt.decode(
            token,
            current_app.config["JWT_SECRET"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
        )
    except JWTError as exc:
        raise Unauthenticated("Invalid or expired token") from exc


def bearer_token(auth_header: str | None) -> str:
    """Extract the token from an 'Authorization: Bearer <token>' header."""
    if not auth_header:
        raise Unauthenticated("Access token required")
    scheme, _, token = auth_header.partition(" ")
    if scheme != "Bearer" or not token.strip():
        raise Unauthenticated("Access token required")
    return token.strip()


def verify_token(token: str) -> Identity:
    """
    Resolve a bearer token to the active user it was issued for.

    Raises:
        Unauthenticated: token is malformed, expired, foreign, or the user is gone
        AccountInactive: user exists but has been deactivated
    """
    claims = decode_token(token)

    user_id = claims.get("userId")
    if not isinstance(user_id, int):
        raise Unauthenticated("Invalid or expired token")

    user = db.session.get(User, user_id)
    if user is None:
        raise Unauthenticated("Invalid or expired token")
    if not user.is_active:
        raise AccountInactive("Account is inactive")

    return Identity(id=user.id, username=user.username, role=user.role)
