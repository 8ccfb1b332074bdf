# Overview: Service-layer operations for auth; registration, login and user administration.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for password hashing.

REGISTRATION RULES:
- username: 3-50 characters, letters, numbers and underscores only
- email: must look like an address; stored lowercased
- password: at least 6 characters
- full_name: 2-100 characters
- role: one of permissions.ROLES, default sales_rep

All rule violations are reported together, joined by ", ".
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..errors import InvalidInput, Conflict, NotFound, Unauthenticated, AccountInactive
from ..models import User
from ..permissions import ROLES, DEFAULT_ROLE
from .concurrency import unit_of_work
from salesdesk.time_utils import utcnow

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
EMAIL_RE = re.compile(r"\S+@\S+\.\S+")
MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    """Hash password using bcrypt with the configured cost factor."""
    salt = bcrypt.gensalt(rounds=current_app.config["BCRYPT_ROUNDS"])
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns False for malformed hashes instead of raising.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def validate_registration(data: dict) -> list[str]:
    """Return every rule the registration payload breaks, in a fixed order."""
    username = data.get("username")
    email = data.get("email")
    password = data.get("password")
    full_name = data.get("full_name")
    role = data.get("role")

    errors = []

    if not isinstance(username, str) or not 3 <= len(username) <= 50:
        errors.append("Username must be between 3 and 50 characters")
    if isinstance(username, str) and username and not USERNAME_RE.match(username):
        errors.append("Username can only contain letters, numbers, and underscores")

    if not isinstance(email, str) or not EMAIL_RE.search(email):
        errors.append("Must be a valid email address")

    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    if not isinstance(full_name, str) or not 2 <= len(full_name) <= 100:
        errors.append("Full name must be between 2 and 100 characters")

    if role is not None and role not in ROLES:
        errors.append(f"Role must be one of: {', '.join(ROLES)}")

    return errors


def create_user(
    username: str,
    email: str,
    password: str,
    full_name: str,
    role: str = DEFAULT_ROLE,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        Conflict: username or email already taken
    """
    email = email.lower()
    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise Conflict("Username or email already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        role=role,
        is_active=True,
    )

    with unit_of_work():
        db.session.add(user)
    return user


def register_user(data: dict) -> User:
    """Validate a self-registration payload and create the account."""
    errors = validate_registration(data)
    if errors:
        raise InvalidInput(", ".join(errors))

    return create_user(
        username=data["username"],
        email=data["email"],
        password=data["password"],
        full_name=data["full_name"],
        role=data.get("role") or DEFAULT_ROLE,
    )


def authenticate(username: str, password: str) -> User:
    """
    Check credentials and stamp last_login.

    Raises:
        Unauthenticated: unknown username or wrong password
        AccountInactive: account deactivated
    """
    user = db.session.query(User).filter_by(username=username).first()
    if user is None:
        raise Unauthenticated("Invalid username or password")

    if not user.is_active:
        raise AccountInactive("Account is inactive")

    if not verify_password(password, user.password_hash):
        raise Unauthenticated("Invalid username or password")

    with unit_of_work():
        user.last_login = utcnow()
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def update_user(user_id: int, *, role: str | None = None, is_active=None, full_name: str | None = None) -> User:
    """Administrative update of role, active flag and display name."""
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")

    if role is not None and role not in ROLES:
        raise InvalidInput(f"Role must be one of: {', '.join(ROLES)}")
    if is_active is not None and not isinstance(is_active, bool):
        raise InvalidInput("is_active must be a boolean")
    if full_name is not None and (not isinstance(full_name, str) or not 2 <= len(full_name) <= 100):
        raise InvalidInput("Full name must be between 2 and 100 characters")

    with unit_of_work():
        if role is not None:
            user.role = role
        if is_active is not None:
            user.is_active = is_active
        if full_name is not None:
            user.full_name = full_name
    return user
