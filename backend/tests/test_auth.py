"""
Authentication tests.

Verifies:
- Registration rules and their messages
- Login success, bad credentials and inactive accounts
- Token verification against the users table
"""

from datetime import timedelta

import pytest
from jose import jwt

from conftest import auth_headers, get_auth_token
from salesdesk.errors import Unauthenticated, AccountInactive, InvalidInput, Conflict
from salesdesk.extensions import db
from salesdesk.models import User
from salesdesk.services import auth_service, session_service
from salesdesk.time_utils import utcnow


VALID_REGISTRATION = {
    "username": "new_rep",
    "email": "New.Rep@Example.com",
    "password": "abcdef",
    "full_name": "New Rep",
}


# =============================================================================
# REGISTRATION
# =============================================================================


class TestRegistration:

    def test_short_password_rejected(self, client):
        resp = client.post("/api/auth/register", json={**VALID_REGISTRATION, "password": "abc12"})
        assert resp.status_code == 400
        assert "at least 6 characters" in resp.json["message"]

    def test_six_character_password_accepted(self, client):
        resp = client.post("/api/auth/register", json=VALID_REGISTRATION)
        assert resp.status_code == 201
        assert resp.json["message"] == "User registered successfully"
        assert resp.json["user"]["role"] == "sales_rep"
        assert resp.json["user"]["email"] == "new.rep@example.com"
        assert resp.json["token"]

    def test_all_errors_reported_together(self):
        errors = auth_service.validate_registration({
            "username": "a!",
            "email": "nope",
            "password": "123",
            "full_name": "X",
            "role": "owner",
        })
        assert errors == [
            "Username must be between 3 and 50 characters",
            "Username can only contain letters, numbers, and underscores",
            "Must be a valid email address",
            "Password must be at least 6 characters long",
            "Full name must be between 2 and 100 characters",
            "Role must be one of: admin, sales_rep",
        ]

    def test_errors_joined_with_comma(self):
        with pytest.raises(InvalidInput) as exc:
            auth_service.register_user({**VALID_REGISTRATION, "email": "bad", "password": "x"})
        assert exc.value.message == "Must be a valid email address, Password must be at least 6 characters long"

    def test_duplicate_username(self, client, rep_user):
        resp = client.post("/api/auth/register", json={**VALID_REGISTRATION, "username": "rep_user"})
        assert resp.status_code == 400
        assert resp.json == {"message": "Username or email already exists"}

    def test_duplicate_email_is_case_insensitive(self, rep_user):
        with pytest.raises(Conflict):
            auth_service.register_user({**VALID_REGISTRATION, "email": "REP@salesdesk.test"})

    def test_password_is_hashed(self, client):
        client.post("/api/auth/register", json=VALID_REGISTRATION)
        user = db.session.query(User).filter_by(username="new_rep").one()
        assert user.password_hash != "abcdef"
        assert auth_service.verify_password("abcdef", user.password_hash)


# =============================================================================
# LOGIN
# =============================================================================


class TestLogin:

    def test_login_success(self, client, rep_user):
        resp = client.post("/api/auth/login", json={"username": "rep_user", "password": "sales123"})
        assert resp.status_code == 200
        assert resp.json["message"] == "Login successful"
        assert resp.json["user"]["username"] == "rep_user"
        assert "password_hash" not in resp.json["user"]
        assert db.session.get(User, rep_user.id).last_login is not None

    @pytest.mark.parametrize("username,password", [("rep_user", "wrong"), ("nobody", "sales123")])
    def test_bad_credentials(self, client, rep_user, username, password):
        resp = client.post("/api/auth/login", json={"username": username, "password": password})
        assert resp.status_code == 401
        assert resp.json == {"message": "Invalid username or password"}

    def test_missing_fields(self, client):
        resp = client.post("/api/auth/login", json={"username": "rep_user"})
        assert resp.status_code == 400
        assert resp.json == {"message": "Username and password are required"}

    @pytest.mark.parametrize("payload", [
        {"username": "rep_user", "password": 123456},
        {"username": ["rep_user"], "password": "sales123"},
    ])
    def test_non_string_credentials(self, client, rep_user, payload):
        resp = client.post("/api/auth/login", json=payload)
        assert resp.status_code == 400
        assert resp.json == {"message": "Username and password are required"}

    def test_inactive_account(self, client, rep_user):
        rep_user.is_active = False
        db.session.commit()

        resp = client.post("/api/auth/login", json={"username": "rep_user", "password": "sales123"})
        assert resp.status_code == 401
        assert resp.json == {"message": "Account is inactive"}


# =============================================================================
# TOKEN VERIFICATION
# =============================================================================


class TestVerifyToken:

    def test_round_trip_identity(self, rep_user):
        identity = session_service.verify_token(session_service.issue_token(rep_user))
        assert identity.to_dict() == {"id": rep_user.id, "username": "rep_user", "role": "sales_rep"}

    def test_role_comes_from_database(self, rep_user):
        token = session_service.issue_token(rep_user)
        rep_user.role = "admin"
        db.session.commit()
        assert session_service.verify_token(token).role == "admin"

    def test_expired_token(self, app, rep_user):
        now = utcnow()
        token = jwt.encode(
            {"userId": rep_user.id, "username": "rep_user", "role": "sales_rep",
             "iat": now - timedelta(hours=2), "exp": now - timedelta(hours=1)},
            app.config["JWT_SECRET"],
            algorithm="HS256",
        )
        with pytest.raises(Unauthenticated):
            session_service.verify_token(token)

    def test_foreign_signature(self, rep_user):
        token = jwt.encode({"userId": rep_user.id}, "some-other-secret", algorithm="HS256")
        with pytest.raises(Unauthenticated):
            session_service.verify_token(token)

    def test_deleted_user(self, rep_user):
        token = session_service.issue_token(rep_user)
        db.session.delete(rep_user)
        db.session.commit()
        with pytest.raises(Unauthenticated):
            session_service.verify_token(token)

    def test_inactive_user(self, rep_user):
        token = session_service.issue_token(rep_user)
        rep_user.is_active = False
        db.session.commit()
        with pytest.raises(AccountInactive):
            session_service.verify_token(token)

    @pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer "])
    def test_bearer_header_required(self, header):
        with pytest.raises(Unauthenticated, match="Access token required"):
            session_service.bearer_token(header)

    def test_garbage_token_over_http(self, client):
        resp = client.get("/api/auth/me", headers=auth_headers("not-a-jwt"))
        assert resp.status_code == 401
        assert resp.json == {"message": "Invalid or expired token"}

    def test_me(self, client, rep_user):
        token = get_auth_token(client, "rep_user", "sales123")
        resp = client.get("/api/auth/me", headers=auth_headers(token))
        assert resp.status_code == 200
        assert resp.json["user"]["username"] == "rep_user"
        assert "VIEW_OWN_PERFORMANCE" in resp.json["user"]["capabilities"]
        assert "DELETE_SALE" not in resp.json["user"]["capabilities"]
