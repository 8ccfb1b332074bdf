"""
Authorization tests.

Verifies:
- The role capability table and commission rates
- Sales reps are denied admin-only operations (403)
- Admins can manage users; deactivation takes effect on the next request
"""

from decimal import Decimal

import pytest

from salesdesk.decorators import require_permission
from salesdesk.permissions import (
    CAPABILITY_DEFINITIONS,
    ROLE_CAPABILITIES,
    capabilities_for_role,
    commission_rate_for_role,
    get_all_capability_codes,
    role_has_capability,
    validate_capability_code,
)


class TestCapabilityTable:

    def test_every_granted_capability_is_defined(self):
        codes = set(get_all_capability_codes())
        assert len(codes) == len(CAPABILITY_DEFINITIONS)
        for granted in ROLE_CAPABILITIES.values():
            assert granted <= codes

    @pytest.mark.parametrize("code,admin,rep", [
        ("MANAGE_CATALOG", True, True),
        ("MANAGE_CUSTOMERS", True, True),
        ("RECORD_SALE", True, True),
        ("VIEW_SALES", True, True),
        ("DELETE_SALE", True, False),
        ("ADJUST_STOCK", True, False),
        ("VIEW_STOCK_LEDGER", True, True),
        ("MANAGE_USERS", True, False),
        ("VIEW_COMPANY_FINANCIALS", True, False),
        ("VIEW_OWN_PERFORMANCE", False, True),
    ])
    def test_role_grants(self, code, admin, rep):
        assert role_has_capability("admin", code) is admin
        assert role_has_capability("sales_rep", code) is rep

    def test_unknown_role_has_nothing(self):
        assert capabilities_for_role("owner") == []
        assert not role_has_capability("owner", "VIEW_SALES")

    def test_validate_capability_code(self):
        assert validate_capability_code("DELETE_SALE")
        assert not validate_capability_code("VOID_SALE")

    def test_unknown_code_rejected_at_decoration(self):
        with pytest.raises(ValueError, match="VOID_SALE"):
            require_permission("VOID_SALE")

    def test_commission_rates(self):
        assert commission_rate_for_role("sales_rep") == Decimal("5")
        assert commission_rate_for_role("admin") == Decimal("0")
        assert commission_rate_for_role("owner") == Decimal("0")


# =============================================================================
# SALES REP DENIED ADMIN OPERATIONS (403)
# =============================================================================


class TestSalesRepDenied:
    """Sales rep role cannot perform admin-only operations."""

    def test_cannot_list_users(self, client, rep_headers):
        resp = client.get("/api/admin/users", headers=rep_headers)
        assert resp.status_code == 403

    def test_cannot_update_users(self, client, rep_headers, admin_user):
        resp = client.put(f"/api/admin/users?id={admin_user.id}", json={"is_active": False}, headers=rep_headers)
        assert resp.status_code == 403

    def test_cannot_adjust_inventory(self, client, rep_headers):
        resp = client.post("/api/inventory/adjust", json={"product_id": 1, "quantity_delta": 10}, headers=rep_headers)
        assert resp.status_code == 403


# =============================================================================
# ADMIN USER MANAGEMENT
# =============================================================================


class TestAdminUsers:

    def test_list_users(self, client, admin_headers, rep_user):
        resp = client.get("/api/admin/users", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 2
        assert all("password_hash" not in u for u in resp.json["users"])

    def test_deactivation_locks_out_next_request(self, client, admin_headers, rep_headers, rep_user):
        assert client.get("/api/auth/me", headers=rep_headers).status_code == 200

        resp = client.put(f"/api/admin/users?id={rep_user.id}", json={"is_active": False}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["user"]["is_active"] is False

        locked = client.get("/api/auth/me", headers=rep_headers)
        assert locked.status_code == 401
        assert locked.json == {"message": "Account is inactive"}

    def test_promotion_applies_without_new_token(self, client, admin_headers, rep_headers, rep_user):
        assert client.get("/api/admin/users", headers=rep_headers).status_code == 403

        client.put(f"/api/admin/users?id={rep_user.id}", json={"role": "admin"}, headers=admin_headers)
        assert client.get("/api/admin/users", headers=rep_headers).status_code == 200

    def test_invalid_role(self, client, admin_headers, rep_user):
        resp = client.put(f"/api/admin/users?id={rep_user.id}", json={"role": "owner"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_cannot_deactivate_self(self, client, admin_headers, admin_user):
        resp = client.put(f"/api/admin/users?id={admin_user.id}", json={"is_active": False}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json == {"message": "Cannot deactivate your own account"}

    def test_unknown_user(self, client, admin_headers):
        resp = client.put("/api/admin/users?id=9999", json={"is_active": False}, headers=admin_headers)
        assert resp.status_code == 404
