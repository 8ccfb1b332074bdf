"""
Capability and role tables.

WHY: Every authorization decision is a lookup in ROLE_CAPABILITIES keyed by
the caller's role. Routes declare the capability they need with
@require_permission; services that enforce rules themselves call
role_has_capability. Nothing else compares role names.
"""

from decimal import Decimal

# =============================================================================
# ROLES
# =============================================================================

ROLE_ADMIN = "admin"
ROLE_SALES_REP = "sales_rep"

ROLES = (ROLE_ADMIN, ROLE_SALES_REP)
DEFAULT_ROLE = ROLE_SALES_REP


# =============================================================================
# CAPABILITY DEFINITIONS
# =============================================================================

# Each capability is defined as: (code, name, description)
CAPABILITY_DEFINITIONS = [
    (
        "MANAGE_CATALOG",
        "Manage Catalog",
        "Create, edit and delete products and categories",
    ),
    (
        "MANAGE_CUSTOMERS",
        "Manage Customers",
        "Create, edit and delete customers",
    ),
    (
        "RECORD_SALE",
        "Record Sale",
        "Record sales and edit their payment details",
    ),
    (
        "VIEW_SALES",
        "View Sales",
        "List sales and view sale details",
    ),
    (
        "DELETE_SALE",
        "Delete Sale",
        "Delete sales, reversing their stock and customer effects",
    ),
    (
        "ADJUST_STOCK",
        "Adjust Stock",
        "Post manual adjustments and restocks to the stock ledger",
    ),
    (
        "VIEW_STOCK_LEDGER",
        "View Stock Ledger",
        "View stock movements and reconciliation",
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "List users, change roles and deactivate accounts",
    ),
    (
        "VIEW_COMPANY_FINANCIALS",
        "View Company Financials",
        "See company-wide sales rep performance in analytics",
    ),
    (
        "VIEW_OWN_PERFORMANCE",
        "View Own Performance",
        "See only one's own sales performance in analytics",
    ),
]


# =============================================================================
# ROLE CAPABILITY MAPPINGS
# =============================================================================

ROLE_CAPABILITIES = {
    ROLE_ADMIN: frozenset({
        "MANAGE_CATALOG",
        "MANAGE_CUSTOMERS",
        "RECORD_SALE",
        "VIEW_SALES",
        "DELETE_SALE",
        "ADJUST_STOCK",
        "VIEW_STOCK_LEDGER",
        "MANAGE_USERS",
        "VIEW_COMPANY_FINANCIALS",
    }),

    ROLE_SALES_REP: frozenset({
        "MANAGE_CATALOG",
        "MANAGE_CUSTOMERS",
        "RECORD_SALE",
        "VIEW_SALES",
        "VIEW_STOCK_LEDGER",
        "VIEW_OWN_PERFORMANCE",
    }),
}

# Percent of sale total credited to the recording user, fixed at sale time
COMMISSION_RATES = {
    ROLE_ADMIN: Decimal("0"),
    ROLE_SALES_REP: Decimal("5"),
}


# =============================================================================
# HELPERS
# =============================================================================

def get_all_capability_codes():
    """Get list of all capability codes."""
    return [cap[0] for cap in CAPABILITY_DEFINITIONS]


def validate_capability_code(code):
    """Check if a capability code is valid."""
    return code in get_all_capability_codes()


def role_has_capability(role: str, code: str) -> bool:
    return code in ROLE_CAPABILITIES.get(role, frozenset())


def capabilities_for_role(role: str) -> list[str]:
    return sorted(ROLE_CAPABILITIES.get(role, frozenset()))


def commission_rate_for_role(role: str) -> Decimal:
    return COMMISSION_RATES.get(role, Decimal("0"))
