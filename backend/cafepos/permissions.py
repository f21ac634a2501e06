"""
Permission System Constants and Definitions

WHY: Centralized permission definitions ensure consistency across the application.
All permission codes and role mappings defined here.

DESIGN PRINCIPLES:
- Permissions are granular (one action per permission)
- Roles are a closed set (admin, manager, cashier) stored on the user
- Default role mappings follow principle of least privilege
"""

# =============================================================================
# PERMISSION CATEGORIES
# =============================================================================

class PermissionCategory:
    """Permission categories for organization."""
    ORDERS = "ORDERS"
    REPORTS = "REPORTS"
    CATALOG = "CATALOG"
    USERS = "USERS"


# =============================================================================
# PERMISSION DEFINITIONS
# =============================================================================

# Each permission is defined as: (code, name, description, category)
PERMISSION_DEFINITIONS = [
    # ORDER PERMISSIONS
    (
        "PLACE_ORDER",
        "Place Order",
        "Ring up orders and decrement product stock",
        PermissionCategory.ORDERS
    ),
    (
        "VIEW_ALL_ORDERS",
        "View All Orders",
        "List and open orders placed by any user",
        PermissionCategory.ORDERS
    ),
    (
        "EDIT_ORDERS",
        "Edit Orders",
        "Correct items, totals and status of placed orders",
        PermissionCategory.ORDERS
    ),
    (
        "DELETE_ORDERS",
        "Delete Orders",
        "Hard-delete orders (stock is not restored)",
        PermissionCategory.ORDERS
    ),

    # REPORT PERMISSIONS
    (
        "VIEW_REPORTS",
        "View Sales Reports",
        "Daily, product and employee sales reports",
        PermissionCategory.REPORTS
    ),

    # CATALOG PERMISSIONS
    (
        "VIEW_CATALOG",
        "View Catalog",
        "View products, stock and ingredients",
        PermissionCategory.CATALOG
    ),
    (
        "MANAGE_CATALOG",
        "Manage Catalog",
        "Create, edit and delete products and ingredients",
        PermissionCategory.CATALOG
    ),

    # USER PERMISSIONS
    (
        "VIEW_USERS",
        "View Users",
        "List staff accounts",
        PermissionCategory.USERS
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create staff accounts",
        PermissionCategory.USERS
    ),
]


# =============================================================================
# DEFAULT ROLE PERMISSIONS
# =============================================================================

DEFAULT_ROLE_PERMISSIONS = {
    "admin": [
        # Admin: everything
        "PLACE_ORDER",
        "VIEW_ALL_ORDERS",
        "EDIT_ORDERS",
        "DELETE_ORDERS",
        "VIEW_REPORTS",
        "VIEW_CATALOG",
        "MANAGE_CATALOG",
        "VIEW_USERS",
        "MANAGE_USERS",
    ],

    "manager": [
        # Manager: order corrections, catalog and reports
        "PLACE_ORDER",
        "VIEW_ALL_ORDERS",
        "EDIT_ORDERS",
        "DELETE_ORDERS",
        "VIEW_REPORTS",
        "VIEW_CATALOG",
        "MANAGE_CATALOG",
        "VIEW_USERS",
    ],

    "cashier": [
        # Cashier: POS operations only
        "PLACE_ORDER",
        "VIEW_CATALOG",  # Need to see what's in stock
    ],
}


# =============================================================================
# PERMISSION HELPERS
# =============================================================================

def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_role_permissions(role):
    """Permission codes granted to a role (empty for unknown roles)."""
    return set(DEFAULT_ROLE_PERMISSIONS.get(role, []))


def role_has_permission(role, code):
    return code in get_role_permissions(role)
