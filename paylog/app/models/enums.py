"""
User roles enumeration.

Defines the role types for the PayLog invoice management system.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        SUPER_ADMIN: Full system access, manages other admins
        ADMIN: Approves invoices, payments and master data
        STANDARD_USER: Records invoices and payments (default role)
    """
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    STANDARD_USER = "STANDARD_USER"


ADMIN_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN)


def is_admin_role(role: str) -> bool:
    """True for roles that may approve and administer."""
    return role in {r.value for r in ADMIN_ROLES}
