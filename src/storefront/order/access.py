"""Authorization guards for order operations.

The caller's identity and role are established upstream (the API trusts
the authenticated user id and role it is given). These guards only decide
whether that caller may touch a given order.
"""

from enum import Enum

from storefront.exceptions import AuthorizationError


class Role(Enum):
    CUSTOMER = "user"
    ADMIN = "admin"
    SYSTEM = "system"  # Internal compensation, never accepted from the API


def is_admin(actor_role):
    return actor_role in (Role.ADMIN.value, Role.SYSTEM.value)


def ensure_owner_or_admin(order, actor_id, actor_role):
    """Pay, cancel and read: the customer who placed the order, or an admin."""
    if is_admin(actor_role):
        return
    if actor_id is None or str(order.customer_id) != str(actor_id):
        raise AuthorizationError("Only the customer who placed the order or an admin may do this")


def ensure_admin(actor_role):
    """Ship and deliver: admins only."""
    if not is_admin(actor_role):
        raise AuthorizationError("Only an admin may do this")
