"""Storefront error kinds.

Builds on Protean's exception hierarchy so that the generic handlers
(``ValidationError`` -> 400, ``ObjectNotFoundError`` -> 404) keep working,
while the HTTP layer can still tell the specific kinds apart.

Every kind carries a ``messages`` dict of human-readable reasons.
"""

from protean.exceptions import InvalidOperationError, ProteanException, ValidationError


class InsufficientStockError(ValidationError):
    """Requested quantity exceeds the product's stock at the moment of check."""

    def __init__(self, product_id, requested, available, product_name=None):
        self.product_id = str(product_id)
        self.requested = requested
        self.available = available
        self.product_name = product_name

        label = product_name or self.product_id
        super().__init__(
            {"quantity": [f"Insufficient stock for {label}: {available} available, {requested} requested"]}
        )


class EmptyCartError(ValidationError):
    """Checkout attempted on a cart without items."""

    def __init__(self, customer_id=None):
        self.customer_id = customer_id
        super().__init__({"cart": ["Cannot place an order from an empty cart"]})


class InvalidStateTransitionError(InvalidOperationError):
    """The order's current status does not allow the requested transition."""

    def __init__(self, current_status, action, reason=None):
        self.current_status = current_status
        self.action = action
        message = reason or f"Cannot {action} an order in {current_status} state"
        super().__init__(message)
        self.messages = {"status": [message]}


class AuthorizationError(ProteanException):
    """The caller is neither the owner nor holds the role required."""

    def __init__(self, reason="Not authorized to perform this action"):
        super().__init__(reason)
        self.messages = {"_entity": [reason]}


class StorageError(ProteanException):
    """Opaque wrapper around an unexpected persistence failure."""

    def __init__(self, reason="The operation could not be completed"):
        super().__init__(reason)
        self.messages = {"_entity": [reason]}
