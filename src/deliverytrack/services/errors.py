"""Domain error taxonomy for delivery and credential operations.

- DeliveryValidationError: malformed or missing input, raised before any
  storage access.
- DeliveryNotFoundError: the referenced id has no record.
- DeliveryConflictError: a claim (or a strict finish) targeted a delivery
  that is no longer in the required state. Expected and user-facing.
- StorageError: the underlying persistence layer failed.
"""

from __future__ import annotations

from typing import Any


class DeliveryServiceError(Exception):
    """Base exception for delivery tracker service errors."""

    def __init__(self, message: str, detail: dict[str, Any] | None = None) -> None:
        self.message = message
        self.detail = detail
        super().__init__(message)


class DeliveryValidationError(DeliveryServiceError):
    """Raised when required input is missing or malformed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message, detail={"field": field} if field else None)


class DeliveryNotFoundError(DeliveryServiceError):
    """Raised when a delivery is not found."""

    def __init__(self, delivery_id: int) -> None:
        self.delivery_id = delivery_id
        super().__init__(f"Delivery {delivery_id} not found")


class DeliveryConflictError(DeliveryServiceError):
    """Raised when a delivery is not in a state that allows the operation."""

    def __init__(self, delivery_id: int, message: str | None = None) -> None:
        self.delivery_id = delivery_id
        super().__init__(
            message or f"Delivery {delivery_id} has already been claimed by another driver"
        )


class StorageError(DeliveryServiceError):
    """Raised when the database fails underneath an operation."""


class CredentialValidationError(DeliveryServiceError):
    """Raised when a login or registration request is incomplete or too weak."""


class DuplicateIdentityError(DeliveryServiceError):
    """Raised when registering a driver name that is already taken."""

    def __init__(self, identity: str) -> None:
        self.identity = identity
        super().__init__(f"Name already registered: {identity}")


class IdentityNotFoundError(DeliveryServiceError):
    """Raised when deleting an account that does not exist."""

    def __init__(self, account_id: int) -> None:
        self.account_id = account_id
        super().__init__(f"Driver {account_id} not found")
