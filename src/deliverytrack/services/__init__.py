"""Delivery Tracker services.

- store: Delivery persistence with the conditional claim primitive
- lifecycle: State machine, validation and error mapping over the store
- credentials: Driver and administrator accounts (salted password hashes)
- errors: Domain error taxonomy
"""

from deliverytrack.services.credentials import CredentialStore, DriverSummary
from deliverytrack.services.errors import (
    CredentialValidationError,
    DeliveryConflictError,
    DeliveryNotFoundError,
    DeliveryServiceError,
    DeliveryValidationError,
    DuplicateIdentityError,
    IdentityNotFoundError,
    StorageError,
)
from deliverytrack.services.lifecycle import DeliveryLifecycleService, DeliveryPage, PageWindow
from deliverytrack.services.store import (
    ClaimOutcome,
    DeliveryFilter,
    DeliveryStats,
    DeliveryStore,
    FinishOutcome,
)

__all__ = [
    "ClaimOutcome",
    "CredentialStore",
    "CredentialValidationError",
    "DeliveryConflictError",
    "DeliveryFilter",
    "DeliveryLifecycleService",
    "DeliveryNotFoundError",
    "DeliveryPage",
    "DeliveryServiceError",
    "DeliveryStats",
    "DeliveryStore",
    "DeliveryValidationError",
    "DriverSummary",
    "DuplicateIdentityError",
    "FinishOutcome",
    "IdentityNotFoundError",
    "PageWindow",
    "StorageError",
]
