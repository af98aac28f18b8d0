"""SQLAlchemy ORM models for Delivery Tracker.

- base: Common metadata, type annotations and enums
- deliveries: Delivery lifecycle entity
- accounts: Drivers and administrators
"""

from deliverytrack.db.models.accounts import AdminUser, Driver
from deliverytrack.db.models.base import ActorRole, Base, DeliveryStatus, metadata
from deliverytrack.db.models.deliveries import Delivery

__all__ = [
    "ActorRole",
    "AdminUser",
    "Base",
    "Delivery",
    "DeliveryStatus",
    "Driver",
    "metadata",
]
