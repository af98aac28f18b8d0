"""Delivery Tracker API routers.

- deliveries: Delivery lifecycle endpoints and stats
- auth: Login, registration and driver management
"""

from deliverytrack.api.routers.auth import router as auth_router
from deliverytrack.api.routers.deliveries import router as deliveries_router

__all__ = [
    "auth_router",
    "deliveries_router",
]
