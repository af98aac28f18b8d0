"""Pydantic schemas for the Delivery Tracker API."""

from deliverytrack.api.schemas.auth import (
    AdminLoginRequest,
    DriverLoginRequest,
    DriverResponse,
    LoginResponse,
    RegisterDriverRequest,
    RegisterResponse,
)
from deliverytrack.api.schemas.deliveries import (
    ClaimRequest,
    CreateDeliveryRequest,
    CreateDeliveryResponse,
    DeliveryListResponse,
    DeliveryResponse,
    OperationResponse,
    StatsResponse,
)

__all__ = [
    "AdminLoginRequest",
    "ClaimRequest",
    "CreateDeliveryRequest",
    "CreateDeliveryResponse",
    "DeliveryListResponse",
    "DeliveryResponse",
    "DriverLoginRequest",
    "DriverResponse",
    "LoginResponse",
    "OperationResponse",
    "RegisterDriverRequest",
    "RegisterResponse",
    "StatsResponse",
]
