"""Pydantic schemas for the delivery endpoints.

Required text fields are declared optional here on purpose: emptiness and
absence are both reported by the lifecycle service as a 400
validation_error, the same way as a blank string. Wrong types and
over-long values are rejected here and rendered as the same 400 by
request_validation_handler.
"""

from __future__ import annotations

# NOTE: datetime must remain at runtime for Pydantic validation
from datetime import datetime  # noqa: TC003

from pydantic import BaseModel, ConfigDict, Field, field_validator

from deliverytrack.db.models.base import DeliveryStatus


class CreateDeliveryRequest(BaseModel):
    """Request schema for creating a pending delivery."""

    customer: str | None = Field(None, max_length=255, description="Customer name")
    address: str | None = Field(None, max_length=1000, description="Delivery address")

    model_config = ConfigDict(extra="ignore")


class CreateDeliveryResponse(BaseModel):
    """Response schema for a created delivery."""

    id: int = Field(..., description="Assigned delivery id")
    success: bool = Field(True, description="Always true on success")


class ClaimRequest(BaseModel):
    """Request schema for claiming a pending delivery."""

    driver: str | None = Field(None, max_length=100, description="Claiming driver's name")

    model_config = ConfigDict(extra="ignore")


class OperationResponse(BaseModel):
    """Acknowledgement for state-changing operations."""

    success: bool = Field(True, description="Always true on success")


class DeliveryResponse(BaseModel):
    """A delivery as exposed over the API."""

    id: int = Field(..., description="Delivery id")
    customer: str = Field(..., description="Customer name")
    address: str = Field(..., description="Delivery address")
    status: str = Field(..., description="pending, collected or finished")
    driver: str | None = Field(None, description="Driver who claimed the delivery")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last status change")

    model_config = ConfigDict(from_attributes=True)

    @field_validator("status", mode="before")
    @classmethod
    def status_value(cls, v: object) -> object:
        """Expose the enum's value rather than its name."""
        return v.value if isinstance(v, DeliveryStatus) else v


class DeliveryListResponse(BaseModel):
    """One page of deliveries."""

    items: list[DeliveryResponse] = Field(..., description="Deliveries on this page")
    total: int = Field(..., description="Total number of visible deliveries")
    page: int = Field(1, description="1-based page number")
    limit: int = Field(20, description="Page size")


class StatsResponse(BaseModel):
    """Delivery counts by status."""

    total: int = Field(..., description="All deliveries")
    pending_count: int = Field(..., description="Deliveries waiting for a driver")
    collected_count: int = Field(..., description="Deliveries claimed by a driver")
    finished_count: int = Field(..., description="Deliveries completed")

    model_config = ConfigDict(from_attributes=True)
