"""Delivery API router.

Create, list, claim, finish and delete deliveries, plus status counts.
Domain errors raised by the lifecycle service are rendered by the
exception handlers in deliverytrack.api.middleware.errors:
400 validation_error, 404 not_found, 409 conflict.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status

from deliverytrack.api.dependencies import LifecycleService  # noqa: TC001
from deliverytrack.api.schemas.deliveries import (
    ClaimRequest,
    CreateDeliveryRequest,
    CreateDeliveryResponse,
    DeliveryListResponse,
    DeliveryResponse,
    OperationResponse,
    StatsResponse,
)

router = APIRouter(
    tags=["deliveries"],
    responses={
        400: {"description": "Missing or malformed input"},
        404: {"description": "Delivery not found"},
    },
)


@router.get(
    "/deliveries",
    response_model=DeliveryListResponse,
    summary="List deliveries visible to the caller",
    description=(
        "role=admin lists every delivery, optionally filtered by status. "
        "A driver name lists pending deliveries plus that driver's own."
    ),
)
async def list_deliveries(
    service: LifecycleService,
    role: Annotated[str | None, Query(description="admin or driver")] = None,
    driver: Annotated[str | None, Query(description="Driver name")] = None,
    status_filter: Annotated[
        str | None,
        Query(alias="status", description="pending, collected, finished or all (admin only)"),
    ] = None,
    page: Annotated[str | None, Query(description="1-based page number")] = None,
    limit: Annotated[str | None, Query(description="Page size (max 100)")] = None,
) -> DeliveryListResponse:
    """List one page of deliveries, newest first.

    Paging values are read leniently: anything that does not start with a
    number falls back to the defaults.
    """
    result = await service.list_deliveries(
        actor_role=role,
        driver_name=driver,
        status_filter=status_filter,
        page=page,
        page_size=limit,
    )
    return DeliveryListResponse(
        items=[DeliveryResponse.model_validate(d) for d in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
    )


@router.post(
    "/deliveries",
    response_model=CreateDeliveryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a pending delivery",
)
async def create_delivery(
    request: CreateDeliveryRequest,
    service: LifecycleService,
) -> CreateDeliveryResponse:
    """Create a delivery in pending state."""
    delivery_id = await service.create_delivery(request.customer, request.address)
    return CreateDeliveryResponse(id=delivery_id)


@router.get(
    "/deliveries/{delivery_id}",
    response_model=DeliveryResponse,
    summary="Get one delivery",
)
async def get_delivery(delivery_id: str, service: LifecycleService) -> DeliveryResponse:
    """Get a delivery by id."""
    delivery = await service.get_delivery(delivery_id)
    return DeliveryResponse.model_validate(delivery)


@router.put(
    "/deliveries/{delivery_id}/claim",
    response_model=OperationResponse,
    summary="Claim a pending delivery",
    responses={409: {"description": "Already claimed by another driver"}},
)
async def claim_delivery(
    delivery_id: str,
    request: ClaimRequest,
    service: LifecycleService,
) -> OperationResponse:
    """Claim a pending delivery for a driver.

    Only one driver can win; everyone else receives 409 and should refresh
    the list.
    """
    await service.claim_delivery(delivery_id, request.driver)
    return OperationResponse()


@router.put(
    "/deliveries/{delivery_id}/finish",
    response_model=OperationResponse,
    summary="Finish a delivery",
)
async def finish_delivery(delivery_id: str, service: LifecycleService) -> OperationResponse:
    """Mark a delivery as finished."""
    await service.finish_delivery(delivery_id)
    return OperationResponse()


@router.delete(
    "/deliveries/{delivery_id}",
    response_model=OperationResponse,
    summary="Delete a delivery",
)
async def delete_delivery(delivery_id: str, service: LifecycleService) -> OperationResponse:
    """Delete a delivery in any state."""
    await service.delete_delivery(delivery_id)
    return OperationResponse()


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Delivery counts by status",
)
async def get_stats(service: LifecycleService) -> StatsResponse:
    """Counts for the administrator dashboard."""
    stats = await service.get_stats()
    return StatsResponse.model_validate(stats)
