"""Authentication and driver management router.

Login endpoints only verify credentials; the service keeps no session.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, status

from deliverytrack.api.dependencies import Credentials  # noqa: TC001
from deliverytrack.api.middleware.errors import AuthenticationError
from deliverytrack.api.schemas.auth import (
    AdminLoginRequest,
    DriverLoginRequest,
    DriverResponse,
    LoginResponse,
    RegisterDriverRequest,
    RegisterResponse,
)
from deliverytrack.api.schemas.deliveries import OperationResponse
from deliverytrack.services.lifecycle import parse_identifier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/auth/login", response_model=LoginResponse, summary="Driver login")
async def login(request: DriverLoginRequest, credentials: Credentials) -> LoginResponse:
    """Verify a driver's name and password."""
    if not await credentials.verify_driver(request.name, request.password):
        logger.info("Driver login failed")
        raise AuthenticationError()
    return LoginResponse(name=request.name.strip())


@router.post("/auth/login-admin", response_model=LoginResponse, summary="Administrator login")
async def login_admin(request: AdminLoginRequest, credentials: Credentials) -> LoginResponse:
    """Verify the administrator's username and password."""
    if not await credentials.verify_admin(request.username, request.password):
        logger.warning("Administrator login failed")
        raise AuthenticationError()
    return LoginResponse(name=request.username.strip())


@router.post(
    "/auth/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a driver",
    responses={409: {"description": "Name already registered"}},
)
async def register(request: RegisterDriverRequest, credentials: Credentials) -> RegisterResponse:
    """Register a new driver account."""
    driver_id = await credentials.register_driver(request.name, request.password)
    return RegisterResponse(id=driver_id)


@router.get("/drivers", response_model=list[DriverResponse], summary="List drivers")
async def list_drivers(credentials: Credentials) -> list[DriverResponse]:
    """List registered drivers ordered by name."""
    return [DriverResponse.model_validate(d) for d in await credentials.list_drivers()]


@router.delete("/drivers/{driver_id}", response_model=OperationResponse, summary="Delete a driver")
async def delete_driver(driver_id: str, credentials: Credentials) -> OperationResponse:
    """Delete a driver account."""
    await credentials.delete_driver(parse_identifier(driver_id))
    return OperationResponse()
