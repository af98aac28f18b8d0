"""FastAPI dependencies resolving the services wired at startup.

The application lifespan stores one DeliveryLifecycleService and one
CredentialStore in app.state; handlers receive them through these
dependencies so tests can override them.
"""

from typing import Annotated

from fastapi import Depends, Request

from deliverytrack.services.credentials import CredentialStore
from deliverytrack.services.lifecycle import DeliveryLifecycleService


def get_lifecycle_service(request: Request) -> DeliveryLifecycleService:
    """Get the delivery lifecycle service."""
    return request.app.state.lifecycle


def get_credential_store(request: Request) -> CredentialStore:
    """Get the credential store."""
    return request.app.state.credentials


LifecycleService = Annotated[DeliveryLifecycleService, Depends(get_lifecycle_service)]
Credentials = Annotated[CredentialStore, Depends(get_credential_store)]
