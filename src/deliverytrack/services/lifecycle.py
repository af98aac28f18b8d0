"""Delivery lifecycle state machine service.

This module implements the delivery state machine on top of DeliveryStore:
- Input validation before any storage access
- Monotonic transitions: pending -> collected -> finished
- At-most-one-winner claims, reported as DeliveryConflictError to the losers
- Dual-mode listing (administrator sees all, drivers see the pending pool
  plus their own work)
- Configurable finish policy (permissive or strict)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from deliverytrack.core.config import FinishPolicy
from deliverytrack.db.models.base import ActorRole, DeliveryStatus
from deliverytrack.services.errors import (
    DeliveryConflictError,
    DeliveryNotFoundError,
    DeliveryValidationError,
)
from deliverytrack.services.store import (
    ClaimOutcome,
    DeliveryFilter,
    DeliveryStats,
    DeliveryStore,
    FinishOutcome,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from deliverytrack.db.models.deliveries import Delivery

logger = logging.getLogger(__name__)


DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Status filter value meaning "no restriction"
ALL_STATUSES = "all"


@dataclass(frozen=True, slots=True)
class PageWindow:
    """A clamped page request.

    Attributes:
        page: 1-based page number.
        limit: Page size.
        offset: Rows skipped before this page.
    """

    page: int
    limit: int
    offset: int

    @classmethod
    def from_request(
        cls,
        page: int | str | None,
        page_size: int | str | None,
        *,
        default_size: int = DEFAULT_PAGE_SIZE,
        max_size: int = MAX_PAGE_SIZE,
    ) -> PageWindow:
        """Clamp raw paging input into a usable window.

        Query-string values are accepted as text. Missing, zero or
        non-numeric values fall back to the defaults; out-of-range values
        are pulled back into [1, max_size].
        """
        page = max(1, _leading_int(page) or 1)
        limit = min(max_size, max(1, _leading_int(page_size) or default_size))
        return cls(page=page, limit=limit, offset=(page - 1) * limit)


_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _leading_int(value: int | str | None) -> int | None:
    """Read the integer a paging value starts with ("12abc" -> 12, "abc" -> None)."""
    if value is None or isinstance(value, int):
        return value
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else None


@dataclass(frozen=True, slots=True)
class DeliveryPage:
    """One page of a delivery listing."""

    items: Sequence[Delivery]
    page: int
    limit: int
    total: int


def parse_identifier(value: Any) -> int:
    """Validate a record identifier (delivery or driver id).

    Accepts positive integers and strings of decimal digits.

    Raises:
        DeliveryValidationError: If the value is not a valid identifier.
    """
    if isinstance(value, bool):
        raise DeliveryValidationError("Invalid id", field="id")
    if isinstance(value, int):
        delivery_id = value
    elif isinstance(value, str) and value.strip().isdigit():
        delivery_id = int(value.strip())
    else:
        raise DeliveryValidationError("Invalid id", field="id")
    if delivery_id < 1:
        raise DeliveryValidationError("Invalid id", field="id")
    return delivery_id


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


class DeliveryLifecycleService:
    """Service for managing delivery state transitions.

    The state machine follows this flow:
        pending --claim(driver)--> collected --finish--> finished

    finished is terminal. Deletion is an administrative override that removes
    a delivery from any state.

    Example:
        service = DeliveryLifecycleService(store)
        delivery_id = await service.create_delivery("Jane", "1 Main St")
        try:
            await service.claim_delivery(delivery_id, "driver-x")
        except DeliveryConflictError:
            # someone else got there first; refresh the list
            ...
    """

    def __init__(
        self,
        store: DeliveryStore,
        *,
        finish_policy: FinishPolicy = FinishPolicy.PERMISSIVE,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        """Initialize the lifecycle service.

        Args:
            store: Delivery store handle.
            finish_policy: Which states may be finished.
            default_page_size: Page size when the caller sends none.
            max_page_size: Upper bound for the page size.
        """
        self._store = store
        self.finish_policy = finish_policy
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    async def create_delivery(self, customer: str, address: str) -> int:
        """Create a pending delivery.

        Returns:
            The new delivery id.

        Raises:
            DeliveryValidationError: If customer or address is empty.
        """
        customer = _clean(customer)
        address = _clean(address)
        if not customer:
            raise DeliveryValidationError("Field 'customer' is required", field="customer")
        if not address:
            raise DeliveryValidationError("Field 'address' is required", field="address")

        return await self._store.create(customer, address)

    async def get_delivery(self, delivery_id: Any) -> Delivery:
        """Get a delivery by id.

        Raises:
            DeliveryValidationError: If the id is malformed.
            DeliveryNotFoundError: If the delivery does not exist.
        """
        delivery_id = parse_identifier(delivery_id)
        delivery = await self._store.get(delivery_id)
        if delivery is None:
            raise DeliveryNotFoundError(delivery_id)
        return delivery

    async def claim_delivery(self, delivery_id: Any, driver: str) -> None:
        """Claim a pending delivery for a driver.

        Args:
            delivery_id: Delivery to claim.
            driver: Claiming driver's name.

        Raises:
            DeliveryValidationError: If the driver is empty or the id malformed.
            DeliveryNotFoundError: If the delivery does not exist.
            DeliveryConflictError: If the delivery is no longer pending.
        """
        driver = _clean(driver)
        if not driver:
            raise DeliveryValidationError("Field 'driver' is required", field="driver")
        delivery_id = parse_identifier(delivery_id)

        outcome = await self._store.claim_if_pending(delivery_id, driver)

        if outcome is ClaimOutcome.NOT_FOUND:
            raise DeliveryNotFoundError(delivery_id)
        if outcome is ClaimOutcome.CONFLICT:
            logger.info(
                "Claim lost: delivery already taken",
                extra={"delivery_id": delivery_id, "driver": driver},
            )
            raise DeliveryConflictError(delivery_id)

    async def finish_delivery(self, delivery_id: Any) -> None:
        """Mark a delivery as finished according to the finish policy.

        Finishing an already finished delivery succeeds under both policies.

        Raises:
            DeliveryValidationError: If the id is malformed.
            DeliveryNotFoundError: If the delivery does not exist.
            DeliveryConflictError: Strict policy only, if the delivery was
                never collected.
        """
        delivery_id = parse_identifier(delivery_id)
        outcome = await self._store.finish(
            delivery_id,
            require_collected=self.finish_policy is FinishPolicy.STRICT,
        )

        if outcome is FinishOutcome.NOT_FOUND:
            raise DeliveryNotFoundError(delivery_id)
        if outcome is FinishOutcome.CONFLICT:
            raise DeliveryConflictError(
                delivery_id,
                f"Delivery {delivery_id} must be collected before it can be finished",
            )

    async def delete_delivery(self, delivery_id: Any) -> None:
        """Delete a delivery in any state.

        Raises:
            DeliveryValidationError: If the id is malformed.
            DeliveryNotFoundError: If the delivery does not exist.
        """
        delivery_id = parse_identifier(delivery_id)
        if not await self._store.delete(delivery_id):
            raise DeliveryNotFoundError(delivery_id)

    def build_filter(
        self,
        actor_role: ActorRole | str | None,
        driver_name: str | None,
        status_filter: DeliveryStatus | str | None = None,
    ) -> DeliveryFilter:
        """Resolve the caller's identity into a listing filter.

        A caller identifies either as the administrator role or as a named
        driver. A driver name without a role means the driver view. The status
        filter applies to the administrator view only; "all" means none.

        Raises:
            DeliveryValidationError: If no usable identity is given, or the
                role or status is unknown.
        """
        driver_name = _clean(driver_name)

        if isinstance(actor_role, str):
            actor_role = actor_role.strip().lower() or None

        if actor_role is None:
            if not driver_name:
                raise DeliveryValidationError(
                    "Caller must identify as the administrator or a driver",
                    field="driver",
                )
            role = ActorRole.DRIVER
        else:
            try:
                role = ActorRole(actor_role)
            except ValueError as e:
                raise DeliveryValidationError(
                    f"Unknown role: {actor_role}", field="role"
                ) from e

        if role is ActorRole.DRIVER:
            if not driver_name:
                raise DeliveryValidationError(
                    "Field 'driver' is required for the driver view", field="driver"
                )
            return DeliveryFilter.for_driver(driver_name)

        return DeliveryFilter.for_admin(self._parse_status(status_filter))

    async def list_deliveries(
        self,
        actor_role: ActorRole | str | None,
        driver_name: str | None = None,
        status_filter: DeliveryStatus | str | None = None,
        page: int | str | None = None,
        page_size: int | str | None = None,
    ) -> DeliveryPage:
        """List one page of deliveries visible to the caller.

        Returns:
            DeliveryPage with the items, the clamped paging and the total.
        """
        delivery_filter = self.build_filter(actor_role, driver_name, status_filter)
        window = PageWindow.from_request(
            page,
            page_size,
            default_size=self.default_page_size,
            max_size=self.max_page_size,
        )

        items = await self._store.list(delivery_filter, window.limit, window.offset)
        total = await self._store.count(delivery_filter)

        return DeliveryPage(items=items, page=window.page, limit=window.limit, total=total)

    async def get_stats(self) -> DeliveryStats:
        """Aggregate counts by status."""
        return await self._store.stats()

    @staticmethod
    def _parse_status(status_filter: DeliveryStatus | str | None) -> DeliveryStatus | None:
        if status_filter is None or isinstance(status_filter, DeliveryStatus):
            return status_filter
        value = status_filter.strip().lower()
        if not value or value == ALL_STATUSES:
            return None
        try:
            return DeliveryStatus(value)
        except ValueError as e:
            raise DeliveryValidationError(f"Invalid status: {status_filter}", field="status") from e
