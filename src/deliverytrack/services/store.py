"""Durable delivery storage with a concurrency-safe claim primitive.

Each store operation is its own unit of work: one session, one transaction,
committed before returning. Rows handed back are detached snapshots.

The claim is a single conditional statement:

    UPDATE deliveries
       SET status = 'collected', driver = :driver, updated_at = :now
     WHERE id = :id AND status = 'pending'

The affected-row count decides the outcome, so two concurrent claimants can
never both observe 'pending' and both succeed. PostgreSQL re-evaluates the
WHERE clause after the first writer commits; SQLite serializes writers on
the database lock.

Usage:
    store = DeliveryStore(create_session_factory(engine))
    delivery_id = await store.create("Jane", "1 Main St")
    outcome = await store.claim_if_pending(delivery_id, "driver-x")
    if outcome is ClaimOutcome.CONFLICT:
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError

from deliverytrack.db.models.base import ActorRole, DeliveryStatus, utc_now
from deliverytrack.db.models.deliveries import Delivery
from deliverytrack.services.errors import DeliveryValidationError, StorageError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from sqlalchemy.sql import Select

logger = logging.getLogger(__name__)


class ClaimOutcome(str, Enum):
    """Result of a conditional claim."""

    SUCCESS = "success"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


class FinishOutcome(str, Enum):
    """Result of a finish attempt."""

    SUCCESS = "success"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class DeliveryFilter:
    """Which deliveries a listing may return.

    The administrator view is "everything, optionally one status". The driver
    view is a disjunction: the open pool of pending work OR anything already
    claimed by that driver. Other drivers' claimed work is never included.

    Attributes:
        role: Whose view this is.
        driver: Driver name (driver view only).
        status: Optional status restriction (administrator view only).
    """

    role: ActorRole
    driver: str | None = None
    status: DeliveryStatus | None = None

    @classmethod
    def for_admin(cls, status: DeliveryStatus | None = None) -> DeliveryFilter:
        """Administrator view, optionally restricted to one status."""
        return cls(role=ActorRole.ADMIN, status=status)

    @classmethod
    def for_driver(cls, driver: str) -> DeliveryFilter:
        """Driver view: pending deliveries plus the driver's own."""
        return cls(role=ActorRole.DRIVER, driver=driver)

    def apply(self, query: Select) -> Select:
        """Add this filter's WHERE clause to a query over Delivery."""
        if self.role is ActorRole.DRIVER:
            return query.where(
                or_(
                    Delivery.status == DeliveryStatus.PENDING,
                    Delivery.driver == self.driver,
                )
            )
        if self.status is not None:
            return query.where(Delivery.status == self.status)
        return query


@dataclass(frozen=True, slots=True)
class DeliveryStats:
    """Aggregate counts over all deliveries."""

    total: int
    pending_count: int
    collected_count: int
    finished_count: int


def _require_text(value: str | None, field: str) -> str:
    """Trim a required text field, rejecting empty values."""
    cleaned = value.strip() if isinstance(value, str) else ""
    if not cleaned:
        raise DeliveryValidationError(f"Field '{field}' is required", field=field)
    return cleaned


class DeliveryStore:
    """Delivery persistence over an async session factory.

    Attributes:
        session_factory: Factory producing one AsyncSession per operation.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def create(self, customer: str, address: str) -> int:
        """Insert a new pending delivery.

        Args:
            customer: Customer name (trimmed, must not be empty).
            address: Delivery address (trimmed, must not be empty).

        Returns:
            The newly assigned delivery id.

        Raises:
            DeliveryValidationError: If either field is empty after trimming.
            StorageError: If the insert fails.
        """
        customer = _require_text(customer, "customer")
        address = _require_text(address, "address")

        now = utc_now()
        delivery = Delivery(
            customer=customer,
            address=address,
            status=DeliveryStatus.PENDING,
            driver=None,
            created_at=now,
            updated_at=now,
        )

        try:
            async with self.session_factory() as session, session.begin():
                session.add(delivery)
                await session.flush()
                delivery_id = delivery.id
        except SQLAlchemyError as e:
            logger.error("Failed to create delivery: %s", str(e))
            raise StorageError(f"Failed to create delivery: {e}") from e

        logger.info("Delivery created", extra={"delivery_id": delivery_id})
        return delivery_id

    async def get(self, delivery_id: int) -> Delivery | None:
        """Fetch a single delivery, or None if it does not exist."""
        try:
            async with self.session_factory() as session:
                return await session.get(Delivery, delivery_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load delivery %s: %s", delivery_id, str(e))
            raise StorageError(f"Failed to load delivery: {e}") from e

    async def list(
        self,
        delivery_filter: DeliveryFilter,
        limit: int,
        offset: int = 0,
    ) -> Sequence[Delivery]:
        """List deliveries, newest first.

        Args:
            delivery_filter: Administrator or driver view.
            limit: Page size.
            offset: Rows to skip.

        Returns:
            Deliveries ordered by creation time descending (id breaks ties).
        """
        query = (
            delivery_filter.apply(select(Delivery))
            .order_by(Delivery.created_at.desc(), Delivery.id.desc())
            .limit(limit)
            .offset(offset)
        )

        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to list deliveries: %s", str(e))
            raise StorageError(f"Failed to list deliveries: {e}") from e

    async def count(self, delivery_filter: DeliveryFilter) -> int:
        """Count the deliveries visible through a filter."""
        query = delivery_filter.apply(select(func.count(Delivery.id)))

        try:
            async with self.session_factory() as session:
                return (await session.execute(query)).scalar_one()
        except SQLAlchemyError as e:
            logger.error("Failed to count deliveries: %s", str(e))
            raise StorageError(f"Failed to count deliveries: {e}") from e

    async def claim_if_pending(self, delivery_id: int, driver: str) -> ClaimOutcome:
        """Atomically move a pending delivery to collected for one driver.

        Across any number of concurrent calls for the same id, at most one
        returns SUCCESS. The rest see CONFLICT (or NOT_FOUND if the delivery
        was deleted).

        Args:
            delivery_id: Delivery to claim.
            driver: Name of the claiming driver (trimmed, must not be empty).

        Returns:
            ClaimOutcome describing what happened.

        Raises:
            DeliveryValidationError: If the driver name is empty.
            StorageError: If the update fails; nothing is written in that case.
        """
        driver = _require_text(driver, "driver")

        stmt = (
            update(Delivery)
            .where(
                Delivery.id == delivery_id,
                Delivery.status == DeliveryStatus.PENDING,
            )
            .values(
                status=DeliveryStatus.COLLECTED,
                driver=driver,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )

        try:
            async with self.session_factory() as session, session.begin():
                result = await session.execute(stmt)
                if result.rowcount == 1:
                    outcome = ClaimOutcome.SUCCESS
                elif await self._exists(session, delivery_id):
                    outcome = ClaimOutcome.CONFLICT
                else:
                    outcome = ClaimOutcome.NOT_FOUND
        except SQLAlchemyError as e:
            logger.error("Failed to claim delivery %s: %s", delivery_id, str(e))
            raise StorageError(f"Failed to claim delivery: {e}") from e

        logger.info(
            "Claim attempted",
            extra={
                "delivery_id": delivery_id,
                "driver": driver,
                "outcome": outcome.value,
            },
        )
        return outcome

    async def finish(self, delivery_id: int, *, require_collected: bool = False) -> FinishOutcome:
        """Move a delivery to finished.

        Without require_collected, any existing delivery is marked finished
        and its updated_at refreshed. With require_collected, only a collected
        delivery moves; an already finished one is reported as SUCCESS without
        being touched, and a pending one is a CONFLICT.

        Args:
            delivery_id: Delivery to finish.
            require_collected: Enforce the collected -> finished edge.

        Returns:
            FinishOutcome describing what happened.

        Raises:
            StorageError: If the update fails.
        """
        conditions = [Delivery.id == delivery_id]
        if require_collected:
            conditions.append(Delivery.status == DeliveryStatus.COLLECTED)

        stmt = (
            update(Delivery)
            .where(*conditions)
            .values(status=DeliveryStatus.FINISHED, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )

        try:
            async with self.session_factory() as session, session.begin():
                result = await session.execute(stmt)
                if result.rowcount == 1:
                    outcome = FinishOutcome.SUCCESS
                elif not require_collected:
                    outcome = FinishOutcome.NOT_FOUND
                else:
                    current = await session.scalar(
                        select(Delivery.status).where(Delivery.id == delivery_id)
                    )
                    if current is None:
                        outcome = FinishOutcome.NOT_FOUND
                    elif current is DeliveryStatus.FINISHED:
                        outcome = FinishOutcome.SUCCESS
                    else:
                        outcome = FinishOutcome.CONFLICT
        except SQLAlchemyError as e:
            logger.error("Failed to finish delivery %s: %s", delivery_id, str(e))
            raise StorageError(f"Failed to finish delivery: {e}") from e

        logger.info(
            "Finish attempted",
            extra={"delivery_id": delivery_id, "outcome": outcome.value},
        )
        return outcome

    async def delete(self, delivery_id: int) -> bool:
        """Delete a delivery in any state.

        Returns:
            True if a row was deleted, False if the id did not exist.
        """
        stmt = delete(Delivery).where(Delivery.id == delivery_id)

        try:
            async with self.session_factory() as session, session.begin():
                result = await session.execute(stmt)
                deleted = result.rowcount == 1
        except SQLAlchemyError as e:
            logger.error("Failed to delete delivery %s: %s", delivery_id, str(e))
            raise StorageError(f"Failed to delete delivery: {e}") from e

        if deleted:
            logger.info("Delivery deleted", extra={"delivery_id": delivery_id})
        return deleted

    async def stats(self) -> DeliveryStats:
        """Count deliveries in total and per status."""

        def _count_status(status: DeliveryStatus):
            return func.coalesce(func.sum(case((Delivery.status == status, 1), else_=0)), 0)

        query = select(
            func.count(Delivery.id),
            _count_status(DeliveryStatus.PENDING),
            _count_status(DeliveryStatus.COLLECTED),
            _count_status(DeliveryStatus.FINISHED),
        )

        try:
            async with self.session_factory() as session:
                total, pending, collected, finished = (await session.execute(query)).one()
        except SQLAlchemyError as e:
            logger.error("Failed to compute delivery stats: %s", str(e))
            raise StorageError(f"Failed to compute delivery stats: {e}") from e

        return DeliveryStats(
            total=int(total),
            pending_count=int(pending),
            collected_count=int(collected),
            finished_count=int(finished),
        )

    @staticmethod
    async def _exists(session: AsyncSession, delivery_id: int) -> bool:
        found = await session.scalar(select(Delivery.id).where(Delivery.id == delivery_id))
        return found is not None
