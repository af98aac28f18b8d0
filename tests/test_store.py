"""Tests for the delivery store.

Tests cover:
- Creating deliveries and reading them back
- Conditional claim outcomes, including concurrent claimants
- Finish with and without the collected requirement
- Administrator and driver listing filters, ordering and counts
- Aggregate statistics
- Wrapping of database failures in StorageError
"""

import asyncio
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from deliverytrack.db.models.base import ActorRole, DeliveryStatus
from deliverytrack.services.errors import DeliveryValidationError, StorageError
from deliverytrack.services.store import (
    ClaimOutcome,
    DeliveryFilter,
    DeliveryStore,
    FinishOutcome,
)


class TestCreate:
    """Tests for create and get."""

    @pytest.mark.asyncio
    async def test_create_returns_increasing_ids(self, store):
        """Each delivery gets a new positive id."""
        first = await store.create("Jane", "1 Main St")
        second = await store.create("John", "2 Side St")

        assert first >= 1
        assert second > first

    @pytest.mark.asyncio
    async def test_created_delivery_is_pending_without_driver(self, store):
        """A new delivery starts pending with no driver."""
        delivery_id = await store.create("  Jane  ", " 1 Main St ")

        delivery = await store.get(delivery_id)

        assert delivery is not None
        assert delivery.customer == "Jane"
        assert delivery.address == "1 Main St"
        assert delivery.status is DeliveryStatus.PENDING
        assert delivery.driver is None
        assert delivery.created_at is not None
        assert delivery.updated_at is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("customer", "address"), [("", "1 Main St"), ("Jane", "   ")])
    async def test_create_rejects_blank_fields(self, store, customer, address):
        """Blank customer or address is a validation error and nothing is stored."""
        with pytest.raises(DeliveryValidationError):
            await store.create(customer, address)

        assert await store.count(DeliveryFilter.for_admin()) == 0

    @pytest.mark.asyncio
    async def test_get_unknown_id_returns_none(self, store):
        """Unknown ids read as None."""
        assert await store.get(999) is None


class TestClaimIfPending:
    """Tests for the conditional claim."""

    @pytest.mark.asyncio
    async def test_claim_pending_succeeds(self, store):
        """Claiming a pending delivery assigns the driver."""
        delivery_id = await store.create("Jane", "1 Main St")

        outcome = await store.claim_if_pending(delivery_id, "Ann")

        assert outcome is ClaimOutcome.SUCCESS
        delivery = await store.get(delivery_id)
        assert delivery.status is DeliveryStatus.COLLECTED
        assert delivery.driver == "Ann"
        assert delivery.updated_at >= delivery.created_at

    @pytest.mark.asyncio
    async def test_second_claim_conflicts_and_keeps_first_driver(self, store):
        """A later claimant never overwrites the winner."""
        delivery_id = await store.create("Jane", "1 Main St")
        await store.claim_if_pending(delivery_id, "Ann")

        outcome = await store.claim_if_pending(delivery_id, "Bob")

        assert outcome is ClaimOutcome.CONFLICT
        delivery = await store.get(delivery_id)
        assert delivery.driver == "Ann"

    @pytest.mark.asyncio
    async def test_winner_claiming_again_conflicts(self, store):
        """Re-claiming by the driver who already holds it is also a conflict."""
        delivery_id = await store.create("Jane", "1 Main St")
        await store.claim_if_pending(delivery_id, "Ann")
        before = await store.get(delivery_id)

        outcome = await store.claim_if_pending(delivery_id, "Ann")

        assert outcome is ClaimOutcome.CONFLICT
        after = await store.get(delivery_id)
        assert after.driver == "Ann"
        assert after.status is DeliveryStatus.COLLECTED
        assert after.updated_at == before.updated_at

    @pytest.mark.asyncio
    async def test_claim_finished_delivery_conflicts(self, store):
        """Finished deliveries cannot be claimed."""
        delivery_id = await store.create("Jane", "1 Main St")
        await store.claim_if_pending(delivery_id, "Ann")
        await store.finish(delivery_id)

        assert await store.claim_if_pending(delivery_id, "Bob") is ClaimOutcome.CONFLICT

    @pytest.mark.asyncio
    async def test_claim_unknown_id_is_not_found(self, store):
        """Claiming a missing delivery reports NOT_FOUND."""
        assert await store.claim_if_pending(424242, "Ann") is ClaimOutcome.NOT_FOUND

    @pytest.mark.asyncio
    async def test_claim_requires_driver(self, store):
        """An empty driver name is rejected before touching the row."""
        delivery_id = await store.create("Jane", "1 Main St")

        with pytest.raises(DeliveryValidationError):
            await store.claim_if_pending(delivery_id, "  ")

        delivery = await store.get(delivery_id)
        assert delivery.status is DeliveryStatus.PENDING

    @pytest.mark.asyncio
    async def test_concurrent_claims_have_exactly_one_winner(self, store):
        """Simultaneous claimants: one SUCCESS, everyone else CONFLICT."""
        delivery_id = await store.create("Jane", "1 Main St")
        drivers = [f"driver-{i}" for i in range(8)]

        outcomes = await asyncio.gather(
            *(store.claim_if_pending(delivery_id, driver) for driver in drivers)
        )

        assert outcomes.count(ClaimOutcome.SUCCESS) == 1
        assert outcomes.count(ClaimOutcome.CONFLICT) == len(drivers) - 1

        winner = drivers[outcomes.index(ClaimOutcome.SUCCESS)]
        delivery = await store.get(delivery_id)
        assert delivery.status is DeliveryStatus.COLLECTED
        assert delivery.driver == winner


class TestFinish:
    """Tests for finish."""

    @pytest.mark.asyncio
    async def test_finish_collected(self, store):
        """Collected deliveries finish and keep their driver."""
        delivery_id = await store.create("Jane", "1 Main St")
        await store.claim_if_pending(delivery_id, "Ann")

        assert await store.finish(delivery_id) is FinishOutcome.SUCCESS

        delivery = await store.get(delivery_id)
        assert delivery.status is DeliveryStatus.FINISHED
        assert delivery.driver == "Ann"

    @pytest.mark.asyncio
    async def test_finish_pending_without_requirement(self, store):
        """Without require_collected, a pending delivery can be finished."""
        delivery_id = await store.create("Jane", "1 Main St")

        assert await store.finish(delivery_id) is FinishOutcome.SUCCESS

        delivery = await store.get(delivery_id)
        assert delivery.status is DeliveryStatus.FINISHED
        assert delivery.driver is None

    @pytest.mark.asyncio
    async def test_finish_pending_with_requirement_conflicts(self, store):
        """require_collected refuses a pending delivery and leaves it untouched."""
        delivery_id = await store.create("Jane", "1 Main St")

        outcome = await store.finish(delivery_id, require_collected=True)

        assert outcome is FinishOutcome.CONFLICT
        delivery = await store.get(delivery_id)
        assert delivery.status is DeliveryStatus.PENDING

    @pytest.mark.asyncio
    async def test_finish_finished_with_requirement_is_success(self, store):
        """Finishing twice is a no-op success under require_collected."""
        delivery_id = await store.create("Jane", "1 Main St")
        await store.claim_if_pending(delivery_id, "Ann")
        await store.finish(delivery_id, require_collected=True)
        before = await store.get(delivery_id)

        outcome = await store.finish(delivery_id, require_collected=True)

        assert outcome is FinishOutcome.SUCCESS
        after = await store.get(delivery_id)
        assert after.updated_at == before.updated_at

    @pytest.mark.asyncio
    @pytest.mark.parametrize("require_collected", [False, True])
    async def test_finish_unknown_id_is_not_found(self, store, require_collected):
        """Missing deliveries report NOT_FOUND under both modes."""
        outcome = await store.finish(424242, require_collected=require_collected)

        assert outcome is FinishOutcome.NOT_FOUND


class TestDelete:
    """Tests for delete."""

    @pytest.mark.asyncio
    async def test_delete_existing(self, store):
        """Deleting removes the row."""
        delivery_id = await store.create("Jane", "1 Main St")

        assert await store.delete(delivery_id) is True
        assert await store.get(delivery_id) is None

    @pytest.mark.asyncio
    async def test_delete_unknown(self, store):
        """Deleting a missing id reports False."""
        assert await store.delete(424242) is False

    @pytest.mark.asyncio
    async def test_claim_after_delete_is_not_found(self, store):
        """A deleted delivery cannot be claimed."""
        delivery_id = await store.create("Jane", "1 Main St")
        await store.delete(delivery_id)

        assert await store.claim_if_pending(delivery_id, "Ann") is ClaimOutcome.NOT_FOUND


class TestListing:
    """Tests for list and count with both filter modes."""

    @pytest.fixture
    async def populated(self, store):
        """One delivery in each interesting state.

        Returns a dict of name -> id.
        """
        ids = {
            "pending": await store.create("C1", "A1"),
            "ann_collected": await store.create("C2", "A2"),
            "bob_collected": await store.create("C3", "A3"),
            "ann_finished": await store.create("C4", "A4"),
        }
        await store.claim_if_pending(ids["ann_collected"], "Ann")
        await store.claim_if_pending(ids["bob_collected"], "Bob")
        await store.claim_if_pending(ids["ann_finished"], "Ann")
        await store.finish(ids["ann_finished"])
        return ids

    @pytest.mark.asyncio
    async def test_admin_sees_everything_newest_first(self, store, populated):
        """The administrator view lists all deliveries, newest first."""
        items = await store.list(DeliveryFilter.for_admin(), limit=10)

        assert [d.id for d in items] == sorted(populated.values(), reverse=True)
        assert await store.count(DeliveryFilter.for_admin()) == 4

    @pytest.mark.asyncio
    async def test_admin_status_filter(self, store, populated):
        """A status restriction limits the administrator view."""
        collected = DeliveryFilter.for_admin(DeliveryStatus.COLLECTED)

        items = await store.list(collected, limit=10)

        assert {d.id for d in items} == {populated["ann_collected"], populated["bob_collected"]}
        assert await store.count(collected) == 2

    @pytest.mark.asyncio
    async def test_driver_sees_pending_pool_and_own_work(self, store, populated):
        """Drivers see pending deliveries plus their own, never a rival's."""
        view = DeliveryFilter.for_driver("Ann")

        items = await store.list(view, limit=10)

        assert {d.id for d in items} == {
            populated["pending"],
            populated["ann_collected"],
            populated["ann_finished"],
        }
        assert populated["bob_collected"] not in {d.id for d in items}
        assert await store.count(view) == 3

    @pytest.mark.asyncio
    async def test_driver_with_no_claims_sees_only_pending(self, store, populated):
        """A driver without claims sees just the open pool."""
        items = await store.list(DeliveryFilter.for_driver("Carl"), limit=10)

        assert [d.id for d in items] == [populated["pending"]]

    @pytest.mark.asyncio
    async def test_limit_and_offset(self, store, populated):
        """Pages are contiguous slices of the ordered listing."""
        everything = DeliveryFilter.for_admin()

        first = await store.list(everything, limit=3, offset=0)
        second = await store.list(everything, limit=3, offset=3)

        assert len(first) == 3
        assert len(second) == 1
        assert {d.id for d in first}.isdisjoint({d.id for d in second})

    def test_filter_constructors(self):
        """Filter constructors set the role and drop irrelevant fields."""
        admin = DeliveryFilter.for_admin(DeliveryStatus.PENDING)
        driver = DeliveryFilter.for_driver("Ann")

        assert admin.role is ActorRole.ADMIN
        assert admin.driver is None
        assert driver.role is ActorRole.DRIVER
        assert driver.status is None


class TestStats:
    """Tests for stats."""

    @pytest.mark.asyncio
    async def test_stats_on_empty_store(self, store):
        """An empty store reports zeros, not NULLs."""
        stats = await store.stats()

        assert stats.total == 0
        assert stats.pending_count == 0
        assert stats.collected_count == 0
        assert stats.finished_count == 0

    @pytest.mark.asyncio
    async def test_stats_counts_each_status(self, store):
        """Counts add up to the total."""
        ids = [await store.create(f"C{i}", f"A{i}") for i in range(4)]
        await store.claim_if_pending(ids[0], "Ann")
        await store.claim_if_pending(ids[1], "Bob")
        await store.finish(ids[1])

        stats = await store.stats()

        assert stats.total == 4
        assert stats.pending_count == 2
        assert stats.collected_count == 1
        assert stats.finished_count == 1


class TestStorageErrors:
    """Database failures surface as StorageError."""

    @pytest.fixture
    def failing_store(self):
        """Store whose sessions cannot be opened."""
        factory = MagicMock(
            side_effect=OperationalError("SELECT 1", {}, Exception("database is locked"))
        )
        return DeliveryStore(factory)

    @pytest.mark.asyncio
    async def test_create_wraps_database_error(self, failing_store):
        """create raises StorageError."""
        with pytest.raises(StorageError, match="Failed to create delivery"):
            await failing_store.create("Jane", "1 Main St")

    @pytest.mark.asyncio
    async def test_claim_wraps_database_error(self, failing_store):
        """claim_if_pending raises StorageError."""
        with pytest.raises(StorageError, match="Failed to claim delivery"):
            await failing_store.claim_if_pending(1, "Ann")

    @pytest.mark.asyncio
    async def test_validation_precedes_storage(self, failing_store):
        """Invalid input is reported before any database access."""
        with pytest.raises(DeliveryValidationError):
            await failing_store.claim_if_pending(1, "")

    @pytest.mark.asyncio
    async def test_stats_wraps_database_error(self, failing_store):
        """stats raises StorageError."""
        with pytest.raises(StorageError):
            await failing_store.stats()
