"""Delivery model: the only entity with lifecycle semantics."""

from __future__ import annotations

from sqlalchemy import Enum, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from deliverytrack.db.models.base import (
    Base,
    DeliveryStatus,
    IntPrimaryKey,
    LongString,
    MediumString,
    TimestampTZ,
    enum_values,
)


class Delivery(Base):
    """A delivery order moving through pending -> collected -> finished.

    Rows are mutated only by the claim and finish operations of
    DeliveryStore, never by direct field edits.
    """

    __tablename__ = "deliveries"

    id: Mapped[IntPrimaryKey]
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[TimestampTZ]

    customer: Mapped[MediumString]
    address: Mapped[LongString]

    status: Mapped[DeliveryStatus] = mapped_column(
        Enum(
            DeliveryStatus,
            name="delivery_status",
            create_constraint=True,
            values_callable=enum_values,
        ),
        nullable=False,
        default=DeliveryStatus.PENDING,
    )

    # Set once, by the winning claim
    driver: Mapped[str | None] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        Index("ix_deliveries_status", "status"),
        Index("ix_deliveries_driver", "driver"),
        Index("ix_deliveries_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Delivery id={self.id} status={self.status.value} driver={self.driver!r}>"
