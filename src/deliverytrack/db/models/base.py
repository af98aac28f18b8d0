"""Base model definitions and common types.

This module provides:
- SQLAlchemy declarative base with naming conventions
- Common column type annotations
- Enum types used across multiple models
"""

import enum
from datetime import UTC, datetime
from typing import Annotated

from sqlalchemy import DateTime, Integer, MetaData, String, func
from sqlalchemy.orm import DeclarativeBase, mapped_column, registry

# Naming convention for constraints ensures consistent migration generation.
# See: https://alembic.sqlalchemy.org/en/latest/naming.html
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)

type_registry = registry()


def utc_now() -> datetime:
    """Current time in UTC.

    Python-side defaults keep sub-second precision on SQLite, where
    CURRENT_TIMESTAMP only has one-second resolution.
    """
    return datetime.now(UTC)


# Integer primary key assigned by the database
IntPrimaryKey = Annotated[
    int,
    mapped_column(Integer, primary_key=True, autoincrement=True),
]

# Timestamp with timezone, defaults to now
TimestampTZ = Annotated[
    datetime,
    mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    ),
]

ShortString = Annotated[str, mapped_column(String(100))]
MediumString = Annotated[str, mapped_column(String(255))]
LongString = Annotated[str, mapped_column(String(1000))]


class Base(DeclarativeBase):
    """Declarative base for all Delivery Tracker models."""

    metadata = metadata
    registry = type_registry


# =============================================================================
# Common Enums
# =============================================================================


class DeliveryStatus(enum.Enum):
    """Delivery lifecycle states.

    States:
        PENDING: Created, waiting for a driver to claim it
        COLLECTED: Claimed by exactly one driver
        FINISHED: Delivered (terminal)
    """

    PENDING = "pending"
    COLLECTED = "collected"
    FINISHED = "finished"


class ActorRole(enum.Enum):
    """Role of the caller listing deliveries.

    Values:
        ADMIN: Administrator, sees every delivery
        DRIVER: Driver, sees the pending pool plus their own work
    """

    ADMIN = "admin"
    DRIVER = "driver"


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Persist enum values (e.g. 'pending') rather than member names."""
    return [member.value for member in enum_cls]
