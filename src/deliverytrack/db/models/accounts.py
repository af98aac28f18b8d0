"""Account models: drivers and administrators.

Passwords are stored as salted PBKDF2 hashes, see
deliverytrack.services.credentials.
"""

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column

from deliverytrack.db.models.base import (
    Base,
    IntPrimaryKey,
    MediumString,
    ShortString,
    TimestampTZ,
)


class Driver(Base):
    """A registered driver. The name is the identity used when claiming."""

    __tablename__ = "drivers"

    id: Mapped[IntPrimaryKey]
    created_at: Mapped[TimestampTZ]

    name: Mapped[ShortString] = mapped_column(unique=True)
    password_hash: Mapped[MediumString]


class AdminUser(Base):
    """Administrator account."""

    __tablename__ = "admins"

    id: Mapped[IntPrimaryKey]
    created_at: Mapped[TimestampTZ]

    username: Mapped[ShortString] = mapped_column(unique=True)
    password_hash: Mapped[MediumString]
