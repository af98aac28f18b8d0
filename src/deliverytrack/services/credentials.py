"""Credential store for drivers and administrators.

Passwords are never stored in plaintext. Each one is hashed with
PBKDF2-HMAC-SHA256 and a random 16-byte salt, and kept in the form:

    pbkdf2_sha256$<iterations>$<salt_b64>$<hash_b64>

Verification re-derives the key with the stored salt and iteration count,
so raising the iteration count only affects new hashes.
"""

from __future__ import annotations

import base64
import hmac
import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from deliverytrack.db.models.accounts import AdminUser, Driver
from deliverytrack.services.errors import (
    CredentialValidationError,
    DuplicateIdentityError,
    IdentityNotFoundError,
    StorageError,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

HASH_SCHEME = "pbkdf2_sha256"
SALT_SIZE_BYTES = 16
KEY_SIZE_BYTES = 32
DEFAULT_ITERATIONS = 600_000


def hash_password(password: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    """Derive a salted hash string for a password."""
    salt = os.urandom(SALT_SIZE_BYTES)
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE_BYTES,
        salt=salt,
        iterations=iterations,
    )
    derived = kdf.derive(password.encode("utf-8"))
    return "$".join(
        [
            HASH_SCHEME,
            str(iterations),
            base64.b64encode(salt).decode("ascii"),
            base64.b64encode(derived).decode("ascii"),
        ]
    )


def verify_password(password: str, encoded: str) -> bool:
    """Check a password against a stored hash string.

    Malformed hash strings never verify.
    """
    try:
        scheme, iterations, salt_b64, hash_b64 = encoded.split("$")
        if scheme != HASH_SCHEME:
            return False
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(hash_b64)
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=len(expected),
            salt=salt,
            iterations=int(iterations),
        )
        derived = kdf.derive(password.encode("utf-8"))
    except ValueError:
        return False
    return hmac.compare_digest(derived, expected)


@dataclass(frozen=True, slots=True)
class DriverSummary:
    """Public view of a driver account."""

    id: int
    name: str


class CredentialStore:
    """Registration and verification of driver and administrator accounts.

    Attributes:
        session_factory: Factory producing one AsyncSession per operation.
        min_name_length: Minimum driver name length after trimming.
        min_password_length: Minimum password length at registration.
        iterations: PBKDF2 iterations for new hashes.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        min_name_length: int = 2,
        min_password_length: int = 4,
        iterations: int = DEFAULT_ITERATIONS,
    ) -> None:
        self.session_factory = session_factory
        self.min_name_length = min_name_length
        self.min_password_length = min_password_length
        self.iterations = iterations

    async def register_driver(self, name: str, password: str) -> int:
        """Register a new driver.

        Args:
            name: Driver name (trimmed).
            password: Plaintext password, hashed before storage.

        Returns:
            The new driver id.

        Raises:
            CredentialValidationError: If the name or password is too short.
            DuplicateIdentityError: If the name is already registered.
            StorageError: If the insert fails for another reason.
        """
        name = name.strip() if isinstance(name, str) else ""
        if len(name) < self.min_name_length:
            raise CredentialValidationError(
                f"Name must have at least {self.min_name_length} characters"
            )
        if not isinstance(password, str) or len(password) < self.min_password_length:
            raise CredentialValidationError(
                f"Password must have at least {self.min_password_length} characters"
            )

        driver = Driver(name=name, password_hash=hash_password(password, self.iterations))

        try:
            async with self.session_factory() as session, session.begin():
                existing = await session.scalar(select(Driver.id).where(Driver.name == name))
                if existing is not None:
                    raise DuplicateIdentityError(name)
                session.add(driver)
                await session.flush()
                driver_id = driver.id
        except IntegrityError as e:
            # Lost a race against a concurrent registration of the same name
            raise DuplicateIdentityError(name) from e
        except SQLAlchemyError as e:
            logger.error("Failed to register driver: %s", str(e))
            raise StorageError(f"Failed to register driver: {e}") from e

        logger.info("Driver registered", extra={"driver_id": driver_id, "driver": name})
        return driver_id

    async def verify_driver(self, name: str, password: str) -> bool:
        """Check a driver's name and password.

        Raises:
            CredentialValidationError: If either field is missing.
        """
        name = self._require_login_fields(name, password)
        stored = await self._load_hash(select(Driver.password_hash).where(Driver.name == name))
        return stored is not None and verify_password(password, stored)

    async def verify_admin(self, username: str, password: str) -> bool:
        """Check the administrator's username and password.

        Raises:
            CredentialValidationError: If either field is missing.
        """
        username = self._require_login_fields(username, password)
        stored = await self._load_hash(
            select(AdminUser.password_hash).where(AdminUser.username == username)
        )
        return stored is not None and verify_password(password, stored)

    async def ensure_admin(self, username: str, password: str) -> bool:
        """Create the administrator account if it does not exist yet.

        Returns:
            True if the account was created, False if it already existed.
        """
        try:
            async with self.session_factory() as session, session.begin():
                existing = await session.scalar(
                    select(AdminUser.id).where(AdminUser.username == username)
                )
                if existing is not None:
                    return False
                session.add(
                    AdminUser(
                        username=username,
                        password_hash=hash_password(password, self.iterations),
                    )
                )
        except IntegrityError:
            # Another process seeded it first
            return False
        except SQLAlchemyError as e:
            logger.error("Failed to seed administrator: %s", str(e))
            raise StorageError(f"Failed to seed administrator: {e}") from e

        logger.info("Administrator account created", extra={"username": username})
        return True

    async def list_drivers(self) -> list[DriverSummary]:
        """List registered drivers ordered by name (no password hashes)."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Driver.id, Driver.name).order_by(Driver.name)
                )
                return [DriverSummary(id=row.id, name=row.name) for row in result]
        except SQLAlchemyError as e:
            logger.error("Failed to list drivers: %s", str(e))
            raise StorageError(f"Failed to list drivers: {e}") from e

    async def delete_driver(self, driver_id: int) -> None:
        """Delete a driver account.

        Deliveries already claimed under this name keep their driver field.

        Raises:
            IdentityNotFoundError: If the driver does not exist.
        """
        try:
            async with self.session_factory() as session, session.begin():
                result = await session.execute(delete(Driver).where(Driver.id == driver_id))
                deleted = result.rowcount == 1
        except SQLAlchemyError as e:
            logger.error("Failed to delete driver %s: %s", driver_id, str(e))
            raise StorageError(f"Failed to delete driver: {e}") from e

        if not deleted:
            raise IdentityNotFoundError(driver_id)
        logger.info("Driver deleted", extra={"driver_id": driver_id})

    @staticmethod
    def _require_login_fields(identity: str, password: str) -> str:
        identity = identity.strip() if isinstance(identity, str) else ""
        if not identity or not password:
            raise CredentialValidationError("Fill in all fields")
        return identity

    async def _load_hash(self, query) -> str | None:
        try:
            async with self.session_factory() as session:
                return await session.scalar(query)
        except SQLAlchemyError as e:
            logger.error("Failed to load credentials: %s", str(e))
            raise StorageError(f"Failed to load credentials: {e}") from e
