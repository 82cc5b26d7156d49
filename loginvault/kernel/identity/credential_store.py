"""
Per-user password credential: set, replace, remove and verify.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from loginvault.kernel.errors import NotFound, PersistenceError
from loginvault.kernel.events.event_types import NotificationEvent, UserPasswordChanged
from loginvault.kernel.events.notifier import Notifier, notify_safely
from loginvault.kernel.identity.password import PasswordHasher
from loginvault.kernel.models.credential import Password
from loginvault.kernel.models.user import User
from loginvault.kernel.stores.record_store import RecordStore
from loginvault.kernel.stores.user_store import UserStore
from loginvault.logging_config import get_logger

logger = get_logger(__name__)


class CredentialStore:
    """
    Owns the salted password hash of each user.

    A user has at most one Password row. Setting a password replaces the row
    and enables password login on the user record in the same transaction;
    removing it deletes the row and disables password login.
    """

    def __init__(
        self,
        records: RecordStore,
        users: UserStore,
        hasher: PasswordHasher,
        notifier: Notifier,
    ):
        self.records = records
        self.users = users
        self.hasher = hasher
        self.notifier = notifier

    async def _find(self, user: User) -> Optional[Password]:
        return await self.records.find_one(Password, Password.user_id == user.id)

    async def has_password(self, user: User) -> bool:
        """Whether user currently has a password credential."""
        return await self._find(user) is not None

    async def replace_hash(
        self,
        user: User,
        salted_hash: str,
        session: AsyncSession,
    ) -> None:
        """
        Swap in salted_hash as the user's only credential and enable password
        login, inside the caller's transaction.

        Raises:
            NotFound: If the user record no longer exists
            PersistenceError: On store failure
        """
        await self.records.delete_where(
            Password, [Password.user_id == user.id], session=session
        )
        await self.records.insert(
            Password(user_id=user.id, salted_hash=salted_hash),
            session=session,
        )
        await self.users.set_password_login_enabled(user.id, True, session=session)

    def password_changed(self, user: User) -> None:
        """Record a committed password change and announce it."""
        user.use_password_login = True
        logger.info("Password changed", extra={"user_id": str(user.id)})
        notify_safely(
            self.notifier,
            NotificationEvent.USER_PASSWORD_CHANGED,
            UserPasswordChanged(email=user.email, username=user.username),
        )

    async def set_password(self, user: User, plaintext: str) -> None:
        """
        Hash plaintext and make it the user's only password credential.

        Raises:
            HashingError: If hashing fails (nothing is written)
            NotFound: If the user record no longer exists
            PersistenceError: "Login database error" on store failure
        """
        salted_hash = self.hasher.hash(plaintext)
        try:
            async with self.records.transaction() as session:
                await self.replace_hash(user, salted_hash, session)
        except PersistenceError as exc:
            logger.error("Could not store password", extra={"user_id": str(user.id)})
            raise PersistenceError("Login database error") from exc
        self.password_changed(user)

    async def remove_password(self, user: User) -> None:
        """
        Delete the user's password credential and disable password login.

        Raises:
            NotFound: If the user record no longer exists
            PersistenceError: "Error removing password" on store failure
        """
        try:
            async with self.records.transaction() as session:
                await self.records.delete_where(
                    Password, [Password.user_id == user.id], session=session
                )
                await self.users.set_password_login_enabled(user.id, False, session=session)
        except PersistenceError as exc:
            logger.error("Could not remove password", extra={"user_id": str(user.id)})
            raise PersistenceError("Error removing password") from exc

        user.use_password_login = False
        logger.info("Password removed", extra={"user_id": str(user.id)})

    async def verify_password(self, plaintext: str, user: User) -> bool:
        """
        Check plaintext against the user's stored hash.

        Callers must make sure the user has a password first (has_password).

        Raises:
            NotFound: If the user has no password credential
            HashingError: If the stored hash is malformed
        """
        credential = await self._find(user)
        if credential is None:
            raise NotFound("No password set for user")
        return self.hasher.verify(plaintext, credential.salted_hash)

    async def rehash_if_needed(self, plaintext: str, user: User) -> bool:
        """
        Re-hash a just-verified password if its work factor is out of date.

        Call only after verify_password returned True for the same plaintext.

        Returns:
            True if the stored hash was rewritten
        """
        credential = await self._find(user)
        if credential is None or not self.hasher.needs_rehash(credential.salted_hash):
            return False

        affected = await self.records.update_where(
            Password,
            [Password.id == credential.id, Password.salted_hash == credential.salted_hash],
            {"salted_hash": self.hasher.hash(plaintext)},
        )
        if affected:
            logger.info("Password hash upgraded", extra={"user_id": str(user.id)})
        return affected == 1
