"""
Identity service composing the credential primitives into login and reset flows.
"""

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from loginvault.config import CredentialPolicy, Settings
from loginvault.kernel.errors import NotFound, PersistenceError, Unauthorized
from loginvault.kernel.events.notifier import Notifier
from loginvault.kernel.identity.credential_store import CredentialStore
from loginvault.kernel.identity.login_tokens import LoginTokenManager
from loginvault.kernel.identity.password import PasswordHasher
from loginvault.kernel.identity.reset_codes import ResetCodeManager
from loginvault.kernel.models.base import utc_now
from loginvault.kernel.models.user import User
from loginvault.kernel.stores.record_store import RecordStore
from loginvault.kernel.stores.user_store import UserStore
from loginvault.logging_config import get_logger

logger = get_logger(__name__)


class IdentityService:
    """
    Service for credential-based identity operations.

    Resolves users by email or username and drives the login-token,
    reset-code and password primitives. Every failure to authenticate is
    reported as the same Unauthorized error.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        notifier: Notifier,
        app_url: str,
        policy: Optional[CredentialPolicy] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.policy = policy or CredentialPolicy()
        self.records = RecordStore(session_maker)
        self.users = UserStore(self.records)
        self.login_tokens = LoginTokenManager(self.records, notifier, self.policy, clock)
        self.reset_codes = ResetCodeManager(
            self.records, notifier, app_url, self.policy, clock
        )
        self.credentials = CredentialStore(
            self.records,
            self.users,
            PasswordHasher(self.policy.hash_work_factor),
            notifier,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_maker: async_sessionmaker[AsyncSession],
        notifier: Notifier,
    ) -> "IdentityService":
        return cls(
            session_maker,
            notifier,
            app_url=settings.app_url,
            policy=settings.credential_policy(),
        )

    async def request_login_link(self, email: str, return_url: str) -> bool:
        """
        Mail a login link to the user with this email.

        Returns:
            False if no user has the email, True once the link is queued
        """
        user = await self.users.find_by_email(email)
        if user is None:
            return False
        await self.login_tokens.issue(user, return_url)
        return True

    async def login_with_token(self, username: str, token: str) -> User:
        """
        Consume a login token and return its owner.

        Raises:
            Unauthorized: Unknown user or unusable token
        """
        user = await self.users.find_by_username(username)
        if user is None:
            raise Unauthorized()
        await self.login_tokens.verify(user, token)
        return user

    async def login_with_password(self, username: str, password: str) -> User:
        """
        Check a password login and upgrade a stale hash on success.

        Raises:
            Unauthorized: Unknown user, password login disabled, or wrong password
        """
        user = await self.users.find_by_username(username)
        if user is None or not user.use_password_login:
            raise Unauthorized()
        try:
            matches = await self.credentials.verify_password(password, user)
        except NotFound:
            # No credential, or it was removed after the user was loaded
            raise Unauthorized() from None
        if not matches:
            raise Unauthorized()
        await self.credentials.rehash_if_needed(password, user)
        return user

    async def request_password_reset(self, email: str) -> bool:
        """
        Supersede earlier reset codes and mail a fresh one.

        Returns:
            False if no user has the email (callers should not reveal this)
        """
        user = await self.users.find_by_email(email)
        if user is None:
            return False
        await self.reset_codes.issue(user)
        return True

    async def reset_password(self, username: str, code: str, new_password: str) -> bool:
        """
        Consume a reset code and set the new password.

        The new password is hashed first. Spending the code and swapping the
        credential then share one transaction, so a failed write leaves the
        code usable and the old password in place.

        Returns:
            False if the user is unknown or the code is not usable

        Raises:
            HashingError: If the new password cannot be hashed
            PersistenceError: "Login database error" on store failure
        """
        user = await self.users.find_by_username(username)
        if user is None:
            return False

        salted_hash = self.credentials.hasher.hash(new_password)
        try:
            async with self.records.transaction() as session:
                if not await self.reset_codes.validate(code, user, session=session):
                    return False
                await self.credentials.replace_hash(user, salted_hash, session)
        except PersistenceError as exc:
            logger.error("Could not reset password", extra={"user_id": str(user.id)})
            raise PersistenceError("Login database error") from exc

        self.credentials.password_changed(user)
        return True

    async def disable_password_login(self, username: str) -> None:
        """Remove the user's password; they fall back to login links."""
        user = await self.users.find_by_username(username)
        if user is None:
            raise Unauthorized()
        await self.credentials.remove_password(user)
