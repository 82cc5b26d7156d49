"""
Login token issuance and verification.

A token moves from issued to consumed (on successful verification) or
silently expires once it is older than the login token TTL. Expiry is never
written back; it is enforced by the lookup predicate.
"""

from datetime import datetime
from typing import Callable, Optional
from urllib.parse import urlencode

from loginvault.config import CredentialPolicy
from loginvault.kernel.errors import Unauthorized
from loginvault.kernel.events.event_types import LoginTokenEmail, NotificationEvent
from loginvault.kernel.events.notifier import Notifier, notify_safely
from loginvault.kernel.identity.tokens import generate_login_token
from loginvault.kernel.models.base import utc_now
from loginvault.kernel.models.credential import LoginToken
from loginvault.kernel.models.user import User
from loginvault.kernel.stores.record_store import RecordStore
from loginvault.logging_config import get_logger

logger = get_logger(__name__)


def build_login_url(return_url: str, username: str, token: str) -> str:
    """Login link: ``<return_url>/?uid=<username>&token=<token>``."""
    return f"{return_url}/?{urlencode({'uid': username, 'token': token})}"


class LoginTokenManager:
    """
    Issues short-lived single-use login tokens and consumes them.

    Usage:
        manager = LoginTokenManager(records, notifier, policy)
        await manager.issue(user, "https://app.example.org")
        await manager.verify(user, token)  # raises Unauthorized if unusable
    """

    def __init__(
        self,
        records: RecordStore,
        notifier: Notifier,
        policy: Optional[CredentialPolicy] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.records = records
        self.notifier = notifier
        self.policy = policy or CredentialPolicy()
        self.clock = clock

    async def issue(self, user: User, return_url: str) -> LoginToken:
        """
        Create a login token for user and queue the login email.

        Args:
            user: Token owner
            return_url: Base URL the login link points back to

        Returns:
            The persisted LoginToken

        Raises:
            EntropySourceError: If no secure randomness is available
            PersistenceError: If the token could not be stored
        """
        record = LoginToken(
            user_id=user.id,
            token=generate_login_token(),
            used=False,
            created_at=self.clock(),
        )
        await self.records.insert(record)
        logger.info("Login token issued", extra={"user_id": str(user.id)})

        notify_safely(
            self.notifier,
            NotificationEvent.LOGIN_TOKEN_EMAIL,
            LoginTokenEmail(
                user_id=user.id,
                username=user.username,
                verified=user.verified,
                email=user.email,
                login_url=build_login_url(return_url, user.username, record.token),
                token=record.token,
            ),
        )
        return record

    async def verify(self, user: User, token: str) -> None:
        """
        Consume a login token.

        The row is found by owner, token, unused state and TTL, then flipped
        with an UPDATE guarded by ``used = false``. Of any number of
        concurrent callers only the one whose update affects the row wins.

        Raises:
            Unauthorized: Token unknown, expired, already used, or lost a race
            PersistenceError: On store failure
        """
        cutoff = self.clock() - self.policy.login_token_ttl
        row = await self.records.find_one(
            LoginToken,
            LoginToken.user_id == user.id,
            LoginToken.token == token,
            LoginToken.used.is_(False),
            LoginToken.created_at >= cutoff,
        )
        if row is None:
            raise Unauthorized()

        affected = await self.records.update_where(
            LoginToken,
            [LoginToken.id == row.id, LoginToken.used.is_(False)],
            {"used": True},
        )
        if affected != 1:
            raise Unauthorized()
        logger.info("Login token consumed", extra={"user_id": str(user.id)})
