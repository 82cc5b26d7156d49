"""
Password reset code issuance, validation and bulk invalidation.
"""

from datetime import datetime
from typing import Callable, Optional
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from loginvault.config import CredentialPolicy
from loginvault.kernel.errors import PersistenceError
from loginvault.kernel.events.event_types import NotificationEvent, ResetCodeCreated
from loginvault.kernel.events.notifier import Notifier, notify_safely
from loginvault.kernel.identity.tokens import generate_reset_code
from loginvault.kernel.models.base import utc_now
from loginvault.kernel.models.credential import ResetCode
from loginvault.kernel.models.user import User
from loginvault.kernel.stores.record_store import RecordStore
from loginvault.logging_config import get_logger

logger = get_logger(__name__)


def build_reset_url(app_url: str, username: str, code: str) -> str:
    """Reset link: ``<app_url>/?uid=<username>&resetCode=<code>``."""
    return f"{app_url}/?{urlencode({'uid': username, 'resetCode': code})}"


class ResetCodeManager:
    """
    Issues and validates password reset codes.

    A code ends up consumed, invalidated (superseded by a newer request) or
    expired. Only the most recently issued code of a user stays usable when
    codes are issued with ``supersede=True``.
    """

    def __init__(
        self,
        records: RecordStore,
        notifier: Notifier,
        app_url: str,
        policy: Optional[CredentialPolicy] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.records = records
        self.notifier = notifier
        self.app_url = app_url
        self.policy = policy or CredentialPolicy()
        self.clock = clock

    def _cutoff(self) -> datetime:
        return self.clock() - self.policy.reset_code_ttl

    async def invalidate_active(
        self,
        user: User,
        session: Optional[AsyncSession] = None,
    ) -> int:
        """
        Mark every still-usable reset code of user as invalid.

        Args:
            user: Code owner
            session: Open transaction to run in, if any

        Returns:
            Number of codes invalidated
        """
        affected = await self.records.update_where(
            ResetCode,
            [
                ResetCode.user_id == user.id,
                ResetCode.used.is_(False),
                ResetCode.invalid.is_(False),
                ResetCode.created_at >= self._cutoff(),
            ],
            {"invalid": True},
            session=session,
        )
        if affected:
            logger.info(
                "Invalidated active reset codes",
                extra={"user_id": str(user.id), "count": affected},
            )
        return affected

    async def issue(self, user: User, supersede: bool = True) -> ResetCode:
        """
        Create a reset code for user and queue the reset email.

        Args:
            user: Code owner
            supersede: Invalidate the user's earlier active codes first

        Returns:
            The persisted ResetCode

        Raises:
            EntropySourceError: If no secure randomness is available
            PersistenceError: "Error creating reset authorization" on store failure
        """
        code = generate_reset_code(self.policy.reset_code_bit_length)
        record = ResetCode(
            user_id=user.id,
            code=code,
            used=False,
            invalid=False,
            created_at=self.clock(),
        )
        try:
            async with self.records.transaction() as session:
                if supersede:
                    await self.invalidate_active(user, session=session)
                await self.records.insert(record, session=session)
        except PersistenceError as exc:
            logger.error(
                "Could not store reset code",
                extra={"user_id": str(user.id)},
            )
            raise PersistenceError("Error creating reset authorization") from exc

        logger.info("Reset code issued", extra={"user_id": str(user.id)})
        notify_safely(
            self.notifier,
            NotificationEvent.RESET_CODE_CREATED,
            ResetCodeCreated(
                email=user.email,
                username=user.username,
                reset_url=build_reset_url(self.app_url, user.username, record.code),
            ),
        )
        return record

    async def validate(
        self,
        code: str,
        user: User,
        session: Optional[AsyncSession] = None,
    ) -> bool:
        """
        Consume a reset code.

        An unknown, expired, used or invalidated code is an expected outcome
        and yields False rather than an error. The lookup and the consumption
        are one guarded UPDATE, so a concurrent validate or invalidate_active
        either wins outright or leaves this call with nothing to flip.

        Args:
            code: Code from the reset link
            user: Claimed owner
            session: Open transaction to run in, if any; the code is only
                spent if that transaction commits

        Raises:
            PersistenceError: On store failure
        """
        affected = await self.records.update_where(
            ResetCode,
            [
                ResetCode.code == code,
                ResetCode.user_id == user.id,
                ResetCode.used.is_(False),
                ResetCode.invalid.is_(False),
                ResetCode.created_at >= self._cutoff(),
            ],
            {"used": True},
            session=session,
        )
        return affected > 0
