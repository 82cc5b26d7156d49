"""
Read access to the account service's user records, plus the one write
loginvault is allowed to make: the password-login flag.
"""

import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from loginvault.kernel.errors import NotFound
from loginvault.kernel.models.user import User
from loginvault.kernel.stores.record_store import RecordStore


class UserStore:
    """Lookups by id, email and username over the users table."""

    def __init__(self, records: RecordStore):
        self.records = records

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.records.find_one(User, User.id == user_id)

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self.records.find_one(User, User.email == email)

    async def find_by_username(self, username: str) -> Optional[User]:
        # Usernames are stored lowercased by the account service
        return await self.records.find_one(User, User.username == username.lower())

    async def get_by_id(self, user_id: uuid.UUID) -> User:
        """Like find_by_id, for callers that expect the user to exist."""
        user = await self.find_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def set_password_login_enabled(
        self,
        user_id: uuid.UUID,
        enabled: bool,
        session: Optional[AsyncSession] = None,
    ) -> None:
        """
        Flip the user's password-login flag.

        Raises:
            NotFound: If no user has this id
            PersistenceError: On store failure
        """
        affected = await self.records.update_where(
            User,
            [User.id == user_id],
            {"use_password_login": enabled},
            session=session,
        )
        if not affected:
            raise NotFound("User not found")
