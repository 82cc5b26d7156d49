"""
Generic record store over an async SQLAlchemy session factory.

Every call runs in its own short-lived session and commits before
returning, unless the caller passes the session of an open
``transaction()`` to group several writes into one commit.

``update_where`` is the atomicity primitive the managers rely on: the
predicate is evaluated by the database inside the UPDATE, so two callers
racing to flip the same ``used == False`` row see one affected row between
them, never two.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from loginvault.kernel.errors import PersistenceError
from loginvault.kernel.models.base import Base
from loginvault.logging_config import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class RecordStore:
    """
    Insert / find / conditional-update access to credential tables.

    Usage:
        store = RecordStore(async_session_maker)
        row = await store.find_one(LoginToken, LoginToken.token == token)
        affected = await store.update_where(
            LoginToken,
            [LoginToken.id == row.id, LoginToken.used.is_(False)],
            {"used": True},
        )
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Open a session with a transaction that commits on clean exit.

        Driver errors are logged with full detail and re-raised as a
        PersistenceError with a generic message.
        """
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            logger.exception("Record store operation failed")
            raise PersistenceError() from exc

    @asynccontextmanager
    async def _use(self, session: Optional[AsyncSession]) -> AsyncIterator[AsyncSession]:
        if session is not None:
            try:
                yield session
            except SQLAlchemyError as exc:
                logger.exception("Record store operation failed")
                raise PersistenceError() from exc
        else:
            async with self.transaction() as own:
                yield own

    async def insert(self, record: ModelT, session: Optional[AsyncSession] = None) -> ModelT:
        """Persist a new row and return it with defaults populated."""
        async with self._use(session) as s:
            s.add(record)
            await s.flush()
        return record

    async def find_one(
        self,
        model: Type[ModelT],
        *criteria: ColumnElement[bool],
        session: Optional[AsyncSession] = None,
    ) -> Optional[ModelT]:
        """Return the first row matching all criteria, or None."""
        async with self._use(session) as s:
            result = await s.execute(select(model).where(*criteria).limit(1))
            return result.scalars().first()

    async def update_where(
        self,
        model: Type[ModelT],
        criteria: Sequence[ColumnElement[bool]],
        patch: dict[str, Any],
        session: Optional[AsyncSession] = None,
    ) -> int:
        """
        Apply patch to every row matching criteria.

        Returns:
            Number of rows the database reports as affected
        """
        stmt = (
            update(model)
            .where(*criteria)
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        async with self._use(session) as s:
            result = await s.execute(stmt)
            return result.rowcount

    async def delete_where(
        self,
        model: Type[ModelT],
        criteria: Sequence[ColumnElement[bool]],
        session: Optional[AsyncSession] = None,
    ) -> int:
        """Delete every row matching criteria and return the count."""
        stmt = delete(model).where(*criteria).execution_options(synchronize_session=False)
        async with self._use(session) as s:
            result = await s.execute(stmt)
            return result.rowcount
