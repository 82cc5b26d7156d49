"""Integration tests for the record and user stores."""

import uuid

import pytest

from loginvault.kernel.errors import NotFound, PersistenceError
from loginvault.kernel.models import LoginToken, User


@pytest.mark.asyncio
class TestRecordStore:
    """Tests for RecordStore."""

    async def test_update_where_reports_affected_rows(self, records, test_user):
        token = await records.insert(LoginToken(user_id=test_user.id, token="lusab-babad"))

        first = await records.update_where(
            LoginToken, [LoginToken.id == token.id, LoginToken.used.is_(False)], {"used": True}
        )
        second = await records.update_where(
            LoginToken, [LoginToken.id == token.id, LoginToken.used.is_(False)], {"used": True}
        )

        assert (first, second) == (1, 0)

    async def test_transaction_rolls_back_on_error(self, records, test_user):
        with pytest.raises(RuntimeError):
            async with records.transaction() as session:
                await records.insert(
                    LoginToken(user_id=test_user.id, token="gutih-tugad"), session=session
                )
                raise RuntimeError("abort")

        assert await records.find_one(LoginToken, LoginToken.token == "gutih-tugad") is None

    async def test_driver_error_becomes_persistence_error(self, records, test_user):
        duplicate = User(username="testuser", email="dupe@example.com")

        with pytest.raises(PersistenceError) as exc_info:
            await records.insert(duplicate)

        assert str(exc_info.value) == "Database error"

    async def test_delete_where(self, records, test_user):
        for token in ("babab-babab", "zuzuz-zuzuz"):
            await records.insert(LoginToken(user_id=test_user.id, token=token))

        assert await records.delete_where(LoginToken, [LoginToken.user_id == test_user.id]) == 2


@pytest.mark.asyncio
class TestUserStore:
    """Tests for UserStore."""

    async def test_lookups(self, users, test_user):
        assert (await users.find_by_email("testuser@example.com")).id == test_user.id
        assert (await users.find_by_username("TESTUSER")).id == test_user.id
        assert (await users.find_by_id(test_user.id)).username == "testuser"
        assert await users.find_by_email("nobody@example.com") is None

    async def test_get_by_id_missing(self, users):
        with pytest.raises(NotFound):
            await users.get_by_id(uuid.uuid4())

    async def test_set_password_login_enabled(self, users, test_user):
        await users.set_password_login_enabled(test_user.id, True)

        assert (await users.get_by_id(test_user.id)).use_password_login is True

    async def test_set_password_login_enabled_missing_user(self, users):
        with pytest.raises(NotFound):
            await users.set_password_login_enabled(uuid.uuid4(), True)
