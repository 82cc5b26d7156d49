"""Integration tests for password reset codes."""

import asyncio
from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest

from loginvault.kernel.errors import PersistenceError
from loginvault.kernel.events import NotificationEvent
from loginvault.kernel.identity import ResetCodeManager, is_reset_code
from loginvault.kernel.models import ResetCode


@pytest.fixture
def manager(records, notifier, app_url, policy, clock) -> ResetCodeManager:
    return ResetCodeManager(records, notifier, app_url, policy, clock)


@pytest.mark.asyncio
class TestResetCodeIssue:
    """Tests for ResetCodeManager.issue."""

    async def test_issue_persists_fresh_code(self, manager, records, test_user):
        issued = await manager.issue(test_user)

        row = await records.find_one(ResetCode, ResetCode.id == issued.id)
        assert row.used is False
        assert row.invalid is False
        assert is_reset_code(row.code)

    async def test_issue_sends_reset_email(self, manager, notifier, app_url, test_user):
        issued = await manager.issue(test_user)

        [payload] = notifier.of(NotificationEvent.RESET_CODE_CREATED)
        assert set(payload) == {"email", "username", "resetUrl"}
        assert payload["email"] == "testuser@example.com"
        assert payload["username"] == "testuser"
        assert payload["resetUrl"].startswith(app_url + "/?")
        query = parse_qs(urlparse(payload["resetUrl"]).query)
        assert query == {"uid": ["testuser"], "resetCode": [issued.code]}

    async def test_issue_supersedes_earlier_codes(self, manager, records, test_user):
        first = await manager.issue(test_user)
        second = await manager.issue(test_user)

        old = await records.find_one(ResetCode, ResetCode.id == first.id)
        assert old.invalid is True
        assert await manager.validate(first.code, test_user) is False
        assert await manager.validate(second.code, test_user) is True

    async def test_issue_does_not_touch_other_users(self, manager, test_user, other_user):
        theirs = await manager.issue(other_user)
        await manager.issue(test_user)

        assert await manager.validate(theirs.code, other_user) is True

    async def test_storage_failure_message(self, manager, db_engine, notifier, test_user):
        async with db_engine.begin() as conn:
            await conn.run_sync(ResetCode.__table__.drop)

        with pytest.raises(PersistenceError) as exc_info:
            await manager.issue(test_user)

        assert str(exc_info.value) == "Error creating reset authorization"
        assert "reset_codes" not in str(exc_info.value)
        assert notifier.of(NotificationEvent.RESET_CODE_CREATED) == []


@pytest.mark.asyncio
class TestResetCodeValidate:
    """Tests for ResetCodeManager.validate."""

    async def test_validate_is_single_use(self, manager, test_user):
        issued = await manager.issue(test_user)

        assert await manager.validate(issued.code, test_user) is True
        assert await manager.validate(issued.code, test_user) is False

    async def test_validate_unknown_code(self, manager, test_user):
        assert await manager.validate("0" * 64, test_user) is False

    async def test_validate_wrong_user(self, manager, test_user, other_user):
        issued = await manager.issue(test_user)

        assert await manager.validate(issued.code, other_user) is False
        assert await manager.validate(issued.code, test_user) is True

    async def test_code_expires_after_ttl(self, manager, clock, test_user):
        issued = await manager.issue(test_user)

        clock.advance(timedelta(hours=24, minutes=1))

        assert await manager.validate(issued.code, test_user) is False

    async def test_code_valid_within_ttl(self, manager, clock, test_user):
        issued = await manager.issue(test_user)

        clock.advance(timedelta(hours=23))

        assert await manager.validate(issued.code, test_user) is True


@pytest.mark.asyncio
class TestInvalidateActive:
    """Tests for ResetCodeManager.invalidate_active."""

    async def test_invalidates_all_active_codes(self, manager, test_user):
        codes = [await manager.issue(test_user, supersede=False) for _ in range(3)]

        assert await manager.invalidate_active(test_user) == 3

        for issued in codes:
            assert await manager.validate(issued.code, test_user) is False

    async def test_skips_used_and_expired_codes(self, manager, records, clock, test_user):
        stale = await manager.issue(test_user, supersede=False)
        clock.advance(timedelta(hours=25))
        used = await manager.issue(test_user, supersede=False)
        assert await manager.validate(used.code, test_user) is True
        clock.advance(timedelta(hours=1))
        active = await manager.issue(test_user, supersede=False)

        assert await manager.invalidate_active(test_user) == 1

        rows = {
            issued.id: await records.find_one(ResetCode, ResetCode.id == issued.id)
            for issued in (stale, used, active)
        }
        assert rows[stale.id].invalid is False
        assert rows[used.id].used is True
        assert rows[used.id].invalid is False
        assert rows[active.id].invalid is True

    async def test_nothing_to_invalidate(self, manager, test_user):
        assert await manager.invalidate_active(test_user) == 0


@pytest.mark.asyncio
async def test_newer_code_supersedes_older(manager, clock, test_user):
    first = await manager.issue(test_user)
    clock.advance(timedelta(hours=1))
    second = await manager.issue(test_user)

    assert await manager.validate(first.code, test_user) is False
    assert await manager.validate(second.code, test_user) is True
    assert await manager.validate(second.code, test_user) is False


@pytest.mark.asyncio
class TestResetCodeRaces:
    """Concurrent consumers of the same code."""

    async def test_concurrent_validate_has_one_winner(self, manager, records, test_user):
        issued = await manager.issue(test_user)

        results = await asyncio.gather(
            *(manager.validate(issued.code, test_user) for _ in range(6))
        )

        assert results.count(True) == 1
        assert results.count(False) == 5
        row = await records.find_one(ResetCode, ResetCode.id == issued.id)
        assert row.used is True
        assert row.invalid is False

    @pytest.mark.parametrize("round_", range(5))
    async def test_validate_racing_invalidate(self, manager, records, test_user, round_):
        issued = await manager.issue(test_user)

        validated, invalidated = await asyncio.gather(
            manager.validate(issued.code, test_user),
            manager.invalidate_active(test_user),
        )

        row = await records.find_one(ResetCode, ResetCode.id == issued.id)
        assert not (row.used and row.invalid)
        if validated:
            assert (row.used, row.invalid, invalidated) == (True, False, 0)
        else:
            assert (row.used, row.invalid, invalidated) == (False, True, 1)
