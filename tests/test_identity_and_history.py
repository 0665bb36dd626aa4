from unittest.mock import AsyncMock, MagicMock

import pytest

from fitbot.database.models import ProgramRequest, User
from fitbot.services.identity import RegisteredUserIdentity, StaticIdentity
from fitbot.services.outcomes import RetryableFailure, Success, not_authenticated
from fitbot.services.program_history import outcome_status, record_submission


def _session_returning(user):
    result = MagicMock()
    result.scalar_one_or_none.return_value = user
    session = MagicMock()
    session.execute = AsyncMock(return_value=result)
    session.commit = AsyncMock()
    return session


def _pool_for(session):
    pool = MagicMock()
    pool.return_value.__aenter__ = AsyncMock(return_value=session)
    pool.return_value.__aexit__ = AsyncMock(return_value=False)
    return pool


@pytest.mark.asyncio
async def test_registered_user_resolves_to_telegram_id():
    session = _session_returning(User(id=1, telegram_id=42, username="alex"))

    token = await RegisteredUserIdentity(_pool_for(session), 42).resolve_token()

    assert token == "42"
    session.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_unregistered_user_has_no_token():
    session = _session_returning(None)

    assert await RegisteredUserIdentity(_pool_for(session), 42).resolve_token() is None


@pytest.mark.asyncio
async def test_static_identity():
    assert await StaticIdentity("abc").resolve_token() == "abc"
    assert await StaticIdentity(None).resolve_token() is None


def test_outcome_status():
    assert outcome_status(Success()) == "success"
    assert outcome_status(RetryableFailure("db down")) == "retryable_failure"
    assert outcome_status(not_authenticated()) == "fatal_failure"


@pytest.mark.asyncio
async def test_record_submission_stores_outcome():
    session = _session_returning(User(id=7, telegram_id=42))

    request = await record_submission(session, 42, RetryableFailure("db down"))

    assert isinstance(request, ProgramRequest)
    assert request.user_id == 7
    assert request.status == "retryable_failure"
    assert request.message == "db down"
    session.add.assert_called_once_with(request)
    session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_record_submission_skips_unknown_user():
    session = _session_returning(None)

    assert await record_submission(session, 42, Success()) is None
    session.add.assert_not_called()
    session.commit.assert_not_awaited()
