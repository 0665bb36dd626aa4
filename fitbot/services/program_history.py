import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.models import ProgramRequest, User
from .outcomes import FatalFailure, SubmissionOutcome, Success


def outcome_status(outcome: SubmissionOutcome) -> str:
    if isinstance(outcome, Success):
        return "success"
    if isinstance(outcome, FatalFailure):
        return "fatal_failure"
    return "retryable_failure"


async def record_submission(session: AsyncSession, telegram_id: int, outcome: SubmissionOutcome) -> Optional[ProgramRequest]:
    """
    Stores the outcome of a submission attempt for a registered user.
    Returns None (and stores nothing) when the user is unknown.
    """
    user = (await session.execute(select(User).where(User.telegram_id == telegram_id))).scalar_one_or_none()
    if user is None:
        logging.warning(f"Not recording program request: user {telegram_id} is not registered.")
        return None

    request = ProgramRequest(
        user_id=user.id,
        status=outcome_status(outcome),
        message=outcome.message,
    )
    session.add(request)
    await session.commit()
    return request


async def list_submissions(session: AsyncSession, telegram_id: int) -> List[ProgramRequest]:
    result = await session.execute(
        select(ProgramRequest)
        .join(User, ProgramRequest.user_id == User.id)
        .where(User.telegram_id == telegram_id)
        .order_by(ProgramRequest.id)
    )
    return list(result.scalars().all())
