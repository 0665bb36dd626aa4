import logging
from aiogram import Router
from aiogram.filters import CommandStart
from aiogram.types import Message
from aiogram.utils.markdown import hbold
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ..database.models import User
from ..keyboards.program import get_start_program_keyboard

router = Router()


@router.message(CommandStart())
async def command_start_handler(message: Message, session: AsyncSession) -> None:
    """
    This handler receives messages with `/start` command
    and registers the user if they don't exist.
    """
    result = await session.execute(select(User).where(User.telegram_id == message.from_user.id))
    user = result.scalar_one_or_none()

    if user is None:
        logging.info(f"Registering new user {message.from_user.id}")
        user = User(
            telegram_id=message.from_user.id,
            username=message.from_user.username,
        )
        session.add(user)
        await session.commit()

    await message.answer(
        f"Hi, {hbold(message.from_user.full_name)}!\n\n"
        "Answer a few questions to create your personalized fitness and nutrition plan.",
        reply_markup=get_start_program_keyboard()
    )
