import logging
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database.models import User


class IdentityProvider(Protocol):
    async def resolve_token(self) -> Optional[str]:
        ...


class StaticIdentity:
    """ Identity with a fixed token, or no user at all when `token` is None. """
    def __init__(self, token: Optional[str]):
        self.token = token

    async def resolve_token(self) -> Optional[str]:
        return self.token


class RegisteredUserIdentity:
    """
    Resolves the current Telegram user to a token, provided the user
    registered through /start. Unregistered users have no token.
    """
    def __init__(self, session_pool: async_sessionmaker[AsyncSession], telegram_id: int):
        self.session_pool = session_pool
        self.telegram_id = telegram_id

    async def resolve_token(self) -> Optional[str]:
        async with self.session_pool() as session:
            result = await session.execute(select(User).where(User.telegram_id == self.telegram_id))
            user = result.scalar_one_or_none()
        if user is None:
            logging.info(f"User {self.telegram_id} is not registered, no identity token.")
            return None
        return str(user.telegram_id)
