import asyncio
import logging
import sys

from aiogram import Bot, Dispatcher
from aiogram.enums import ParseMode
from aiogram.client.default import DefaultBotProperties
from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application
from aiohttp import web
from pydantic import ValidationError

from .config import Settings, get_settings
from .database.models import Base
from .database.session import create_db_engine, create_session_maker
from .handlers import start, program
from .middlewares.db import DbSessionMiddleware
from .services.identity import RegisteredUserIdentity
from .services.program_service import AiohttpProgramTransport, ProgramSubmissionPipeline
from .services.questionnaire import program_registry
from .services.wizard import WizardSessionManager


def build_dispatcher(settings: Settings, session_maker, transport: AiohttpProgramTransport) -> Dispatcher:
    """ Wires routers, middlewares and the questionnaire sessions into a dispatcher. """
    wizard_sessions = WizardSessionManager(
        registry=program_registry(),
        pipeline=ProgramSubmissionPipeline(transport),
        identity_factory=lambda telegram_id: RegisteredUserIdentity(session_maker, telegram_id),
        idle_timeout=settings.PROGRAM_SESSION_IDLE_TIMEOUT,
    )

    dp = Dispatcher(settings=settings, wizard_sessions=wizard_sessions)
    dp.update.middleware(DbSessionMiddleware(session_pool=session_maker))
    dp.include_router(start.router)
    dp.include_router(program.router)
    return dp


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        stream=sys.stdout,
    )

    try:
        settings = get_settings()
    except ValidationError as e:
        logging.error(f"Invalid configuration: {e}")
        raise

    engine = create_db_engine(settings.database_url)
    session_maker = create_session_maker(engine)
    transport = AiohttpProgramTransport(settings.PROGRAM_ENDPOINT_URL, timeout=settings.PROGRAM_REQUEST_TIMEOUT)

    bot = Bot(token=settings.BOT_TOKEN.get_secret_value(), default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    dp = build_dispatcher(settings, session_maker, transport)

    async def init_db():
        """ Creates the tables if they don't exist yet. """
        logging.info("Initializing database...")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logging.info("Database initialization complete.")

    async def on_shutdown():
        await transport.close()
        await engine.dispose()

    dp.startup.register(init_db)
    dp.shutdown.register(on_shutdown)

    if settings.WEBHOOK_HOST:
        logging.info("Starting bot in webhook mode...")
        webhook_url = f"{settings.WEBHOOK_HOST}{settings.WEBHOOK_PATH}"

        async def on_startup_webhook(bot: Bot):
            await bot.set_webhook(webhook_url)
            logging.info(f"Telegram Webhook set to {webhook_url}")

        async def on_shutdown_webhook(bot: Bot):
            logging.info("Shutting down and deleting Telegram webhook...")
            await bot.delete_webhook()

        dp.startup.register(on_startup_webhook)
        dp.shutdown.register(on_shutdown_webhook)

        app = web.Application()
        SimpleRequestHandler(dispatcher=dp, bot=bot).register(app, path=settings.WEBHOOK_PATH)
        setup_application(app, dp, bot=bot)
        web.run_app(app, host=settings.WEB_SERVER_HOST, port=settings.WEB_SERVER_PORT)
    else:
        asyncio.run(start_polling(dp, bot))


async def start_polling(dp: Dispatcher, bot: Bot):
    logging.info("Starting bot in polling mode...")
    await bot.delete_webhook(drop_pending_updates=True)
    await dp.start_polling(bot)


if __name__ == "__main__":
    try:
        main()
    except (KeyboardInterrupt, SystemExit):
        logging.info("Bot stopped.")
