import asyncio
import sys
from typing import List

import uvicorn
from aiogram import Bot, Dispatcher, types
from aiogram.client.default import DefaultBotProperties
from aiogram.dispatcher.middlewares.base import BaseMiddleware
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramAPIError
from aiogram.fsm.storage.memory import MemoryStorage as FSMMemoryStorage
from aiogram.types import BotCommand, BotCommandScopeDefault, ErrorEvent
from loguru import logger
from pydantic import ValidationError

from refbot.commands.processor import CommandProcessor
from refbot.config import Settings, get_settings, setup_logging
from refbot.storage.base import Storage
from refbot.storage.memory import MemoryStorage
from refbot.storage.sql import DatabaseStorage
from refbot.users.router import user_router
from refbot.web_app import create_app

BOT_COMMANDS = [
    BotCommand(command='start', description='Start or restart the bot'),
    BotCommand(command='balance', description='Check your current balance'),
    BotCommand(command='stats', description='View your referral statistics'),
    BotCommand(command='refer', description='Get your referral link'),
    BotCommand(command='withdraw', description='Request a withdrawal (weekends only)'),
    BotCommand(command='withdrawal_request', description='Submit a withdrawal request'),
    BotCommand(command='earn_bonus', description='Claim the periodic bonus'),
    BotCommand(command='payment_info', description='Payment methods and info'),
    BotCommand(command='payment_method', description='Account details for payments'),
    BotCommand(command='help', description='Show available commands'),
]


# Middleware that logs every incoming update before the handlers run
class IncomingLoggingMiddleware(BaseMiddleware):
    async def __call__(self, handler, event, data: dict):
        if isinstance(event, types.Message):
            logger.debug(f"Message from {event.from_user.id if event.from_user else None}: {event.text}")
        elif isinstance(event, types.CallbackQuery):
            logger.debug(f"Callback from {event.from_user.id}: {event.data}")
        return await handler(event, data)


async def build_storage(settings: Settings) -> Storage:
    if settings.STORAGE == "database":
        if not settings.DB_URL:
            raise ValueError("STORAGE=database requires DB_URL")
        storage = await DatabaseStorage.connect(settings.DB_URL)
    else:
        storage = MemoryStorage()
    logger.info(f"Using {type(storage).__name__}")
    if settings.SEED_DEMO_USERS:
        await storage.seed_demo_users()
    return storage


# Bot command menu
async def set_commands(bot: Bot):
    await bot.set_my_commands(BOT_COMMANDS, BotCommandScopeDefault())


# Runs when polling starts
async def start_bot(bot: Bot, admin_ids: List[int]):
    await set_commands(bot)
    for admin_id in admin_ids:
        try:
            await bot.send_message(admin_id, 'Bot started 🥳')
        except TelegramAPIError as e:
            logger.warning(f"Could not notify admin {admin_id}: {e}")
    logger.info("Bot started.")


# Runs when polling stops
async def stop_bot(bot: Bot, admin_ids: List[int]):
    for admin_id in admin_ids:
        try:
            await bot.send_message(admin_id, 'Bot stopped 😔')
        except TelegramAPIError as e:
            logger.warning(f"Could not notify admin {admin_id}: {e}")
    logger.error("Bot stopped!")


async def on_error(event: ErrorEvent):
    logger.opt(exception=event.exception).error(f"Unhandled error while processing update: {event.exception}")
    return True


def setup_bot(settings: Settings, processor: CommandProcessor) -> Dispatcher:
    dp = Dispatcher(storage=FSMMemoryStorage())
    dp["processor"] = processor
    dp["admin_ids"] = settings.ADMIN_IDS
    dp["withdrawal_chat_ids"] = settings.WITHDRAWAL_CHAT_IDS

    dp.message.outer_middleware(IncomingLoggingMiddleware())
    dp.callback_query.outer_middleware(IncomingLoggingMiddleware())
    dp.errors.register(on_error)
    dp.include_router(user_router)

    dp.startup.register(start_bot)
    dp.shutdown.register(stop_bot)
    return dp


# Bot polling and the FastAPI server share one event loop
async def run_all(settings: Settings):
    storage = await build_storage(settings)
    processor = CommandProcessor.from_settings(storage, settings)
    bot = Bot(token=settings.BOT_TOKEN,
              default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    dp = setup_bot(settings, processor)

    logger.info("Starting bot polling...")
    bot_task = asyncio.create_task(dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types()))

    logger.info("Starting FastAPI server...")
    config = uvicorn.Config(create_app(storage, settings), host=settings.HOST, port=settings.PORT, log_level="info")
    server = uvicorn.Server(config)
    fastapi_task = asyncio.create_task(server.serve())

    try:
        await asyncio.gather(bot_task, fastapi_task)
    finally:
        await bot.session.close()
        await storage.close()


def main():
    try:
        settings = get_settings()
    except ValidationError as e:
        logger.critical(f"Invalid configuration, refusing to start: {e}")
        sys.exit(1)
    setup_logging(settings)
    asyncio.run(run_all(settings))


if __name__ == "__main__":
    main()
