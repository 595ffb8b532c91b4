from typing import List, Optional

from aiogram import Bot, F
from aiogram.dispatcher.router import Router
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import CommandObject, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import CallbackQuery, Message, User as TelegramUser
from loguru import logger

from refbot.commands import texts
from refbot.commands.processor import CommandProcessor, Registration
from refbot.commands.types import BotCommand, BotResponse, CommandType, ResponseType, parse_command
from refbot.users.keyboards import markup_kb
from refbot.users.keyboards.inline_kb import response_keyboard

user_router = Router()


class WithdrawalStates(StatesGroup):
    waiting_for_bank_details = State()


def telegram_username(from_user: TelegramUser) -> str:
    return from_user.username or f"user{from_user.id}"


async def send_bot_response(bot: Bot, chat_id: int, response: BotResponse) -> Optional[Message]:
    """Send a response; on a Telegram error log it and try a plain apology instead."""
    try:
        return await bot.send_message(
            chat_id=chat_id,
            text=response.message,
            reply_markup=response_keyboard(response.buttons),
        )
    except TelegramAPIError as e:
        logger.error(f"Error sending bot response to {chat_id}: {e}")
    try:
        return await bot.send_message(chat_id=chat_id, text=texts.SEND_FAILED)
    except TelegramAPIError as e:
        logger.error(f"Error sending apology to {chat_id}: {e}")
        return None


async def notify(bot: Bot, chat_id: int, text: str) -> bool:
    try:
        await bot.send_message(chat_id=chat_id, text=text)
        return True
    except TelegramAPIError as e:
        logger.error(f"Could not notify chat {chat_id}: {e}")
        return False


async def notify_referrer(bot: Bot, registration: Registration, referral_bonus: int):
    referrer = registration.referrer
    if referrer is None:
        return
    text = texts.new_referral(registration.user.username, referral_bonus, referrer.total_referrals)
    if registration.milestone:
        text += f"\n\n🏆 {registration.milestone.title}\n{registration.milestone.description}"
    await notify(bot, int(referrer.telegram_id), text)


async def forward_withdrawal(bot: Bot, chat_ids: List[int], response: BotResponse):
    data = response.data or {}
    text = texts.withdrawal_notice(
        username=data.get("username", ""),
        telegram_id=data.get("telegram_id", ""),
        amount=data.get("amount", 0),
        new_balance=data.get("balance", 0),
        bank_details=data.get("bank_details"),
    )
    for chat_id in chat_ids:
        if await notify(bot, chat_id, text):
            logger.info(f"Withdrawal {data.get('withdrawal_id')} forwarded to {chat_id}")


async def run_command(bot: Bot, chat_id: int, from_user: TelegramUser, command: BotCommand,
                      processor: CommandProcessor, state: FSMContext,
                      withdrawal_chat_ids: List[int]) -> Optional[Message]:
    user = await processor.storage.get_user_by_telegram_id(str(from_user.id))
    response = await processor.handle(command, user)
    logger.info(f"{command.type.value} from {from_user.id}: {response.type.value}")
    result = await send_bot_response(bot, chat_id, response)

    if response.data and response.data.get("request_type") == "bank_details_form":
        await state.set_state(WithdrawalStates.waiting_for_bank_details)
    elif command.type is CommandType.WITHDRAW and response.type is ResponseType.SUCCESS:
        await forward_withdrawal(bot, withdrawal_chat_ids, response)
    elif command.type is CommandType.JOINED and user is not None:
        try:
            await bot.send_message(
                chat_id=chat_id,
                text="👇 Use the buttons below to navigate 👇",
                reply_markup=markup_kb.main_menu_keyboard(),
            )
        except TelegramAPIError as e:
            logger.error(f"Error sending main menu to {chat_id}: {e}")
    return result


@user_router.message(CommandStart())
async def cmd_start(message: Message, command: CommandObject, bot: Bot, state: FSMContext,
                    processor: CommandProcessor):
    await state.clear()
    start = parse_command(f"/start {command.args or ''}")
    registration = await processor.register_user(
        telegram_id=str(message.from_user.id),
        username=telegram_username(message.from_user),
        referral_code=start.referral_code,
    )
    if registration.referrer:
        await notify_referrer(bot, registration, processor.referral_bonus)

    response = await processor.handle(start, registration.user)
    return await send_bot_response(bot, message.chat.id, response)


@user_router.message(WithdrawalStates.waiting_for_bank_details, F.text)
async def save_bank_details(message: Message, bot: Bot, state: FSMContext, processor: CommandProcessor,
                            withdrawal_chat_ids: List[int]):
    command = parse_command(message.text)
    if command:
        # Any command or menu button leaves the form
        await state.clear()
        return await run_command(bot, message.chat.id, message.from_user, command,
                                 processor, state, withdrawal_chat_ids)

    details = message.text.strip()
    if not details:
        return await message.answer(texts.BANK_DETAILS_EMPTY)

    user = await processor.storage.get_user_by_telegram_id(str(message.from_user.id))
    await state.clear()
    if not user:
        return await message.answer(texts.REGISTER_FIRST)

    await processor.storage.set_bank_details(user.id, details)
    logger.info(f"Bank details saved for user {user.telegram_id}")
    return await message.answer(texts.bank_details_saved(details), reply_markup=markup_kb.main_menu_keyboard())


@user_router.message(F.text)
async def handle_text(message: Message, bot: Bot, state: FSMContext, processor: CommandProcessor,
                      withdrawal_chat_ids: List[int]):
    command = parse_command(message.text)
    if command is None:
        logger.debug(f"Ignoring plain text from {message.from_user.id}")
        return None
    return await run_command(bot, message.chat.id, message.from_user, command,
                             processor, state, withdrawal_chat_ids)


@user_router.callback_query(F.data.startswith("/"))
async def handle_callback(callback: CallbackQuery, bot: Bot, state: FSMContext, processor: CommandProcessor,
                          withdrawal_chat_ids: List[int]):
    try:
        command = parse_command(callback.data)
        if command and callback.message:
            await run_command(bot, callback.message.chat.id, callback.from_user, command,
                              processor, state, withdrawal_chat_ids)
    finally:
        # Always answer to remove the loading state
        try:
            await callback.answer()
        except TelegramAPIError as e:
            logger.error(f"Error answering callback query: {e}")
