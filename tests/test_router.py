from unittest.mock import AsyncMock, MagicMock

import pytest
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import InlineKeyboardMarkup, ReplyKeyboardMarkup, User as TelegramUser

from refbot.commands import texts
from refbot.commands.types import BotCommand, BotResponse, Button, CommandType, ResponseType
from refbot.users.router import (
    WithdrawalStates,
    forward_withdrawal,
    notify_referrer,
    run_command,
    save_bank_details,
    send_bot_response,
    telegram_username,
)

CHAT_ID = 1001
ADMIN_CHATS = [-100111, -100222]


def telegram_error():
    return TelegramBadRequest(method=MagicMock(), message="Bad Request: chat not found")


@pytest.fixture
def bot():
    return AsyncMock()


@pytest.fixture
def state():
    return AsyncMock()


@pytest.fixture
def from_user():
    return TelegramUser(id=1001, is_bot=False, first_name="Alice", username="alice")


def test_telegram_username_fallback():
    assert telegram_username(TelegramUser(id=5, is_bot=False, first_name="X")) == "user5"


async def test_send_bot_response_builds_inline_keyboard(bot):
    response = BotResponse(ResponseType.TEXT, "hi", buttons=[[Button("Go", data="/balance"),
                                                               Button("Site", url="https://t.me/x")]])
    await send_bot_response(bot, CHAT_ID, response)

    kwargs = bot.send_message.await_args.kwargs
    assert kwargs["text"] == "hi"
    markup = kwargs["reply_markup"]
    assert isinstance(markup, InlineKeyboardMarkup)
    go, site = markup.inline_keyboard[0]
    assert go.callback_data == "/balance"
    assert site.url == "https://t.me/x"


async def test_send_bot_response_apologises_on_failure(bot):
    bot.send_message.side_effect = [telegram_error(), MagicMock()]
    await send_bot_response(bot, CHAT_ID, BotResponse(ResponseType.TEXT, "hi"))
    assert bot.send_message.await_count == 2
    assert bot.send_message.await_args.kwargs["text"] == texts.SEND_FAILED


async def test_send_bot_response_gives_up_quietly(bot):
    bot.send_message.side_effect = telegram_error()
    assert await send_bot_response(bot, CHAT_ID, BotResponse(ResponseType.TEXT, "hi")) is None


async def test_forward_withdrawal_reaches_every_chat(bot):
    response = BotResponse(ResponseType.SUCCESS, "ok", data={
        "username": "alice", "telegram_id": "1001", "balance": 4000,
        "amount": 1000, "withdrawal_id": 1, "bank_details": None,
    })
    bot.send_message.side_effect = [telegram_error(), MagicMock()]
    await forward_withdrawal(bot, ADMIN_CHATS, response)

    chat_ids = [call.kwargs["chat_id"] for call in bot.send_message.await_args_list]
    assert chat_ids == ADMIN_CHATS
    assert "₦1000" in bot.send_message.await_args.kwargs["text"]
    assert "Not Set" in bot.send_message.await_args.kwargs["text"]


async def test_notify_referrer_mentions_milestone(bot, processor, make_user):
    await make_user(telegram_id="1001", referral_code="ABC123")
    registration = await processor.register_user("2001", "bob", referral_code="ABC123")
    await notify_referrer(bot, registration, processor.referral_bonus)

    kwargs = bot.send_message.await_args.kwargs
    assert kwargs["chat_id"] == 1001
    assert "bob joined using your link" in kwargs["text"]
    assert "1 Referrals Milestone!" in kwargs["text"]


async def test_run_command_forwards_successful_withdrawal(bot, state, from_user, processor, make_user):
    await make_user(telegram_id="1001", balance=5000)
    await run_command(bot, CHAT_ID, from_user, BotCommand(CommandType.WITHDRAW, amount=1000),
                      processor, state, ADMIN_CHATS)

    chat_ids = [call.kwargs["chat_id"] for call in bot.send_message.await_args_list]
    assert chat_ids == [CHAT_ID, *ADMIN_CHATS]


async def test_run_command_does_not_forward_refusals(bot, state, from_user, processor, make_user):
    await make_user(telegram_id="1001", balance=100)
    await run_command(bot, CHAT_ID, from_user, BotCommand(CommandType.WITHDRAW, amount=1000),
                      processor, state, ADMIN_CHATS)
    assert bot.send_message.await_count == 1


async def test_run_command_opens_bank_details_form(bot, state, from_user, processor, make_user):
    await make_user(telegram_id="1001")
    await run_command(bot, CHAT_ID, from_user, BotCommand(CommandType.WITHDRAWAL_REQUEST),
                      processor, state, ADMIN_CHATS)
    state.set_state.assert_awaited_once_with(WithdrawalStates.waiting_for_bank_details)


async def test_run_command_joined_sends_menu(bot, state, from_user, processor, storage, make_user):
    user = await make_user(telegram_id="1001", verified=False)
    await run_command(bot, CHAT_ID, from_user, BotCommand(CommandType.JOINED),
                      processor, state, ADMIN_CHATS)

    assert (await storage.get_user(user.id)).is_verified is True
    assert isinstance(bot.send_message.await_args.kwargs["reply_markup"], ReplyKeyboardMarkup)


def text_message(text, from_user):
    message = MagicMock()
    message.text = text
    message.from_user = from_user
    message.chat.id = CHAT_ID
    message.answer = AsyncMock()
    return message


async def test_bank_details_are_saved(bot, state, from_user, processor, storage, make_user):
    user = await make_user(telegram_id="1001")
    message = text_message("0123456789\nOpay\nAlice A", from_user)
    await save_bank_details(message, bot, state, processor, ADMIN_CHATS)

    assert (await storage.get_user(user.id)).bank_details == "0123456789\nOpay\nAlice A"
    state.clear.assert_awaited()
    assert "Bank details saved" in message.answer.await_args.args[0]


async def test_blank_bank_details_keep_the_form_open(bot, state, from_user, processor, make_user):
    await make_user(telegram_id="1001")
    message = text_message("   ", from_user)
    await save_bank_details(message, bot, state, processor, ADMIN_CHATS)

    message.answer.assert_awaited_once_with(texts.BANK_DETAILS_EMPTY)
    state.clear.assert_not_awaited()


async def test_command_leaves_bank_details_form(bot, state, from_user, processor, storage, make_user):
    user = await make_user(telegram_id="1001", balance=700)
    message = text_message("/balance", from_user)
    await save_bank_details(message, bot, state, processor, ADMIN_CHATS)

    state.clear.assert_awaited()
    assert (await storage.get_user(user.id)).bank_details is None
    assert "Current Balance: ₦700" in bot.send_message.await_args.kwargs["text"]
