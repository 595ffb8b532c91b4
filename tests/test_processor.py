import gc

import pytest

from refbot.commands import texts
from refbot.commands.processor import CommandProcessor
from refbot.commands.types import BotCommand, CommandType, ErrorKind, ResponseType

from conftest import MONDAY, SUNDAY


@pytest.mark.parametrize("command_type", [
    CommandType.BALANCE, CommandType.STATS, CommandType.REFER, CommandType.WITHDRAW,
    CommandType.HELP, CommandType.EARN_BONUS, CommandType.PAYMENT_INFO,
])
async def test_unverified_user_is_sent_to_verification(processor, make_user, command_type):
    user = await make_user(verified=False)
    response = await processor.handle(BotCommand(command_type, amount=100), user)
    assert response.type is ResponseType.WARNING
    assert response.message == texts.VERIFICATION_REQUIRED
    assert response.buttons[-1][0].data == "/joined"


async def test_missing_user_is_sent_to_verification(processor):
    response = await processor.handle(BotCommand(CommandType.BALANCE), None)
    assert response.type is ResponseType.WARNING


async def test_joined_verifies_user(processor, storage, make_user):
    user = await make_user(verified=False)
    response = await processor.handle(BotCommand(CommandType.JOINED), user)
    assert response.type is ResponseType.TEXT
    assert (await storage.get_user(user.id)).is_verified is True

    balance = await processor.handle(BotCommand(CommandType.BALANCE), await storage.get_user(user.id))
    assert balance.type is ResponseType.BALANCE


async def test_joined_without_account(processor):
    response = await processor.handle(BotCommand(CommandType.JOINED), None)
    assert response.message == texts.START_FIRST


async def test_start_for_verified_user_offers_tour(processor, make_user):
    user = await make_user()
    response = await processor.handle(BotCommand(CommandType.START), user)
    assert response.type is ResponseType.TEXT
    assert response.buttons[0][0].data == "/tour_start"


async def test_balance(processor, make_user):
    user = await make_user(balance=2500)
    response = await processor.handle(BotCommand(CommandType.BALANCE), user)
    assert response.type is ResponseType.BALANCE
    assert "Current Balance: ₦2500" in response.message


async def test_stats_reports_rank(processor, make_user):
    user = await make_user()
    response = await processor.handle(BotCommand(CommandType.STATS), user)
    assert response.type is ResponseType.STATS
    assert response.data == {"rank": 1}
    assert "Rank: #1" in response.message


async def test_refer_builds_link(processor, make_user):
    user = await make_user(referral_code="ABC123")
    response = await processor.handle(BotCommand(CommandType.REFER), user)
    assert response.type is ResponseType.REFERRAL
    assert response.data["link"] == "https://t.me/NaijaValueorg_bot?start=ABC123"


async def test_withdraw_on_weekday_is_refused(processor, storage, clock, make_user):
    clock.now = MONDAY
    user = await make_user(balance=5000)
    response = await processor.handle(BotCommand(CommandType.WITHDRAW, amount=1000), user)
    assert response.type is ResponseType.ERROR
    assert response.error is ErrorKind.WEEKEND_ONLY
    assert (await storage.get_user(user.id)).balance == 5000
    assert await storage.get_withdrawals_by_user_id(user.id) == []


async def test_withdraw_on_sunday(processor, storage, clock, make_user):
    clock.now = SUNDAY
    user = await make_user(balance=5000)
    response = await processor.handle(BotCommand(CommandType.WITHDRAW, amount=1000), user)
    assert response.type is ResponseType.SUCCESS


async def test_withdraw_invalid_amount(processor, make_user):
    user = await make_user(balance=5000)
    response = await processor.handle(BotCommand(CommandType.WITHDRAW, amount=0), user)
    assert response.error is ErrorKind.INVALID_AMOUNT


async def test_withdraw_insufficient_balance_changes_nothing(processor, storage, make_user):
    user = await make_user(balance=500)
    response = await processor.handle(BotCommand(CommandType.WITHDRAW, amount=1000), user)
    assert response.error is ErrorKind.INSUFFICIENT_BALANCE
    assert "₦500" in response.message
    assert (await storage.get_user(user.id)).balance == 500
    assert await storage.get_withdrawals_by_user_id(user.id) == []


async def test_withdraw_success_debits_and_records(processor, storage, make_user):
    user = await make_user(balance=5000)
    await storage.set_bank_details(user.id, "0123456789\nOpay\nAlice A")
    response = await processor.handle(BotCommand(CommandType.WITHDRAW, amount=1000), user)

    assert response.type is ResponseType.SUCCESS
    stored = await storage.get_user(user.id)
    assert stored.balance == 4000
    assert stored.total_earnings == 5000
    withdrawals = await storage.get_withdrawals_by_user_id(user.id)
    assert len(withdrawals) == 1
    assert withdrawals[0].amount == 1000
    assert withdrawals[0].status == "pending"
    assert response.data["withdrawal_id"] == withdrawals[0].id
    assert response.data["balance"] == 4000
    assert response.data["bank_details"] == "0123456789\nOpay\nAlice A"


async def test_withdraw_whole_balance(processor, storage, make_user):
    user = await make_user(balance=1000)
    response = await processor.handle(BotCommand(CommandType.WITHDRAW, amount=1000), user)
    assert response.type is ResponseType.SUCCESS
    assert (await storage.get_user(user.id)).balance == 0


async def test_withdrawal_request_on_weekday(processor, clock, make_user):
    clock.now = MONDAY
    user = await make_user()
    response = await processor.handle(BotCommand(CommandType.WITHDRAWAL_REQUEST), user)
    assert response.error is ErrorKind.WEEKEND_ONLY
    assert "Withdrawal opens" in response.message


async def test_withdrawal_request_on_weekend_asks_for_bank_details(processor, make_user):
    user = await make_user(balance=1500)
    response = await processor.handle(BotCommand(CommandType.WITHDRAWAL_REQUEST), user)
    assert response.type is ResponseType.TEXT
    assert response.data["request_type"] == "bank_details_form"
    assert "Not Set" in response.message


async def test_earn_bonus_cooldown(processor, storage, clock, make_user):
    user = await make_user()
    first = await processor.handle(BotCommand(CommandType.EARN_BONUS), user)
    assert first.type is ResponseType.SUCCESS
    assert (await storage.get_user(user.id)).balance == 100

    clock.advance(30)
    second = await processor.handle(BotCommand(CommandType.EARN_BONUS), user)
    assert second.error is ErrorKind.COOLDOWN_ACTIVE
    assert second.data["seconds_left"] == 30
    assert (await storage.get_user(user.id)).balance == 100

    clock.advance(30)
    third = await processor.handle(BotCommand(CommandType.EARN_BONUS), user)
    assert third.type is ResponseType.SUCCESS
    stored = await storage.get_user(user.id)
    assert stored.balance == 200
    assert stored.total_earnings == 200


async def test_cooldown_rounds_seconds_up(processor, clock, make_user):
    user = await make_user()
    await processor.handle(BotCommand(CommandType.EARN_BONUS), user)
    clock.advance(59.5)
    response = await processor.handle(BotCommand(CommandType.EARN_BONUS), user)
    assert response.data["seconds_left"] == 1


async def test_help_works_without_storage_reads(processor, make_user):
    user = await make_user()
    response = await processor.handle(BotCommand(CommandType.HELP), user)
    assert "/earn_bonus - Earn 100 naira bonus" in response.message


async def test_payment_pages(processor, make_user):
    user = await make_user()
    info = await processor.handle(BotCommand(CommandType.PAYMENT_INFO), user)
    method = await processor.handle(BotCommand(CommandType.PAYMENT_METHOD), user)
    assert "@naijavaluesupport" in info.message
    assert method.message == texts.PAYMENT_METHOD


async def test_unknown_command(processor, make_user):
    user = await make_user()
    response = await processor.handle(BotCommand(CommandType.UNKNOWN, name="foo"), user)
    assert response.error is ErrorKind.UNKNOWN_COMMAND
    assert response.message == texts.UNKNOWN_COMMAND


async def test_tour(processor, make_user):
    user = await make_user()
    first = await processor.handle(BotCommand(CommandType.TOUR, step=1), user)
    assert first.message.startswith("1️⃣")
    last = await processor.handle(BotCommand(CommandType.TOUR, step=4), user)
    assert last.buttons[-1][0].data == "/start"
    fallback = await processor.handle(BotCommand(CommandType.TOUR, step=9), user)
    assert fallback.buttons[0][0].data == "/tour_start"


async def test_process_without_user_reports_unregistered(processor):
    response = await processor.process(BotCommand(CommandType.BALANCE), None)
    assert response.error is ErrorKind.UNREGISTERED_USER


async def test_custom_amounts(storage, clock, make_user):
    processor = CommandProcessor(storage, bonus_amount=250, bonus_cooldown=10, clock=clock)
    user = await make_user()
    response = await processor.handle(BotCommand(CommandType.EARN_BONUS), user)
    assert response.data["balance"] == 250
    clock.advance(10)
    again = await processor.handle(BotCommand(CommandType.EARN_BONUS), user)
    assert again.type is ResponseType.SUCCESS


async def test_user_locks_are_released_after_use(processor, make_user):
    user = await make_user()
    held = processor._user_lock(user.id)
    assert processor._user_lock(user.id) is held

    del held
    gc.collect()
    await processor.handle(BotCommand(CommandType.EARN_BONUS), user)
    gc.collect()
    assert len(processor._locks) == 0
