import asyncio
import math
import weakref
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from loguru import logger
from refbot.commands import texts
from refbot.commands.milestones import Milestone, reached_milestone
from refbot.commands.types import (
    UNGATED_COMMANDS,
    BotCommand,
    BotResponse,
    Button,
    CommandType,
    ErrorKind,
    ResponseType,
)
from refbot.storage.base import Storage, generate_referral_code
from refbot.storage.exceptions import StorageError
from refbot.users.models import User

SATURDAY, SUNDAY = 5, 6
REFERRAL_CODE_ATTEMPTS = 10


@dataclass
class Registration:
    user: User
    created: bool
    referrer: Optional[User] = None
    milestone: Optional[Milestone] = None


class CommandProcessor:
    """
    Maps a BotCommand and the resolved user to a BotResponse.

    Failures a user can cause (no account, bad amount, weekday withdrawal,
    bonus cooldown) come back as error responses and are never raised.
    Balance changes for one user are serialised with a per-user lock.
    """

    def __init__(self, storage: Storage, *, referral_bonus: int = 1000, bonus_amount: int = 100,
                 bonus_cooldown: int = 60, bot_username: str = "NaijaValueorg_bot",
                 channel_url: str = "https://t.me/naijavalueofficial",
                 community_url: str = "https://t.me/naijavaluecommunity",
                 support_contact: str = "@naijavaluesupport",
                 clock: Callable[[], datetime] = datetime.now):
        self.storage = storage
        self.referral_bonus = referral_bonus
        self.bonus_amount = bonus_amount
        self.bonus_cooldown = bonus_cooldown
        self.bot_username = bot_username
        self.channel_url = channel_url
        self.community_url = community_url
        self.support_contact = support_contact
        self.clock = clock
        # Entries disappear once no coroutine holds the lock
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

        self._handlers = {
            CommandType.START: self._start,
            CommandType.BALANCE: self._balance,
            CommandType.STATS: self._stats,
            CommandType.REFER: self._refer,
            CommandType.WITHDRAW: self._withdraw,
            CommandType.HELP: self._help,
            CommandType.JOINED: self._joined,
            CommandType.PAYMENT_INFO: self._payment_info,
            CommandType.PAYMENT_METHOD: self._payment_method,
            CommandType.WITHDRAWAL_REQUEST: self._withdrawal_request,
            CommandType.EARN_BONUS: self._earn_bonus,
            CommandType.TOUR: self._tour,
        }

    @classmethod
    def from_settings(cls, storage: Storage, settings) -> "CommandProcessor":
        return cls(
            storage,
            referral_bonus=settings.REFERRAL_BONUS,
            bonus_amount=settings.EARN_BONUS,
            bonus_cooldown=settings.BONUS_COOLDOWN,
            bot_username=settings.BOT_USERNAME,
            channel_url=settings.CHANNEL_URL,
            community_url=settings.COMMUNITY_URL,
            support_contact=settings.SUPPORT_CONTACT,
        )

    def is_weekend(self) -> bool:
        return self.clock().weekday() in (SATURDAY, SUNDAY)

    def referral_link(self, user: User) -> str:
        return f"https://t.me/{self.bot_username}?start={user.referral_code}"

    def _user_lock(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    async def handle(self, command: BotCommand, user: Optional[User] = None) -> BotResponse:
        """Entry point for the bot: unverified users only get start and joined."""
        if command.type not in UNGATED_COMMANDS and (user is None or not user.is_verified):
            logger.info(f"Command {command.type.value} redirected to verification for "
                        f"{user.telegram_id if user else 'unknown user'}")
            return await self._start(BotCommand(CommandType.START), user)
        return await self.process(command, user)

    async def process(self, command: BotCommand, user: Optional[User] = None) -> BotResponse:
        handler = self._handlers.get(command.type)
        if handler is None:
            logger.warning(f"Unknown command: {command.name}")
            return BotResponse.failure(ErrorKind.UNKNOWN_COMMAND, texts.UNKNOWN_COMMAND)
        return await handler(command, user)

    async def register_user(self, telegram_id: str, username: str,
                            referral_code: Optional[str] = None) -> Registration:
        user = await self.storage.get_user_by_telegram_id(telegram_id)
        if user:
            return Registration(user=user, created=False)

        for _ in range(REFERRAL_CODE_ATTEMPTS):
            new_code = generate_referral_code()
            if not await self.storage.get_user_by_referral_code(new_code):
                break
        else:
            raise StorageError("Could not generate a unique referral code")

        user = await self.storage.create_user(
            username=username,
            telegram_id=telegram_id,
            referral_code=new_code,
            referred_by=referral_code,
        )
        logger.info(f"Registered user {username} ({telegram_id}), referred by {referral_code}")

        if not referral_code:
            return Registration(user=user, created=True)

        referrer = await self.storage.get_user_by_referral_code(referral_code)
        if not referrer:
            logger.warning(f"Referral code {referral_code} does not belong to any user")
            return Registration(user=user, created=True)

        async with self._user_lock(referrer.id):
            referrer = await self.storage.get_user(referrer.id) or referrer
            previous_referrals = referrer.total_referrals
            previous_earnings = referrer.total_earnings
            previous_balance = referrer.balance
            await self.storage.add_referral(referrer.id)
            referrer = await self.storage.update_balance(referrer.id, self.referral_bonus)

        milestone = reached_milestone(
            referrals=referrer.total_referrals,
            earnings=referrer.total_earnings,
            balance=referrer.balance,
            previous_referrals=previous_referrals,
            previous_earnings=previous_earnings,
            previous_balance=previous_balance,
        )
        logger.info(f"Referrer {referrer.telegram_id} credited {self.referral_bonus}, "
                    f"now {referrer.total_referrals} referrals")
        return Registration(user=user, created=True, referrer=referrer, milestone=milestone)

    # Handlers

    @staticmethod
    def _unregistered() -> BotResponse:
        return BotResponse.failure(ErrorKind.UNREGISTERED_USER, texts.REGISTER_FIRST)

    async def _start(self, command: BotCommand, user: Optional[User]) -> BotResponse:
        if not user or not user.is_verified:
            return BotResponse(
                type=ResponseType.WARNING,
                message=texts.VERIFICATION_REQUIRED,
                buttons=texts.verification_buttons(self.channel_url, self.community_url),
            )
        return BotResponse(
            type=ResponseType.TEXT,
            message=texts.welcome(self.referral_bonus) + "Would you like a quick tour of our features? 🎯",
            buttons=[[Button("🎯 Start Tour", data="/tour_start")], *texts.MENU_BUTTONS],
        )

    async def _tour(self, command: BotCommand, user: Optional[User]) -> BotResponse:
        if not user:
            return self._unregistered()
        step = texts.TOUR_STEPS.get(command.step)
        if step is None:
            return await self._start(command, user)
        message, buttons = step
        return BotResponse(type=ResponseType.TEXT, message=message, buttons=buttons)

    async def _balance(self, command: BotCommand, user: Optional[User]) -> BotResponse:
        if not user:
            return self._unregistered()
        return BotResponse(
            type=ResponseType.BALANCE,
            message=texts.balance(user.balance, user.total_referrals, user.total_earnings, self.referral_bonus),
        )

    async def _stats(self, command: BotCommand, user: Optional[User]) -> BotResponse:
        if not user:
            return self._unregistered()
        rank = await self.storage.get_user_rank(user.id)
        return BotResponse(
            type=ResponseType.STATS,
            message=texts.stats(user.username, user.balance, user.total_referrals, rank,
                                user.total_earnings, self.referral_bonus),
            data={"rank": rank},
        )

    async def _refer(self, command: BotCommand, user: Optional[User]) -> BotResponse:
        if not user:
            return self._unregistered()
        link = self.referral_link(user)
        return BotResponse(
            type=ResponseType.REFERRAL,
            message=texts.referral(link, user.total_referrals),
            data={"link": link},
        )

    async def _withdraw(self, command: BotCommand, user: Optional[User]) -> BotResponse:
        if not user:
            return self._unregistered()
        if not self.is_weekend():
            return BotResponse.failure(ErrorKind.WEEKEND_ONLY, texts.WEEKEND_ONLY)
        amount = command.amount
        if not amount or amount <= 0:
            return BotResponse.failure(ErrorKind.INVALID_AMOUNT, texts.INVALID_AMOUNT)

        async with self._user_lock(user.id):
            user = await self.storage.get_user(user.id) or user
            if amount > user.balance:
                return BotResponse.failure(ErrorKind.INSUFFICIENT_BALANCE, texts.insufficient_balance(user.balance))

            withdrawal = await self.storage.create_withdrawal(user.id, amount)
            updated = await self.storage.update_balance(user.id, -amount)

        new_balance = updated.balance if updated else user.balance - amount
        logger.info(f"User {user.username} requested withdrawal {withdrawal.id} of {amount}")
        return BotResponse(
            type=ResponseType.SUCCESS,
            message=texts.withdrawal_processed(amount, new_balance),
            data={
                "username": user.username,
                "telegram_id": user.telegram_id,
                "balance": new_balance,
                "amount": amount,
                "withdrawal_id": withdrawal.id,
                "bank_details": user.bank_details,
            },
        )

    async def _help(self, command: BotCommand, user: Optional[User]) -> BotResponse:
        return BotResponse(
            type=ResponseType.TEXT,
            message=texts.help_text(self.bonus_amount),
            buttons=[
                *texts.MENU_BUTTONS,
                [Button("📝 Withdrawal Request", data="/withdrawal_request"),
                 Button("🎁 Earn Bonus", data="/earn_bonus")],
            ],
        )

    async def _joined(self, command: BotCommand, user: Optional[User]) -> BotResponse:
        if not user:
            return BotResponse(type=ResponseType.TEXT, message=texts.START_FIRST)
        # Channel membership is taken on trust
        await self.storage.update_verification_status(user.id, True)
        logger.info(f"User {user.telegram_id} confirmed channel membership")
        return BotResponse(
            type=ResponseType.TEXT,
            message=texts.welcome(self.referral_bonus) + "Start earning today! 💰\nUse the buttons below to navigate:",
            buttons=[
                *texts.MENU_BUTTONS,
                [Button("📝 Withdrawal Request", data="/withdrawal_request"),
                 Button("📣 Join Channel", url=self.channel_url)],
            ],
        )

    async def _payment_info(self, command: BotCommand, user: Optional[User]) -> BotResponse:
        if not user:
            return self._unregistered()
        return BotResponse(
            type=ResponseType.TEXT,
            message=texts.payment_info(self.support_contact),
            buttons=[
                [Button("💳 Payment Method", data="/payment_method")],
                [Button("📝 Request Withdrawal", data="/withdrawal_request")],
                [texts.RETURN_TO_MENU],
            ],
        )

    async def _payment_method(self, command: BotCommand, user: Optional[User]) -> BotResponse:
        if not user:
            return self._unregistered()
        return BotResponse(
            type=ResponseType.TEXT,
            message=texts.PAYMENT_METHOD,
            buttons=[
                [Button("💵 Payment Info", data="/payment_info")],
                [Button("📝 Request Withdrawal", data="/withdrawal_request")],
                [texts.RETURN_TO_MENU],
            ],
        )

    async def _withdrawal_request(self, command: BotCommand, user: Optional[User]) -> BotResponse:
        if not user:
            return self._unregistered()
        if not self.is_weekend():
            return BotResponse.failure(
                ErrorKind.WEEKEND_ONLY,
                texts.withdrawal_schedule(user.username),
                buttons=[[texts.CHECK_BALANCE], [Button("🎁 Earn Bonus", data="/earn_bonus")]],
            )
        logger.info(f"User {user.username} requested the bank details form")
        return BotResponse(
            type=ResponseType.TEXT,
            message=texts.bank_details_form(user.bank_details),
            buttons=[[texts.CHECK_BALANCE], [texts.RETURN_TO_MENU]],
            data={
                "username": user.username,
                "balance": user.balance,
                "request_type": "bank_details_form",
            },
        )

    async def _earn_bonus(self, command: BotCommand, user: Optional[User]) -> BotResponse:
        if not user:
            return self._unregistered()

        async with self._user_lock(user.id):
            now = self.clock()
            last_claim = await self.storage.get_last_bonus_claim(user.id)
            if last_claim is not None:
                elapsed = (now - last_claim).total_seconds()
                if elapsed < self.bonus_cooldown:
                    current = await self.storage.get_user(user.id) or user
                    return BotResponse.failure(
                        ErrorKind.COOLDOWN_ACTIVE,
                        texts.bonus_cooldown(math.ceil(self.bonus_cooldown - elapsed), current.balance),
                        buttons=[[texts.CHECK_BALANCE], [texts.RETURN_TO_MENU]],
                        data={"seconds_left": math.ceil(self.bonus_cooldown - elapsed)},
                    )

            updated = await self.storage.update_balance(user.id, self.bonus_amount)
            await self.storage.set_last_bonus_claim(user.id, now)

        new_balance = updated.balance if updated else user.balance + self.bonus_amount
        return BotResponse(
            type=ResponseType.SUCCESS,
            message=texts.bonus_added(self.bonus_amount, new_balance),
            buttons=[
                [texts.CHECK_BALANCE],
                [Button("🎁 Claim Again", data="/earn_bonus")],
                [texts.RETURN_TO_MENU],
            ],
            data={"balance": new_balance},
        )
