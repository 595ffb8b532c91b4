from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine
from loguru import logger
from refbot.database import create_engine, create_session_maker, init_models
from refbot.storage.base import Storage
from refbot.storage.demo import demo_user_fields
from refbot.storage.exceptions import DuplicateUserError, StorageError
from refbot.users.dao import UserDAO, WithdrawalDAO
from refbot.users.models import User, Withdrawal, WithdrawalStatus


class DatabaseStorage(Storage):
    """Storage on top of SQLAlchemy; each call runs in its own session."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        session_maker = create_session_maker(engine)
        self.users = UserDAO(session_maker)
        self.withdrawals = WithdrawalDAO(session_maker)

    @classmethod
    async def connect(cls, database_url: str) -> "DatabaseStorage":
        engine = create_engine(database_url)
        await init_models(engine)
        return cls(engine)

    async def close(self):
        await self.engine.dispose()
        logger.info("Database engine disposed.")

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self.users.find_one_or_none_by_id(user_id)

    async def get_user_by_telegram_id(self, telegram_id: str) -> Optional[User]:
        return await self.users.find_one_or_none(telegram_id=telegram_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        # username is not unique, take the oldest match
        users = await self.users.find_all(username=username)
        return users[0] if users else None

    async def get_user_by_referral_code(self, referral_code: str) -> Optional[User]:
        return await self.users.find_one_or_none(referral_code=referral_code)

    async def _insert_user(self, **fields) -> User:
        if await self.get_user_by_telegram_id(fields["telegram_id"]):
            raise DuplicateUserError("telegram_id", fields["telegram_id"])
        if await self.get_user_by_referral_code(fields["referral_code"]):
            raise DuplicateUserError("referral_code", fields["referral_code"])
        try:
            return await self.users.add(**fields)
        except IntegrityError as e:
            raise StorageError(f"Could not create user {fields['telegram_id']}: {e}") from e

    async def create_user(self, username: str, telegram_id: str, referral_code: str,
                          referred_by: Optional[str] = None) -> User:
        return await self._insert_user(
            username=username,
            telegram_id=telegram_id,
            referral_code=referral_code,
            referred_by=referred_by or None,
            balance=0,
            total_earnings=0,
            total_referrals=0,
            is_active=True,
            is_verified=False,
            bank_details=None,
            last_bonus_at=None,
            joined_at=datetime.now(),
        )

    async def update_balance(self, user_id: int, amount: int) -> Optional[User]:
        return await self.users.update(
            user_id,
            balance=User.balance + amount,
            total_earnings=User.total_earnings + max(amount, 0),
        )

    async def add_referral(self, user_id: int) -> Optional[User]:
        return await self.users.update(user_id, total_referrals=User.total_referrals + 1)

    async def update_verification_status(self, user_id: int, verified: bool) -> Optional[User]:
        return await self.users.update(user_id, is_verified=verified)

    async def set_bank_details(self, user_id: int, details: str) -> Optional[User]:
        return await self.users.update(user_id, bank_details=details)

    async def get_all_users(self) -> List[User]:
        return await self.users.find_all()

    async def get_user_rank(self, user_id: int) -> int:
        ranked = await self.users.find_ranked()
        for position, user in enumerate(ranked, start=1):
            if user.id == user_id:
                return position
        return 0

    async def get_last_bonus_claim(self, user_id: int) -> Optional[datetime]:
        user = await self.get_user(user_id)
        return user.last_bonus_at if user else None

    async def set_last_bonus_claim(self, user_id: int, claimed_at: datetime) -> None:
        await self.users.update(user_id, last_bonus_at=claimed_at)

    async def create_withdrawal(self, user_id: int, amount: int) -> Withdrawal:
        return await self.withdrawals.add(
            user_id=user_id,
            amount=amount,
            status=WithdrawalStatus.PENDING.value,
            requested_at=datetime.now(),
            processed_at=None,
        )

    async def get_withdrawals_by_user_id(self, user_id: int) -> List[Withdrawal]:
        return await self.withdrawals.find_all(user_id=user_id)

    async def update_withdrawal_status(self, withdrawal_id: int, status: str) -> Optional[Withdrawal]:
        status = WithdrawalStatus(status).value
        values = {"status": status}
        if status != WithdrawalStatus.PENDING.value:
            values["processed_at"] = datetime.now()
        return await self.withdrawals.update(withdrawal_id, **values)

    async def seed_demo_users(self) -> List[User]:
        seeded = []
        for fields in demo_user_fields(datetime.now()):
            if await self.get_user_by_telegram_id(fields["telegram_id"]):
                continue
            seeded.append(await self._insert_user(**fields))
        logger.info(f"Seeded {len(seeded)} demo users")
        return seeded
