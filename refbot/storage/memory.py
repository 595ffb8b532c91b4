from datetime import datetime
from typing import Dict, List, Optional

from loguru import logger
from refbot.storage.base import Storage
from refbot.storage.demo import demo_user_fields
from refbot.storage.exceptions import DuplicateUserError
from refbot.users.models import User, Withdrawal, WithdrawalStatus


class MemoryStorage(Storage):
    """
    Process-lifetime store backed by two dicts keyed by record ID.
    Lookups other than by ID are linear scans. No locking: callers that
    need read-modify-write atomicity serialise on their side.
    """

    def __init__(self):
        self.users: Dict[int, User] = {}
        self.withdrawals: Dict[int, Withdrawal] = {}
        self.current_user_id = 1
        self.current_withdrawal_id = 1

    def _find_user(self, **filter_by) -> Optional[User]:
        (field, value), = filter_by.items()
        return next((user for user in self.users.values() if getattr(user, field) == value), None)

    async def get_user(self, user_id: int) -> Optional[User]:
        return self.users.get(user_id)

    async def get_user_by_telegram_id(self, telegram_id: str) -> Optional[User]:
        return self._find_user(telegram_id=telegram_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        return self._find_user(username=username)

    async def get_user_by_referral_code(self, referral_code: str) -> Optional[User]:
        return self._find_user(referral_code=referral_code)

    def _insert_user(self, **fields) -> User:
        if self._find_user(telegram_id=fields["telegram_id"]):
            raise DuplicateUserError("telegram_id", fields["telegram_id"])
        if self._find_user(referral_code=fields["referral_code"]):
            raise DuplicateUserError("referral_code", fields["referral_code"])

        user = User(id=self.current_user_id, **fields)
        self.users[user.id] = user
        self.current_user_id += 1
        return user

    async def create_user(self, username: str, telegram_id: str, referral_code: str,
                          referred_by: Optional[str] = None) -> User:
        user = self._insert_user(
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
        logger.info(f"Created user {user.id} (telegram_id={telegram_id})")
        return user

    async def update_balance(self, user_id: int, amount: int) -> Optional[User]:
        user = self.users.get(user_id)
        if not user:
            return None
        user.balance += amount
        if amount > 0:
            user.total_earnings += amount
        return user

    async def add_referral(self, user_id: int) -> Optional[User]:
        user = self.users.get(user_id)
        if not user:
            return None
        user.total_referrals += 1
        return user

    async def update_verification_status(self, user_id: int, verified: bool) -> Optional[User]:
        user = self.users.get(user_id)
        if not user:
            return None
        user.is_verified = verified
        return user

    async def set_bank_details(self, user_id: int, details: str) -> Optional[User]:
        user = self.users.get(user_id)
        if not user:
            return None
        user.bank_details = details
        return user

    async def get_all_users(self) -> List[User]:
        return list(self.users.values())

    async def get_user_rank(self, user_id: int) -> int:
        # sorted() is stable, so ties keep insertion order
        ranked = sorted(self.users.values(), key=lambda user: user.total_referrals, reverse=True)
        for position, user in enumerate(ranked, start=1):
            if user.id == user_id:
                return position
        return 0

    async def get_last_bonus_claim(self, user_id: int) -> Optional[datetime]:
        user = self.users.get(user_id)
        return user.last_bonus_at if user else None

    async def set_last_bonus_claim(self, user_id: int, claimed_at: datetime) -> None:
        user = self.users.get(user_id)
        if user:
            user.last_bonus_at = claimed_at

    async def create_withdrawal(self, user_id: int, amount: int) -> Withdrawal:
        withdrawal = Withdrawal(
            id=self.current_withdrawal_id,
            user_id=user_id,
            amount=amount,
            status=WithdrawalStatus.PENDING.value,
            requested_at=datetime.now(),
            processed_at=None,
        )
        self.withdrawals[withdrawal.id] = withdrawal
        self.current_withdrawal_id += 1
        logger.info(f"Withdrawal {withdrawal.id} of {amount} created for user {user_id}")
        return withdrawal

    async def get_withdrawals_by_user_id(self, user_id: int) -> List[Withdrawal]:
        return [w for w in self.withdrawals.values() if w.user_id == user_id]

    async def update_withdrawal_status(self, withdrawal_id: int, status: str) -> Optional[Withdrawal]:
        status = WithdrawalStatus(status).value
        withdrawal = self.withdrawals.get(withdrawal_id)
        if not withdrawal:
            return None
        withdrawal.status = status
        if status != WithdrawalStatus.PENDING.value:
            withdrawal.processed_at = datetime.now()
        return withdrawal

    async def seed_demo_users(self) -> List[User]:
        seeded = []
        for fields in demo_user_fields(datetime.now()):
            if self._find_user(telegram_id=fields["telegram_id"]):
                continue
            seeded.append(self._insert_user(**fields))
        logger.info(f"Seeded {len(seeded)} demo users")
        return seeded
