import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from refbot.users.models import User, Withdrawal


def generate_referral_code() -> str:
    return uuid.uuid4().hex[:8]


class Storage(ABC):
    """
    Identity-keyed store for users and withdrawals.

    Update methods return the updated record, or None when the ID is unknown.
    None of the methods check balances; callers validate amounts first.
    """

    # Users

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]:
        ...

    @abstractmethod
    async def get_user_by_telegram_id(self, telegram_id: str) -> Optional[User]:
        ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]:
        ...

    @abstractmethod
    async def get_user_by_referral_code(self, referral_code: str) -> Optional[User]:
        ...

    @abstractmethod
    async def create_user(self, username: str, telegram_id: str, referral_code: str,
                          referred_by: Optional[str] = None) -> User:
        """Raises DuplicateUserError when telegram_id or referral_code is taken."""

    @abstractmethod
    async def update_balance(self, user_id: int, amount: int) -> Optional[User]:
        """Add amount to the balance; positive amounts also count as earnings."""

    @abstractmethod
    async def add_referral(self, user_id: int) -> Optional[User]:
        ...

    @abstractmethod
    async def update_verification_status(self, user_id: int, verified: bool) -> Optional[User]:
        ...

    @abstractmethod
    async def set_bank_details(self, user_id: int, details: str) -> Optional[User]:
        ...

    @abstractmethod
    async def get_all_users(self) -> List[User]:
        ...

    @abstractmethod
    async def get_user_rank(self, user_id: int) -> int:
        """1-based position by total referrals, 0 for unknown users. Ties are unspecified."""

    # Bonus cooldown

    @abstractmethod
    async def get_last_bonus_claim(self, user_id: int) -> Optional[datetime]:
        ...

    @abstractmethod
    async def set_last_bonus_claim(self, user_id: int, claimed_at: datetime) -> None:
        ...

    # Withdrawals

    @abstractmethod
    async def create_withdrawal(self, user_id: int, amount: int) -> Withdrawal:
        ...

    @abstractmethod
    async def get_withdrawals_by_user_id(self, user_id: int) -> List[Withdrawal]:
        ...

    @abstractmethod
    async def update_withdrawal_status(self, withdrawal_id: int, status: str) -> Optional[Withdrawal]:
        """
        processed_at is stamped whenever the new status is not pending.
        Raises ValueError for a status outside WithdrawalStatus.
        """

    @abstractmethod
    async def seed_demo_users(self) -> List[User]:
        ...

    async def close(self):
        pass
