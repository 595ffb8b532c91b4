from datetime import datetime, timedelta

import pytest

from refbot.commands.processor import CommandProcessor
from refbot.storage.memory import MemoryStorage

SATURDAY = datetime(2024, 6, 1, 12, 0)
SUNDAY = datetime(2024, 6, 2, 12, 0)
MONDAY = datetime(2024, 6, 3, 12, 0)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def clock():
    return FakeClock(SATURDAY)


@pytest.fixture
def processor(storage, clock):
    return CommandProcessor(storage, clock=clock)


@pytest.fixture
def make_user(storage):
    async def _make_user(telegram_id="1001", username="alice", referral_code=None,
                         balance=0, verified=True):
        user = await storage.create_user(
            username=username,
            telegram_id=telegram_id,
            referral_code=referral_code or f"code{telegram_id}",
        )
        if balance:
            await storage.update_balance(user.id, balance)
        if verified:
            await storage.update_verification_status(user.id, True)
        return await storage.get_user(user.id)

    return _make_user
