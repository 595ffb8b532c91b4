from dataclasses import dataclass
from enum import Enum
from typing import Optional


class MilestoneType(str, Enum):
    REFERRALS = "referrals"
    EARNINGS = "earnings"
    BALANCE = "balance"


REFERRAL_MILESTONES = (1, 5, 10, 20, 50, 100)
EARNINGS_MILESTONES = (1000, 5000, 10000, 20000, 50000, 100000)
BALANCE_MILESTONES = (1000, 5000, 10000, 20000, 50000, 100000)


@dataclass(frozen=True)
class Milestone:
    type: MilestoneType
    amount: int
    title: str
    description: str


def _crossed(thresholds, previous: int, current: int) -> Optional[int]:
    return next((m for m in thresholds if previous < m <= current), None)


def reached_milestone(referrals: int, earnings: int, balance: int,
                      previous_referrals: int = 0, previous_earnings: int = 0,
                      previous_balance: int = 0) -> Optional[Milestone]:
    """
    First milestone crossed between the previous and current counters.
    Referrals are checked before earnings, earnings before balance.
    """
    amount = _crossed(REFERRAL_MILESTONES, previous_referrals, referrals)
    if amount is not None:
        return Milestone(
            type=MilestoneType.REFERRALS,
            amount=amount,
            title=f"{amount} Referrals Milestone!",
            description=f"You've reached {amount} referrals! Keep inviting friends to earn more.",
        )

    amount = _crossed(EARNINGS_MILESTONES, previous_earnings, earnings)
    if amount is not None:
        return Milestone(
            type=MilestoneType.EARNINGS,
            amount=amount,
            title=f"₦{amount:,} Earnings Milestone!",
            description=f"You've earned a total of ₦{amount:,}! Great job!",
        )

    amount = _crossed(BALANCE_MILESTONES, previous_balance, balance)
    if amount is not None:
        return Milestone(
            type=MilestoneType.BALANCE,
            amount=amount,
            title=f"₦{amount:,} Balance Milestone!",
            description=f"Your balance has reached ₦{amount:,}!",
        )
    return None
