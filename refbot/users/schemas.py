from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from refbot.users.models import WithdrawalStatus


class CamelModel(BaseModel):
    # The dashboard reads camelCase keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserOut(CamelModel):
    id: int
    username: str
    telegram_id: str
    balance: int
    total_earnings: int
    total_referrals: int
    referral_code: str
    referred_by: Optional[str] = None
    is_active: bool
    is_verified: bool
    joined_at: datetime


class UserCount(BaseModel):
    count: int


class WithdrawalOut(CamelModel):
    id: int
    user_id: int
    amount: int
    status: WithdrawalStatus
    requested_at: datetime
    processed_at: Optional[datetime] = None


class WithdrawalStatusUpdate(BaseModel):
    status: WithdrawalStatus
