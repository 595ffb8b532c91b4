from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.future import select
from loguru import logger
from refbot.dao.base import BaseDAO
from refbot.users.models import User, Withdrawal


class UserDAO(BaseDAO):
    model = User

    async def find_ranked(self) -> List[User]:
        """All users ordered by referral count, highest first."""
        logger.info("Building referral ranking")
        async with self.session_maker() as session:
            try:
                query = select(User).order_by(User.total_referrals.desc(), User.id)
                result = await session.execute(query)
                return list(result.scalars().all())
            except SQLAlchemyError as e:
                logger.error(f"Error building referral ranking: {e}")
                raise


class WithdrawalDAO(BaseDAO):
    model = Withdrawal
