from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.future import select
from sqlalchemy import update as sqlalchemy_update, func
from loguru import logger


class BaseDAO:
    model = None  # Set in subclasses

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def find_one_or_none_by_id(self, data_id: int):
        logger.info(f"Looking up {self.model.__name__} with ID: {data_id}")
        async with self.session_maker() as session:
            try:
                query = select(self.model).filter_by(id=data_id)
                result = await session.execute(query)
                record = result.scalar_one_or_none()
                if record:
                    logger.info(f"Record with ID {data_id} found.")
                else:
                    logger.info(f"Record with ID {data_id} not found.")
                return record
            except SQLAlchemyError as e:
                logger.error(f"Error looking up record with ID {data_id}: {e}")
                raise

    async def find_one_or_none(self, **filter_by):
        logger.info(f"Looking up one {self.model.__name__} by filters: {filter_by}")
        async with self.session_maker() as session:
            try:
                query = select(self.model).filter_by(**filter_by)
                result = await session.execute(query)
                record = result.scalar_one_or_none()
                if record:
                    logger.info(f"Record found by filters: {filter_by}")
                else:
                    logger.info(f"No record found by filters: {filter_by}")
                return record
            except SQLAlchemyError as e:
                logger.error(f"Error looking up record by filters {filter_by}: {e}")
                raise

    async def find_all(self, *order_by, **filter_by) -> List[Any]:
        logger.info(f"Looking up all {self.model.__name__} by filters: {filter_by}")
        async with self.session_maker() as session:
            try:
                query = select(self.model).filter_by(**filter_by).order_by(*(order_by or (self.model.id,)))
                result = await session.execute(query)
                records = result.scalars().all()
                logger.info(f"Found {len(records)} records.")
                return list(records)
            except SQLAlchemyError as e:
                logger.error(f"Error looking up records by filters {filter_by}: {e}")
                raise

    async def add(self, **values):
        logger.info(f"Adding a new {self.model.__name__}: {values}")
        async with self.session_maker() as session:
            async with session.begin():
                new_instance = self.model(**values)
                session.add(new_instance)
                try:
                    await session.flush()  # id is available after flush
                except SQLAlchemyError as e:
                    logger.error(f"Error adding {self.model.__name__}: {e}")
                    raise
            logger.info(f"{self.model.__name__} with ID {new_instance.id} added.")
            return new_instance

    async def update(self, data_id: int, **values) -> Optional[Any]:
        """
        Update a record by ID and return the fresh row.
        Values may be SQL expressions, e.g. ``balance=Model.balance + 10``.
        """
        logger.info(f"Updating {self.model.__name__} with ID {data_id}: {values}")
        async with self.session_maker() as session:
            async with session.begin():
                query = (
                    sqlalchemy_update(self.model)
                    .where(self.model.id == data_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                try:
                    result = await session.execute(query)
                except SQLAlchemyError as e:
                    logger.error(f"Error updating record with ID {data_id}: {e}")
                    raise
                logger.info(f"Updated {result.rowcount} records.")
                if not result.rowcount:
                    return None
                refreshed = await session.execute(
                    select(self.model).filter_by(id=data_id).execution_options(populate_existing=True)
                )
                return refreshed.scalar_one()

    async def count(self, **filter_by) -> int:
        logger.info(f"Counting {self.model.__name__} by filters: {filter_by}")
        async with self.session_maker() as session:
            try:
                query = select(func.count(self.model.id)).filter_by(**filter_by)
                result = await session.execute(query)
                count = result.scalar()
                logger.info(f"Found {count} records.")
                return count
            except SQLAlchemyError as e:
                logger.error(f"Error counting records: {e}")
                raise
