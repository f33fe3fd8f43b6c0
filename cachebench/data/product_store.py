"""
Primary store adapter backed by SQLAlchemy.

Reads are bounded and unfiltered; order is stable (created_at, then id).
Library errors are translated to StoreUnavailable at this boundary.
"""
from typing import List, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from cachebench.core.errors import StoreUnavailable
from cachebench.core.models import Entity
from cachebench.core.ports import ProductStore
from cachebench.data.database import Base, create_engine_for, create_session_factory
from cachebench.data.models import ProductRow
from cachebench.utils.logger import get_logger

logger = get_logger("data.product_store")


class SqlProductStore(ProductStore):
    """Product store over an async SQLAlchemy engine."""

    def __init__(self, engine: AsyncEngine, session_factory: async_sessionmaker = None):
        self.engine = engine
        self.session_factory = session_factory or create_session_factory(engine)

    @classmethod
    def from_url(cls, database_url: str) -> "SqlProductStore":
        return cls(create_engine_for(database_url))

    async def query(self, limit: int) -> List[Entity]:
        if limit <= 0:
            return []
        stmt = select(ProductRow).order_by(ProductRow.created_at, ProductRow.id).limit(limit)
        try:
            async with self.session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailable(f"Product query failed: {e}") from e
        return [row.to_entity() for row in rows]

    async def exists(self) -> bool:
        try:
            async with self.session_factory() as session:
                found = (await session.execute(select(ProductRow.id).limit(1))).first()
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailable(f"Product existence check failed: {e}") from e
        return found is not None

    async def count(self) -> int:
        try:
            async with self.session_factory() as session:
                return int((await session.execute(select(func.count(ProductRow.id)))).scalar_one())
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailable(f"Product count failed: {e}") from e

    async def insert_many(self, entities: Sequence[Entity]) -> int:
        """Bulk-insert entities (seeding only). Returns the number inserted."""
        if not entities:
            return 0
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add_all([ProductRow.from_entity(e) for e in entities])
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailable(f"Product insert failed: {e}") from e
        logger.info("Inserted %d products", len(entities))
        return len(entities)

    async def create_schema(self) -> None:
        """Create tables if they don't exist. In production, use migrations instead."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailable(f"Schema creation failed: {e}") from e

    async def ping(self) -> bool:
        try:
            await self.exists()
            return True
        except StoreUnavailable:
            return False

    async def close(self) -> None:
        await self.engine.dispose()
