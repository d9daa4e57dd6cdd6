from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.db.connection import async_session


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    # services commit their own unit of work , anything left open here is discarded
    async with async_session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
