from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.common.utils import success_response
from marketplace.db.dependencies import get_session
from marketplace.common import logger

home_router = APIRouter()


@home_router.get("/health")
async def health_check(session: AsyncSession = Depends(get_session)):

    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.error("health.db_unreachable", exc_info=True)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database connection error")

    return success_response({"status": "healthy"})
