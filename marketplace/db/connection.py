from typing import Optional
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from marketplace.config.settings import config_settings

_ASYNC_DRIVERS = (
    ("postgres://", "postgresql+asyncpg://"),
    ("postgresql://", "postgresql+asyncpg://"),
    ("sqlite://", "sqlite+aiosqlite://"),
)


def async_database_url(url: Optional[str]) -> Optional[str]:
    """Point plain postgres / sqlite urls at their async drivers, explicit drivers are left alone."""
    if not url:
        return None
    for plain, driver in _ASYNC_DRIVERS:
        if url.startswith(plain):
            return driver + url[len(plain):]
    return url


def build_engine(url: str) -> AsyncEngine:
    if url.startswith("sqlite"):
        # writers wait on the file lock instead of failing fast
        return create_async_engine(url, echo=False, connect_args={"timeout": 15})
    return create_async_engine(url, echo=False, pool_pre_ping=True)


DATABASE_URL = async_database_url(config_settings.DATABASE_URL)

async_engine = build_engine(DATABASE_URL)

async_session = async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)
