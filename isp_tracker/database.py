"""
Database engine, session factory and the request-scoped session dependency.

DATABASE_URL may use the plain driver-less schemes (sqlite:///,
postgresql://, postgres://); they are rewritten to the async drivers.
"""
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from isp_tracker.config import get_settings

settings = get_settings()

_ASYNC_SCHEMES = (
    ("postgresql://", "postgresql+asyncpg://"),
    ("postgres://", "postgresql+asyncpg://"),
    ("sqlite:///", "sqlite+aiosqlite:///"),
)


def _get_async_url(url: str) -> str:
    for plain, async_scheme in _ASYNC_SCHEMES:
        if url.startswith(plain):
            return async_scheme + url[len(plain):]
    return url


database_url = _get_async_url(settings.DATABASE_URL)
is_sqlite = database_url.startswith("sqlite")

engine_kwargs = {"echo": settings.DEBUG}
if not is_sqlite:
    engine_kwargs["pool_size"] = settings.DB_POOL_SIZE
    engine_kwargs["max_overflow"] = settings.DB_MAX_OVERFLOW
    engine_kwargs["pool_pre_ping"] = True

engine = create_async_engine(database_url, **engine_kwargs)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

Base = declarative_base()


async def create_tables(drop_first: bool = False) -> None:
    """Create every table registered on Base (import isp_tracker.models first)"""
    async with engine.begin() as conn:
        if drop_first:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    """
    One session per request. Routes commit through the store; anything
    left uncommitted when the handler raises is rolled back here.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
