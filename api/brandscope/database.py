from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from brandscope.config import get_settings

settings = get_settings()


def engine_options(url: str, pool_size: int, max_overflow: int) -> dict:
    """Pool arguments for server databases; SQLite uses its own pool classes."""
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": pool_size, "max_overflow": max_overflow, "pool_pre_ping": True}


# Async engine for FastAPI
async_engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **engine_options(settings.DATABASE_URL, pool_size=20, max_overflow=10),
)

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
