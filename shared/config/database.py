from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .settings import DATABASE_URL, SQL_ECHO

engine = create_async_engine(DATABASE_URL, echo=SQL_ECHO)

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Dependency for services that open their own sessions and transactions.

    Order placement needs one short session per product lookup and a separate
    scoped transaction for the writes, so it takes the factory rather than a
    single request-bound session. Tests override this to point at SQLite.
    """
    return AsyncSessionLocal
