from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from settings import DATABASE_URL, DATABASE_ECHO

engine = create_async_engine(DATABASE_URL, echo=DATABASE_ECHO, future=True)

# Shared by request handlers, startup room seeding and the overdue sweeper.
# Objects stay readable after commit so responses can be built from them.
hotel_session_factory = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def create_hotel_tables():
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def dispose_engine():
    await engine.dispose()


async def get_session() -> AsyncSession:
    """One session per request; the service decides when to commit."""
    async with hotel_session_factory() as session:
        yield session
