from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from educore.core.config import settings

# Tables are spread over three PostgreSQL schemas: core (schools, branches, learners),
# auth (users, roles) and school (fees, grading, attendance).
SCHEMAS = ("core", "auth", "school")

engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    future=True,
    pool_pre_ping=True,
    pool_recycle=300,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncSession:
    """One session per request; services commit or roll back explicitly."""
    async with AsyncSessionLocal() as session:
        yield session
