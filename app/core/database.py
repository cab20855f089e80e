from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from contextlib import asynccontextmanager
import logging
import os
from dotenv import load_dotenv

load_dotenv()

from app.core.config import settings

logger = logging.getLogger(__name__)

# Get database URL - environment variables from docker-compose override .env
DATABASE_URL = settings.get_database_url()

# Mask password in log
masked_url = DATABASE_URL.split('@')[0].split(':')[0] + '://***@' + '@'.join(DATABASE_URL.split('@')[1:]) if '@' in DATABASE_URL else DATABASE_URL
logger.info(f"Database connection URL: {masked_url}")


def build_engine(url: str):
    """Create an async engine; pool tuning only applies to server databases."""
    echo = True if os.getenv("DEBUG") == "True" and os.getenv("ENVIRONMENT") != "test" else False
    if url.startswith("sqlite"):
        sqlite_engine = create_async_engine(url, echo=echo)

        @event.listens_for(sqlite_engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    return create_async_engine(
        url,
        echo=echo,
        pool_size=20,  # Connection pool size
        max_overflow=10,  # Additional connections beyond pool_size
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=3600,  # Recycle connections after 1 hour
        connect_args={
            "server_settings": {
                "application_name": "class_navigator",
            }
        },
    )


engine = build_engine(DATABASE_URL)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()


@asynccontextmanager
async def get_async_session():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_db():
    async with get_async_session() as session:
        yield session
