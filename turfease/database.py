"""Database connection and session management."""
import logging
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.engine.url import make_url
from turfease.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

is_sqlite = make_url(settings.database_url).drivername.startswith("sqlite")

# Bound every statement so a stalled database surfaces as an error instead of a hang
connect_args = {}
engine_kwargs = {}
if is_sqlite:
    connect_args["timeout"] = settings.db_command_timeout_seconds
else:
    connect_args["command_timeout"] = settings.db_command_timeout_seconds
    needs_ssl = (
        "heroku" in settings.database_url or
        "amazonaws" in settings.database_url or
        settings.environment == "production"
    )
    if needs_ssl:
        connect_args["ssl"] = "require"
        logger.debug("SSL connection enabled (ssl=require)")

    pool_size = max(1, settings.db_pool_size)
    max_overflow = max(0, settings.db_max_overflow)
    if settings.environment == "production":
        # Keep production connection usage conservative to stay within hobby-tier limits
        pool_size = min(pool_size, 2)
        max_overflow = min(max_overflow, 2)
    engine_kwargs.update(
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_size=pool_size,
        max_overflow=max_overflow,
    )

try:
    engine = create_async_engine(
        settings.database_url,
        echo=settings.environment == "development",
        future=True,
        connect_args=connect_args,
        **engine_kwargs,
    )
    logger.debug("Database engine created successfully")
except Exception as e:
    logger.error(f"Failed to create database engine: {e}")
    raise

# Session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for models
Base = declarative_base()


# Dependency for FastAPI
async def get_db():
    """FastAPI dependency to get database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
