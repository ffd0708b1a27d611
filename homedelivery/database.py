"""Database Connection, Session and Transaction Management"""

import re
import ssl
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from homedelivery.config import settings
from homedelivery.core.exceptions import ConflictError, HomeDeliveryError, InternalError
from homedelivery.core.logging import get_logger

logger = get_logger(__name__)

# Convert postgresql:// to postgresql+asyncpg:// for async support
database_url = settings.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

# asyncpg uses ssl=SSLContext or True, not sslmode; strip sslmode from URL
connect_args = {}
if re.search(r"[?&]sslmode=(require|required|verify-full)", database_url, re.I):
    _ssl_ctx = ssl.create_default_context()
    _ssl_ctx.check_hostname = False
    _ssl_ctx.verify_mode = ssl.CERT_NONE
    connect_args["ssl"] = _ssl_ctx
    database_url = re.sub(r"[?&]sslmode=[^&]+", "", database_url, flags=re.I)
    database_url = re.sub(r"\?&", "?", database_url).rstrip("?")
if "?&" in database_url:
    database_url = database_url.replace("?&", "?")

# SQLite (tests, local runs) does not take queue pool options
engine_options = {}
if not database_url.startswith("sqlite"):
    engine_options = {
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
    }

engine = create_async_engine(
    database_url,
    connect_args=connect_args,
    echo=settings.DEBUG,
    **engine_options,
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for declarative models
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a database session for one engine operation.

    Services open their own write transaction through ``atomic``; this only
    guarantees the session is closed and left without a dangling transaction.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    All-or-nothing write phase of a service operation.

    Commits when the block exits normally. Any exception rolls back every
    write made on the session since the last commit. Domain errors propagate
    untouched; store errors are translated into the engine's error taxonomy.

    Example:
        ```python
        async with atomic(db):
            db.add(bill)
            db.add_all(items)
        ```
    """
    try:
        yield db
        await db.commit()
    except HomeDeliveryError:
        await db.rollback()
        raise
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("Uniqueness or integrity violation", extra={"error": str(exc.orig)})
        raise ConflictError("The record conflicts with an existing one") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Storage failure inside transaction", exc_info=True)
        raise InternalError() from exc
    except Exception:
        await db.rollback()
        raise


async def init_db() -> None:
    """Initialize database tables (for development only)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections"""
    await engine.dispose()
