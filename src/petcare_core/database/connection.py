"""
Database connection utilities for the petcare-core package.

This module provides async SQLAlchemy engine configuration and connection
checks. PostgreSQL (asyncpg) is the production store; SQLite (aiosqlite) is
accepted for local development and tests.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool

from ..exceptions import ConnectionException, DatabaseConfigException

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMES = ("postgresql", "postgresql+asyncpg", "sqlite+aiosqlite")


def normalize_database_url(database_url: str) -> str:
    """
    Validate a database URL and convert it to its async driver form.

    Raises:
        DatabaseConfigException: If the URL is malformed or unsupported
    """
    parsed = urlparse(database_url)
    if parsed.scheme not in SUPPORTED_SCHEMES:
        raise DatabaseConfigException(
            f"Unsupported database URL scheme '{parsed.scheme}'",
            config_key="DATABASE_URL",
        )

    if parsed.scheme.startswith("postgresql"):
        if not parsed.hostname:
            raise DatabaseConfigException(
                "Database URL must include hostname", config_key="DATABASE_URL"
            )
        if not parsed.path or parsed.path == "/":
            raise DatabaseConfigException(
                "Database URL must include database name", config_key="DATABASE_URL"
            )

    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


def create_engine(
    database_url: str,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_timeout: int = 30,
    pool_recycle: int = 3600,
    pool_pre_ping: bool = True,
    echo: bool = False,
    use_null_pool: bool = False,
    connect_args: Optional[dict] = None,
) -> AsyncEngine:
    """
    Create an async SQLAlchemy engine with proper configuration.

    Args:
        database_url: PostgreSQL or SQLite connection URL
        pool_size: Number of connections to maintain in the pool
        max_overflow: Maximum number of connections that can overflow the pool
        pool_timeout: Timeout for getting connection from pool
        pool_recycle: Time in seconds to recycle connections
        pool_pre_ping: Whether to validate connections before use
        echo: Whether to echo SQL statements
        use_null_pool: Whether to use NullPool (useful for testing and
            one-shot CLI runs)
        connect_args: Additional connection arguments

    Returns:
        Configured async SQLAlchemy engine

    Raises:
        DatabaseConfigException: If database URL is invalid
    """
    async_url = normalize_database_url(database_url)

    engine_kwargs: Dict[str, Any] = {"echo": echo}

    if connect_args:
        engine_kwargs["connect_args"] = connect_args

    # SQLite does not support the queue pool sizing options
    if use_null_pool or async_url.startswith("sqlite"):
        engine_kwargs["poolclass"] = NullPool
    else:
        engine_kwargs.update(
            {
                "poolclass": AsyncAdaptedQueuePool,
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "pool_timeout": pool_timeout,
                "pool_recycle": pool_recycle,
                "pool_pre_ping": pool_pre_ping,
            }
        )

    engine = create_async_engine(async_url, **engine_kwargs)
    logger.info(
        f"Created async database engine for {urlparse(async_url).hostname or 'sqlite'}"
    )
    return engine


async def check_connection(
    engine: AsyncEngine, max_retries: int = 3, retry_delay: float = 1.0
) -> bool:
    """
    Check database connection health with retry logic.

    Args:
        engine: SQLAlchemy async engine
        max_retries: Maximum number of retry attempts
        retry_delay: Base delay between retries in seconds

    Returns:
        True if connection is healthy, False otherwise
    """
    for attempt in range(max_retries + 1):
        try:
            async with engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            logger.debug("Database connection check successful")
            return True
        except Exception as e:
            if attempt < max_retries:
                logger.warning(
                    f"Database connection check failed (attempt {attempt + 1}/{max_retries + 1}): {e}"
                )
                await asyncio.sleep(retry_delay * (2**attempt))
            else:
                logger.error(
                    f"Database connection check failed after {max_retries + 1} attempts: {e}"
                )
    return False


async def close_engine(engine: AsyncEngine) -> None:
    """Dispose the engine and all pooled connections."""
    await engine.dispose()
    logger.info("Database engine closed successfully")


async def wait_for_database(
    engine: AsyncEngine, timeout: float = 30.0, check_interval: float = 1.0
) -> bool:
    """
    Wait for database to become available.

    Raises:
        ConnectionException: If database doesn't become available within timeout
    """
    start_time = time.monotonic()

    while time.monotonic() - start_time < timeout:
        if await check_connection(engine, max_retries=0):
            return True
        await asyncio.sleep(check_interval)

    raise ConnectionException(
        f"Database did not become available within {timeout} seconds",
        original_error=None,
    )


def get_database_url(
    host: str,
    port: int = 5432,
    database: str = "petcare",
    username: str = "postgres",
    password: str = "",  # nosec B107
    driver: str = "asyncpg",
) -> str:
    """Construct a PostgreSQL database URL."""
    if password:
        auth = f"{username}:{password}"
    else:
        auth = username

    return f"postgresql+{driver}://{auth}@{host}:{port}/{database}"
