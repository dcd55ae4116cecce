"""
Database session management utilities for the petcare-core package.

This module provides the async session factory, transaction helpers and a
retry wrapper used by the notification scheduler.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, Optional

from sqlalchemy import MetaData, text
from sqlalchemy.exc import DisconnectionError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..exceptions import DatabaseException, PetCareException, TransactionException

logger = logging.getLogger(__name__)


def _operation_name(operation: Any) -> str:
    return getattr(operation, "__name__", None) or str(operation)


class SessionManager:
    """Manages database sessions and provides transaction utilities."""

    def __init__(
        self, engine: AsyncEngine, session_config: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize session manager with database engine.

        Args:
            engine: SQLAlchemy async engine
            session_config: Optional session configuration overrides
        """
        self.engine = engine
        self._health_check_interval = 30.0  # seconds
        self._last_health_check = 0.0

        config = {"expire_on_commit": False, "autoflush": True}
        if session_config:
            config.update(session_config)

        self.session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            autoflush=config["autoflush"],
            expire_on_commit=config["expire_on_commit"],
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for database sessions with automatic cleanup.

        Example:
            async with session_manager.get_session() as session:
                result = await session.execute(select(User))
        """
        session = self.session_factory()
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error(f"Session error, rolling back: {e}")
            raise
        finally:
            await session.close()

    @asynccontextmanager
    async def get_transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for a transaction committed on success and rolled
        back on error.
        """
        async with self.get_session() as session:
            async with session.begin():
                yield session

    async def execute_with_retry(
        self,
        operation: Callable[[AsyncSession], Awaitable[Any]],
        max_retries: int = 3,
        retry_delay: float = 1.0,
        exponential_backoff: bool = True,
    ) -> Any:
        """
        Execute ``operation`` in its own transaction, retrying transient failures.

        Each attempt opens a fresh transaction. Connection-level errors are
        retried; package exceptions propagate unchanged and any other error
        is wrapped in ``TransactionException`` without a retry.

        Raises:
            DatabaseException: If operation fails after all retries
        """
        last_exception: Optional[Exception] = None

        for attempt in range(max_retries + 1):
            try:
                async with self.get_transaction() as session:
                    return await operation(session)

            except (DisconnectionError, OperationalError) as e:
                last_exception = e
                if attempt < max_retries:
                    delay = retry_delay * (2**attempt if exponential_backoff else 1)
                    logger.warning(
                        f"Database operation failed (attempt {attempt + 1}/{max_retries + 1}), "
                        f"retrying in {delay}s: {e}"
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(
                        f"Database operation failed after {max_retries + 1} attempts: {e}"
                    )

            except PetCareException:
                raise

            except Exception as e:
                logger.error(f"Non-retryable database operation error: {e}")
                raise TransactionException(
                    "Database operation failed",
                    operation=_operation_name(operation),
                    original_error=e,
                )

        raise DatabaseException(
            f"Database operation failed after {max_retries + 1} attempts",
            details={"operation": _operation_name(operation)},
            original_error=last_exception,
            retry_count=max_retries,
            max_retries=max_retries,
        )

    async def health_check(self, force: bool = False) -> Dict[str, Any]:
        """
        Check that sessions can query and open transactions.

        Args:
            force: Force health check even if recently performed

        Returns:
            Dictionary with health check results
        """
        current_time = time.time()

        if (
            not force
            and (current_time - self._last_health_check) < self._health_check_interval
        ):
            return {"status": "skipped", "reason": "recently_checked"}

        health_status: Dict[str, Any] = {
            "status": "healthy",
            "timestamp": current_time,
            "checks": {},
        }

        try:
            start_time = time.perf_counter()
            async with self.get_transaction() as session:
                await session.execute(text("SELECT 1"))
            health_status["checks"]["transaction"] = {
                "status": "pass",
                "response_time": round((time.perf_counter() - start_time) * 1000, 2),
            }
            self._last_health_check = current_time

        except SQLAlchemyError as e:
            health_status["status"] = "unhealthy"
            health_status["checks"]["database"] = {
                "status": "fail",
                "error": str(e),
                "error_type": type(e).__name__,
            }
            logger.error(f"Database error during health check: {e}")

        return health_status

    async def create_schema(self, metadata: MetaData) -> None:
        """Create all tables of ``metadata`` that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info(f"Database schema ready ({len(metadata.tables)} tables)")

    async def close(self) -> None:
        """Dispose of the engine and its connections."""
        await self.engine.dispose()
        logger.info("All database sessions and connections closed")


# Global session manager instance (initialized by the application)
_session_manager: Optional[SessionManager] = None


def initialize_session_manager(engine: AsyncEngine) -> SessionManager:
    """Initialize the global session manager."""
    global _session_manager
    _session_manager = SessionManager(engine)
    logger.info("Session manager initialized")
    return _session_manager


def get_session_manager() -> SessionManager:
    """
    Get the global session manager instance.

    Raises:
        RuntimeError: If session manager is not initialized
    """
    if _session_manager is None:
        raise RuntimeError(
            "Session manager not initialized. Call initialize_session_manager() first."
        )
    return _session_manager


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session from the global session manager."""
    async with get_session_manager().get_session() as session:
        yield session


@asynccontextmanager
async def get_transaction() -> AsyncGenerator[AsyncSession, None]:
    """Get a database transaction from the global session manager."""
    async with get_session_manager().get_transaction() as session:
        yield session
