# 📄 File: tenant_billing/shared/infrastructure/database/connection.py
#
# 🧭 Purpose (Layman Explanation):
# Manages the connection to our PostgreSQL database, where subscriptions, payment records and
# campaigns live, and makes sure we reuse connections instead of opening a new one every time.
#
# 🧪 Purpose (Technical Summary):
# Implements async SQLAlchemy engine management with connection pooling, health checks
# and retry logic, plus the declarative Base shared by every ORM model.
#
# 🔗 Dependencies:
# - sqlalchemy (async engine, declarative base)
# - tenant_billing/shared/config/settings.py (database configuration)
# - asyncpg (PostgreSQL async driver)
#
# 🔄 Connected Modules / Calls From:
# - tenant_billing/shared/infrastructure/database/session.py (session management)
# - subscription_billing ORM models (Base)
# - tenant_billing.main (startup / shutdown)

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import declarative_base

from tenant_billing.shared.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# Declarative base shared by all ORM models
Base = declarative_base()


class DatabaseConnectionManager:
    """
    Manages PostgreSQL database connections with connection pooling,
    health monitoring, and automatic retry logic.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        self._engine: Optional[AsyncEngine] = None
        self._health_check_query = text("SELECT 1")
        self._retry_attempts = 3
        self._retry_delay = 1.0

    def _build_connection_params(self) -> Dict[str, Any]:
        """Build SQLAlchemy connection parameters from settings."""
        settings = self._settings
        params: Dict[str, Any] = {
            "url": settings.database_url,
            "echo": settings.debug,
            "pool_pre_ping": True,
        }

        # SQLite (used by local runs and tests) has no server-side pool to tune
        if make_url(settings.database_url).get_backend_name() == "postgresql":
            params.update({
                "pool_recycle": settings.DB_POOL_RECYCLE,
                "pool_size": settings.DB_POOL_SIZE,
                "max_overflow": settings.DB_MAX_OVERFLOW,
                "pool_timeout": settings.DB_POOL_TIMEOUT,
                "connect_args": {
                    "server_settings": {
                        "application_name": "tenant_billing",
                        "jit": "off",
                    },
                    "command_timeout": 60,
                    "statement_cache_size": 0,
                },
            })
        return params

    async def initialize(self, engine: Optional[AsyncEngine] = None) -> None:
        """
        Initialize database engine with connection pooling.

        Args:
            engine: Pre-built engine to adopt instead of creating one from settings
        """
        if self._engine is not None:
            logger.warning("Database engine already initialized")
            return

        try:
            logger.info("Initializing database connection pool...")
            self._engine = engine or create_async_engine(**self._build_connection_params())
            self._register_connection_events()

            health = await self.health_check()
            if health["status"] != "healthy":
                raise RuntimeError(health.get("error", "Database health check failed"))

            logger.info("Database connection pool initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database connection: {e}")
            raise

    def _register_connection_events(self) -> None:
        """Register SQLAlchemy connection event listeners."""
        if self._engine is None or not self._settings.debug:
            return

        @event.listens_for(self._engine.sync_engine, "checkout")
        def receive_checkout(dbapi_connection, connection_record, connection_proxy):
            logger.debug("Connection checked out from pool")

        @event.listens_for(self._engine.sync_engine, "checkin")
        def receive_checkin(dbapi_connection, connection_record):
            logger.debug("Connection checked in to pool")

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check and return structured status.
        """
        if self._engine is None:
            logger.error("Database engine not initialized")
            return {
                "status": "unhealthy",
                "error": "Database engine not initialized",
                "timestamp": datetime.now(timezone.utc).isoformat()
            }

        for attempt in range(self._retry_attempts):
            try:
                async with self._engine.begin() as conn:
                    result = await conn.execute(self._health_check_query)
                    result.scalar()

                logger.debug("Database health check passed")
                return {
                    "status": "healthy",
                    "timestamp": datetime.now(timezone.utc).isoformat()
                }

            except Exception as e:
                logger.warning(
                    f"Database health check failed (attempt {attempt + 1}/{self._retry_attempts}): {e}"
                )
                if attempt < self._retry_attempts - 1:
                    await asyncio.sleep(self._retry_delay * (2 ** attempt))

        logger.error("Database health check failed after all retry attempts")
        return {
            "status": "unhealthy",
            "error": "Database health check failed after all retry attempts",
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    async def close(self) -> None:
        """Close database engine and all connections."""
        if self._engine is None:
            logger.warning("Database engine not initialized, nothing to close")
            return

        try:
            logger.info("Closing database connection pool...")
            await self._engine.dispose()
            self._engine = None
            logger.info("Database connection pool closed successfully")

        except Exception as e:
            logger.error(f"Error closing database connection pool: {e}")
            raise

    @property
    def engine(self) -> Optional[AsyncEngine]:
        """Get the SQLAlchemy async engine."""
        return self._engine

    @property
    def is_initialized(self) -> bool:
        """Check if database engine is initialized."""
        return self._engine is not None
