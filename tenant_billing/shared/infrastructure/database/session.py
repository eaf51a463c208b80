# 📄 File: tenant_billing/shared/infrastructure/database/session.py
#
# 🧭 Purpose (Layman Explanation):
# Manages database sessions (like conversations with the database) so that a subscription change
# and the payment record that explains it are saved together, or not saved at all.
#
# 🧪 Purpose (Technical Summary):
# Implements async SQLAlchemy session management with commit / rollback handling and
# session lifecycle management for the repository implementations.
#
# 🔗 Dependencies:
# - sqlalchemy.ext.asyncio (AsyncSession, async_sessionmaker)
# - tenant_billing/shared/infrastructure/database/connection.py (database engine)
#
# 🔄 Connected Modules / Calls From:
# - subscription_billing repository implementations (database sessions)
# - subscription_billing container (wiring)

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import exc
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from tenant_billing.shared.core.exceptions import BillingEngineException, DatabaseError, TransactionError

logger = logging.getLogger(__name__)


class DatabaseSessionManager:
    """
    Manages database sessions with transaction handling and automatic cleanup.
    """

    def __init__(self):
        self._session_factory: Optional[async_sessionmaker] = None
        self._initialized = False

    def initialize(self, engine: AsyncEngine) -> None:
        """Initialize the session factory with database engine."""
        try:
            self._session_factory = async_sessionmaker(
                engine,
                class_=AsyncSession,
                expire_on_commit=False,  # Keep objects accessible after commit
                autoflush=True,
            )

            self._initialized = True
            logger.info("Database session factory initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database session factory: {e}")
            raise DatabaseError(f"Session initialization failed: {e}")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get an async database session with automatic transaction management.

        Yields:
            AsyncSession: Database session

        Raises:
            DatabaseError: If session creation fails or SQLAlchemy raises
            TransactionError: If the unit of work fails for any other reason
        """
        if not self._initialized or self._session_factory is None:
            raise DatabaseError("Session manager not initialized")

        session: AsyncSession = self._session_factory()

        try:
            logger.debug("Database session created")
            yield session

            await session.commit()
            logger.debug("Database transaction committed successfully")

        except exc.SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error occurred, transaction rolled back: {e}")
            raise DatabaseError(f"Database operation failed: {e}")

        except BillingEngineException:
            # Domain errors raised inside the unit of work keep their type
            await session.rollback()
            raise

        except Exception as e:
            await session.rollback()
            logger.error(f"Unexpected error occurred, transaction rolled back: {e}")
            raise TransactionError(f"Transaction failed: {e}")

        finally:
            await session.close()
            logger.debug("Database session closed")

    @asynccontextmanager
    async def get_read_only_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a read-only database session (no automatic commit).

        Yields:
            AsyncSession: Read-only database session
        """
        if not self._initialized or self._session_factory is None:
            raise DatabaseError("Session manager not initialized")

        session: AsyncSession = self._session_factory()

        try:
            yield session

        except exc.SQLAlchemyError as e:
            logger.error(f"Read-only session error: {e}")
            raise DatabaseError(f"Read operation failed: {e}")

        finally:
            await session.close()

    def is_initialized(self) -> bool:
        """Check if session manager is initialized."""
        return self._initialized
