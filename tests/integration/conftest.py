"""
SQLite-backed fixtures for the SQLAlchemy repositories.
"""

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from tenant_billing.shared.infrastructure.database.connection import Base
from tenant_billing.shared.infrastructure.database.session import DatabaseSessionManager
from tenant_billing.modules.subscription_billing.infrastructure.database import models  # noqa: F401
from tenant_billing.modules.subscription_billing.infrastructure.database.campaign_repository_impl import (
    CampaignRepositoryImpl,
)
from tenant_billing.modules.subscription_billing.infrastructure.database.subscription_repository_impl import (
    SubscriptionRepositoryImpl,
)


@pytest.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'billing.db'}")
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_manager(db_engine):
    manager = DatabaseSessionManager()
    manager.initialize(db_engine)
    return manager


@pytest.fixture
def sql_subscriptions(session_manager):
    return SubscriptionRepositoryImpl(session_manager)


@pytest.fixture
def sql_campaigns(session_manager):
    return CampaignRepositoryImpl(session_manager)
