# 📄 File: tenant_billing/background_jobs/tasks/renewal_sweep.py
#
# 🧭 Purpose (Layman Explanation):
# The daily job: every morning it asks the billing scheduler to run the renewal sweep.
#
# 🧪 Purpose (Technical Summary):
# Celery task bridging the synchronous worker to the async SweepScheduler. Each worker process
# keeps one event loop and one BillingContainer, so the scheduler's busy flag, the database pool
# and the gateway session survive between runs.
#
# 🔗 Dependencies:
# - celery
# - tenant_billing.modules.subscription_billing.container
#
# 🔄 Connected Modules / Calls From:
# - Celery beat ("daily-renewal-sweep"), manual `celery call`

import asyncio
from typing import Any, Dict, Optional

from tenant_billing.modules.subscription_billing.container import BillingContainer
from tenant_billing.shared.utils.logging import get_logger, setup_logging

from ..celery_app import celery_app
from ..celery_config import RENEWAL_SWEEP_TASK

logger = get_logger(__name__)

_loop: Optional[asyncio.AbstractEventLoop] = None
_container: Optional[BillingContainer] = None


def _get_loop() -> asyncio.AbstractEventLoop:
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    return _loop


async def _get_container() -> BillingContainer:
    global _container
    if _container is None:
        setup_logging()
        container = BillingContainer()
        await container.startup()
        _container = container
    return _container


async def trigger_sweep(source: str) -> Dict[str, Any]:
    container = await _get_container()
    report = await container.scheduler.trigger(source=source)
    if report is None:
        return {"skipped": True, "source": source}
    return {"skipped": False, "source": source, "report": report.model_dump(mode="json")}


@celery_app.task(name=RENEWAL_SWEEP_TASK, ignore_result=False)
def run_renewal_sweep(source: str = "cron") -> Dict[str, Any]:
    """
    Run one renewal sweep in this worker process.

    Returns:
        {"skipped": bool, "source": str, "report": dict}
    """
    result = _get_loop().run_until_complete(trigger_sweep(source))
    logger.info(f"Renewal sweep task finished (skipped={result['skipped']})", extra={"source": source})
    return result
