# 📄 File: tenant_billing/modules/subscription_billing/application/scheduler.py
# 🧭 Purpose (Layman Explanation):
# Makes sure only one billing run happens at a time. If the daily run is still going when someone
# presses "run now" (or the timer fires again), the second request is simply skipped.
# 🧪 Purpose (Technical Summary):
# SweepScheduler wraps the sweep coroutine with an owned busy flag. Overlapping triggers are
# dropped (never queued) and counted; the last run's timestamps and report are kept for status().
# 🔗 Dependencies:
# asyncio-compatible sweep callable (RenewalEngine.run_sweep), structured logging
# 🔄 Connected Modules / Calls From:
# container wiring, presentation/api/v1/billing.py (manual trigger and status),
# background_jobs/tasks/renewal_sweep.py (daily Celery beat trigger)

from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

from tenant_billing.shared.utils.logging import get_logger

from ..domain.models.sweep_report import SweepReport
from ..domain.services.billing_cycle import Clock, utc_now

logger = get_logger(__name__)

SweepCallable = Callable[[], Awaitable[SweepReport]]


class SweepScheduler:
    """
    Non-reentrant trigger for the billing sweep.

    The busy flag lives on the instance and is not persisted; a restart
    starts idle.
    """

    def __init__(self, sweep: SweepCallable, clock: Clock = utc_now):
        self._sweep = sweep
        self._clock = clock

        self.busy = False
        self.skipped_triggers = 0
        self.last_source: Optional[str] = None
        self.last_started_at: Optional[datetime] = None
        self.last_finished_at: Optional[datetime] = None
        self.last_report: Optional[SweepReport] = None

    async def trigger(self, source: str = "manual") -> Optional[SweepReport]:
        """
        Run the sweep unless one is already in progress.

        Args:
            source: Who asked for the run ("cron", "manual", "api")

        Returns:
            The sweep report, or None when the trigger was skipped
        """
        if self.busy:
            self.skipped_triggers += 1
            logger.warning(
                f"Renewal sweep already running, {source} trigger skipped",
                extra={"source": source, "running_since": self.last_started_at.isoformat() if self.last_started_at else None},
            )
            return None

        self.busy = True
        self.last_source = source
        self.last_started_at = self._clock()
        logger.info(f"Renewal sweep triggered by {source}")

        try:
            report = await self._sweep()
            self.last_report = report
            return report
        finally:
            self.busy = False
            self.last_finished_at = self._clock()

    def status(self) -> Dict[str, Any]:
        return {
            "busy": self.busy,
            "last_source": self.last_source,
            "last_started_at": self.last_started_at,
            "last_finished_at": self.last_finished_at,
            "skipped_triggers": self.skipped_triggers,
            "last_report": self.last_report,
        }
