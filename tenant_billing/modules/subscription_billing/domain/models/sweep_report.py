# 📄 File: tenant_billing/modules/subscription_billing/domain/models/sweep_report.py
# 🧭 Purpose (Layman Explanation):
# The summary of one daily billing run: how many reminders went out, how many renewals worked or failed,
# how many restaurants were moved to the free plan, and which ones hit an unexpected error.
# 🧪 Purpose (Technical Summary):
# Mutable pydantic counters filled in by RenewalEngine.run_sweep() and returned to the scheduler/API.
# 🔗 Dependencies:
# pydantic, datetime, typing
# 🔄 Connected Modules / Calls From:
# renewal_engine.py, application/scheduler.py, presentation API schemas

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SweepError(BaseModel):
    phase: str
    subscription_id: Optional[str] = None
    tenant_id: Optional[str] = None
    error_type: str
    message: str


class SweepReport(BaseModel):
    """Counters for one sweep."""

    sweep_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None

    entitlements_reconciled: int = 0
    reminders_sent: int = 0
    downgrades_applied: int = 0
    scheduled_changes_failed: int = 0
    renewals_succeeded: int = 0
    renewals_failed: int = 0
    degraded: int = 0
    lapsed: int = 0

    errors: List[SweepError] = Field(default_factory=list)

    def record_error(
        self,
        phase: str,
        error: Exception,
        subscription_id: Optional[str] = None,
        tenant_id: Optional[str] = None
    ) -> None:
        self.errors.append(SweepError(
            phase=phase,
            subscription_id=subscription_id,
            tenant_id=tenant_id,
            error_type=type(error).__name__,
            message=str(error),
        ))

    @property
    def error_count(self) -> int:
        return len(self.errors)
