# 📄 File: tenant_billing/background_jobs/celery_config.py
#
# 🧭 Purpose (Layman Explanation):
# Settings for the background worker that runs the billing sweep every morning.
#
# 🧪 Purpose (Technical Summary):
# Celery configuration: Redis broker/backend, a dedicated billing queue, and the beat entry that
# fires the renewal sweep on RENEWAL_CRON_SCHEDULE in RENEWAL_TIMEZONE.
#
# 🔗 Dependencies:
# - celery, kombu
# - Redis server (message broker)
# - tenant_billing.shared.config.settings
#
# 🔄 Connected Modules / Calls From:
# - tenant_billing/background_jobs/celery_app.py

from datetime import timedelta
from typing import Any, Dict

from celery.schedules import crontab
from kombu import Queue

from tenant_billing.shared.config.settings import Settings, get_settings

RENEWAL_SWEEP_TASK = "tenant_billing.background_jobs.tasks.renewal_sweep.run_renewal_sweep"


# =============================================================================
# CELERY CONFIGURATION CLASS
# =============================================================================

class CeleryConfig:
    """
    Celery configuration class for the billing worker.
    """

    def __init__(self, settings: Settings):
        # =====================================================================
        # BROKER AND BACKEND SETTINGS
        # =====================================================================

        self.broker_url = settings.CELERY_BROKER_URL
        self.result_backend = settings.CELERY_RESULT_BACKEND
        self.broker_connection_retry_on_startup = True
        self.result_expires = timedelta(days=7)

        # =====================================================================
        # TASK SETTINGS
        # =====================================================================

        self.task_serializer = "json"
        self.result_serializer = "json"
        self.accept_content = ["json"]
        self.timezone = settings.RENEWAL_TIMEZONE
        self.enable_utc = True

        self.task_default_queue = "default"
        self.task_acks_late = False
        self.worker_prefetch_multiplier = 1
        self.task_time_limit = 3600
        self.task_soft_time_limit = 3300

        self.task_routes = {
            RENEWAL_SWEEP_TASK: {"queue": "billing"},
        }
        self.task_queues = (
            Queue("billing", routing_key="billing"),
            Queue("default", routing_key="default"),
        )

        # =====================================================================
        # WORKER SETTINGS
        # =====================================================================

        self.worker_concurrency = 1
        self.worker_hijack_root_logger = False
        self.worker_log_color = not settings.is_production

        # =====================================================================
        # BEAT SCHEDULER SETTINGS
        # =====================================================================

        self.beat_schedule: Dict[str, Dict[str, Any]] = {
            "daily-renewal-sweep": {
                "task": RENEWAL_SWEEP_TASK,
                "schedule": crontab(**settings.renewal_crontab_fields),
                "kwargs": {"source": "cron"},
                # A tick nobody picked up before the next one is dropped
                "options": {"queue": "billing", "expires": 3600},
            },
        }


def get_celery_config(settings: Settings = None) -> CeleryConfig:
    return CeleryConfig(settings or get_settings())
