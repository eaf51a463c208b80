# 📄 File: tenant_billing/background_jobs/celery_app.py
#
# 🧭 Purpose (Layman Explanation):
# Creates the background worker application that the daily billing job runs in.
#
# 🧪 Purpose (Technical Summary):
# Celery application instance configured from CeleryConfig, with task modules listed explicitly.
#
# 🔗 Dependencies:
# - celery
# - tenant_billing.background_jobs.celery_config
#
# 🔄 Connected Modules / Calls From:
# - celery worker / beat CLI (-A tenant_billing.background_jobs.celery_app)
# - tenant_billing/background_jobs/tasks/renewal_sweep.py

from celery import Celery

from .celery_config import get_celery_config

celery_app = Celery(
    "tenant_billing",
    include=["tenant_billing.background_jobs.tasks.renewal_sweep"],
)
celery_app.config_from_object(get_celery_config())

app = celery_app
