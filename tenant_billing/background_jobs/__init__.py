"""
Background jobs (Celery) for the tenant billing service.
"""
