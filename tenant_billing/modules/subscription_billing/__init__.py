"""
Subscription Billing Module

Renews paid tenant subscriptions on a fixed 30-day cycle, applies scheduled
downgrades, degrades tenants whose payment fails to the free plan and pauses
the campaigns the free plan no longer allows.

Layers:
- domain: models, ports and the renewal state machine
- application: sweep scheduler and plan change commands
- infrastructure: SQLAlchemy repositories and the EcartPay gateway adapter
- presentation: FastAPI endpoints
"""
