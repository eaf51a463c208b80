# 📄 File: tenant_billing/shared/events/__init__.py

# 🧭 Purpose (Layman Explanation):
# Sets up the event building blocks that billing modules use to announce what happened.

# 🧪 Purpose (Technical Summary):
# Exports the pydantic DomainEvent base class.

# 🔗 Dependencies:
# - base: Base event class

# 🔄 Connected Modules / Calls From:
# Used by: subscription_billing domain events

from .base import DomainEvent

__all__ = ["DomainEvent"]
