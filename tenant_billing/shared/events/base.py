# 📄 File: tenant_billing/shared/events/base.py

# 🧭 Purpose (Layman Explanation):
# This file defines the basic shape of an "event", a small message saying that something important
# happened (a renewal went through, a restaurant was moved to the free plan) so other parts can react.

# 🧪 Purpose (Technical Summary):
# Pydantic base class for immutable domain events carrying an id, a type string,
# a UTC occurrence timestamp and an optional correlation id.

# 🔗 Dependencies:
# - pydantic: Event structure and validation
# - uuid / datetime: Event identifiers and timestamps

# 🔄 Connected Modules / Calls From:
# Used by: subscription_billing domain events, notification publisher

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class DomainEvent(BaseModel):
    """
    Base class for all domain events.

    Subclasses set a default ``event_type`` and declare their payload fields.
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: str
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: Optional[str] = None
    source: str = "tenant-billing"

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")

    def __str__(self) -> str:
        return f"{self.event_type}({self.event_id})"
