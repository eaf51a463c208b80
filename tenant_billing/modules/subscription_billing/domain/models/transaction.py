# 📄 File: tenant_billing/modules/subscription_billing/domain/models/transaction.py
# 🧭 Purpose (Layman Explanation):
# A line in the billing history: every charge, failed renewal and plan downgrade leaves one,
# so we can always explain why a restaurant is on the plan it is on.
# 🧪 Purpose (Technical Summary):
# Append-only ledger entry model with type/status enumerations and Decimal amounts.
# 🔗 Dependencies:
# pydantic, datetime, decimal, uuid, enum
# 🔄 Connected Modules / Calls From:
# renewal_engine.py (creation), subscription repositories (persistence)

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TransactionType(str, Enum):
    PAYMENT = "payment"
    RENEWAL = "renewal"
    RENEWAL_FAILED = "renewal_failed"
    DOWNGRADE = "downgrade"


class TransactionStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    PENDING = "pending"


class Transaction(BaseModel):
    """Ledger entry for a subscription. Never updated once written."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    subscription_id: str
    type: TransactionType
    amount: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = "MXN"
    gateway_ref: Optional[str] = None
    status: TransactionStatus
    idempotency_key: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
