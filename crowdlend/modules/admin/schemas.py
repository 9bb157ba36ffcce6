from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List


# ============================================================
# Requests
# ============================================================

class ReasonRequest(BaseModel):
    reason: str = Field(..., min_length=3, max_length=1000)


class OptionalReasonRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


# ============================================================
# Audit
# ============================================================

class AuditLogResponse(BaseModel):
    id: int
    admin_id: int
    action: str
    entity_type: str
    entity_id: int
    changes: Optional[str] = None
    reason: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    logs: List[AuditLogResponse]
    total: int
    limit: int
    offset: int


# ============================================================
# Dashboard
# ============================================================

class DashboardStats(BaseModel):
    """Admin dashboard statistics"""
    # Users
    total_users: int
    blocked_users: int

    # Campaigns
    total_campaigns: int
    active_campaigns: int
    pending_campaigns: int
    total_funds_raised: Decimal

    # Loans
    total_loans: int
    pending_loans: int
    active_loans: int
    defaulted_loans: int
    default_rate: Decimal
    total_loaned: Decimal

    # Ledger
    total_transactions: int


class UserAdminResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    roles: List[str]
    credit_score: int
    is_active: bool
    is_blocked: bool
    blocked_reason: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
