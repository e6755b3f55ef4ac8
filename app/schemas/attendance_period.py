"""
Attendance period schemas (period DTOs, validation preview, summary, finalize/unlock requests).
"""
import enum
from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from app.models.attendance_period import PeriodStatus


class PeriodCreate(BaseModel):
    """Schema for creating a period"""
    start_date: date
    end_date: date


class PeriodOut(BaseModel):
    """
    Period output. A summary for a range with no persisted period carries a
    transient projection: id is None and is_transient is True.
    """
    id: Optional[int] = None
    start_date: date
    end_date: date
    status: PeriodStatus
    finalized_by: Optional[str] = None
    finalized_at: Optional[datetime] = None
    unlock_reason: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    record_count: Optional[int] = None
    is_transient: bool = False

    model_config = ConfigDict(from_attributes=True)


class PeriodListResponse(BaseModel):
    items: List[PeriodOut]
    total: int


class PeriodIssueType(str, enum.Enum):
    UNRESOLVED_CONFLICTS = "UNRESOLVED_CONFLICTS"
    PENDING_APPROVALS = "PENDING_APPROVALS"
    MISSING_DATA = "MISSING_DATA"


class PeriodIssue(BaseModel):
    type: PeriodIssueType
    message: str
    count: int


class PeriodValidationResult(BaseModel):
    """can_finalize is True only when no issue has a non-zero count."""
    can_finalize: bool
    issues: List[PeriodIssue] = Field(default_factory=list)


class PeriodSummary(BaseModel):
    total_records: int
    employee_count: int
    pending_approvals: int
    conflicts: int
    period: PeriodOut


class FinalizeRequest(BaseModel):
    confirm_finalization: bool = Field(default=False, description="Must be true; finalization locks every record")


class UnlockRequest(BaseModel):
    confirm_unlock: bool = Field(default=False, description="Must be true")
    reason: str = Field(default="", description="Why the finalized period is being reopened")
