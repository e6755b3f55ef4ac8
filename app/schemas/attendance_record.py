"""
Attendance record schemas: record DTO, edit request, validation violations, editability.
"""
from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from app.models.attendance_period import PeriodStatus
from app.models.attendance_record import ConflictResolution


class AttendanceRecordOut(BaseModel):
    """Attendance record as seen by the API and by the client edit store. Datetimes are UTC."""
    id: int
    employee_code: str
    work_date: date
    clock_in_at: Optional[datetime] = None
    clock_out_at: Optional[datetime] = None
    total_hours: Optional[float] = None
    conflict_resolution: ConflictResolution = ConflictResolution.UNRESOLVED
    conflict_resolved_by: Optional[str] = None
    conflict_notes: Optional[str] = None
    period_id: Optional[int] = None
    period_status: Optional[PeriodStatus] = None
    is_finalized: bool = False
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RecordEditRequest(BaseModel):
    """
    Proposed edit as typed into the edit form. Times are operator-local 24-hour
    "HH:MM" strings; an empty string or None means "not supplied".
    """
    work_date: Optional[date] = None
    clock_in: Optional[str] = Field(default=None, description="HH:MM, 24-hour, operator timezone")
    clock_out: Optional[str] = Field(default=None, description="HH:MM, 24-hour, operator timezone")
    reason: str = Field(default="", description="Required whenever date or times change")


class RecordEditValidationRequest(RecordEditRequest):
    """Live form feedback: the proposal plus the record it would change."""
    record_id: int


class EditViolation(BaseModel):
    field: str  # work_date, clock_in, clock_out, reason, general
    message: str


class EditValidationResponse(BaseModel):
    valid: bool
    violations: List[EditViolation]


class EditabilityDecision(BaseModel):
    allowed: bool
    reason: Optional[str] = None
