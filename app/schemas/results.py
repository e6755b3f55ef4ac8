"""
Result envelopes returned by the finalize, unlock and edit operations.
"""
import enum
from typing import List, Optional
from pydantic import BaseModel, Field

from app.schemas.attendance_period import PeriodOut
from app.schemas.attendance_record import AttendanceRecordOut, EditViolation


class ErrorCode(str, enum.Enum):
    NOT_FOUND = "NOT_FOUND"  # entity missing; surfaced verbatim
    INVALID_STATE = "INVALID_STATE"  # not legal in the current lifecycle state ("already done" / "not ready")
    VALIDATION_FAILED = "VALIDATION_FAILED"  # caller may correct input and retry
    SYSTEM_ERROR = "SYSTEM_ERROR"  # unexpected; logged with context, generic message shown


class OperationError(BaseModel):
    code: ErrorCode
    message: str


class FinalizationResult(BaseModel):
    """Outcome of finalize_period / unlock_period."""
    success: bool
    period: Optional[PeriodOut] = None
    affected_record_count: Optional[int] = None
    errors: List[OperationError] = Field(default_factory=list)

    @classmethod
    def failure(cls, code: ErrorCode, message: str) -> "FinalizationResult":
        return cls(success=False, errors=[OperationError(code=code, message=message)])

    @property
    def error_code(self) -> Optional[ErrorCode]:
        return self.errors[0].code if self.errors else None


class EditResult(BaseModel):
    """Outcome of an attendance record edit. violations is populated for field-level failures."""
    success: bool
    record: Optional[AttendanceRecordOut] = None
    errors: List[OperationError] = Field(default_factory=list)
    violations: List[EditViolation] = Field(default_factory=list)

    @classmethod
    def failure(
        cls,
        code: ErrorCode,
        message: str,
        violations: Optional[List[EditViolation]] = None,
    ) -> "EditResult":
        return cls(
            success=False,
            errors=[OperationError(code=code, message=message)],
            violations=violations or [],
        )

    @property
    def error_code(self) -> Optional[ErrorCode]:
        return self.errors[0].code if self.errors else None
