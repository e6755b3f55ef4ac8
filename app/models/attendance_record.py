"""
Attendance record model (one clock-in/clock-out observation for one employee on one date)
"""
from sqlalchemy import Column, Integer, Date, DateTime, Float, ForeignKey, String, Text, Boolean, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class ConflictResolution(str, enum.Enum):
    UNRESOLVED = "UNRESOLVED"  # nobody has reviewed the record yet
    REJECTED = "REJECTED"  # reviewed, still conflicting
    CONFIRMED = "CONFIRMED"  # reviewed and accepted; the only payroll-ready state


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    employee_code = Column(String, nullable=False, index=True)
    work_date = Column(Date, nullable=False, index=True)  # Operator-local calendar date
    transaction_id = Column(String, nullable=False)  # Device transaction id from ingestion
    clock_in_at = Column(DateTime(timezone=True), nullable=True)  # UTC
    clock_out_at = Column(DateTime(timezone=True), nullable=True)  # UTC
    total_hours = Column(Float, nullable=True)  # Derived from clock_in_at/clock_out_at
    conflict_resolution = Column(
        SQLEnum(ConflictResolution),
        nullable=False,
        default=ConflictResolution.UNRESOLVED,
        index=True,
    )
    conflict_resolved_by = Column(String, nullable=True)
    conflict_notes = Column(Text, nullable=True)
    period_id = Column(Integer, ForeignKey("attendance_periods.id"), nullable=True, index=True)
    is_finalized = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_code", "work_date", "transaction_id", name="uq_attendance_record_source"),
    )

    period = relationship("AttendancePeriod", back_populates="records")

    @property
    def period_status(self):
        """Status of the owning period, or None when the record is not yet in a period."""
        return self.period.status if self.period is not None else None
