"""
Attendance period model: a date range subject to a single finalize/unlock decision
"""
from sqlalchemy import Column, Integer, Date, DateTime, String, Text, CheckConstraint, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class PeriodStatus(str, enum.Enum):
    PENDING = "PENDING"
    FINALIZED = "FINALIZED"
    LOCKED = "LOCKED"  # Closed payroll run; no transition into or out of it is implemented


# Statuses under which every record of the period must have is_finalized = True
LOCKED_STATUSES = (PeriodStatus.FINALIZED, PeriodStatus.LOCKED)


class AttendancePeriod(Base):
    __tablename__ = "attendance_periods"

    id = Column(Integer, primary_key=True, index=True)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)  # Inclusive
    status = Column(SQLEnum(PeriodStatus), nullable=False, default=PeriodStatus.PENDING, index=True)
    finalized_by = Column(String, nullable=True)  # Kept across unlock as finalization history
    finalized_at = Column(DateTime(timezone=True), nullable=True)
    unlock_reason = Column(Text, nullable=True)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_attendance_period_range"),
        UniqueConstraint("start_date", "end_date", name="uq_attendance_period_range"),
    )

    records = relationship("AttendanceRecord", back_populates="period")
