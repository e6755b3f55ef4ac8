"""
Pytest configuration and fixtures
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["OPERATOR_TZ"] = "Asia/Kolkata"

from datetime import date, time
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app.main import app
from app.db.base import Base
from app.db.session import configure_sqlite_engine
from app.core.deps import get_db
from app.core.security import create_access_token
from app.constants import ROLE_ADMIN, ROLE_EMPLOYEE, ROLE_HR

# Import all models to ensure they're registered with Base.metadata
from app.models import (
    AuditLog,
    AttendancePeriod,
    PeriodStatus,
    AttendanceRecord,
    ConflictResolution,
)  # noqa
from app.utils.datetime_utils import combine_local, hours_between


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = configure_sqlite_engine(
    create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _auth_headers(actor_id: str, role: str) -> dict:
    """Bearer header for an actor with the given role"""
    token = create_access_token({"sub": actor_id, "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return _auth_headers


@pytest.fixture
def hr_headers():
    return _auth_headers("hr-1", ROLE_HR)


@pytest.fixture
def admin_headers():
    return _auth_headers("admin-1", ROLE_ADMIN)


@pytest.fixture
def employee_headers():
    return _auth_headers("emp-1", ROLE_EMPLOYEE)


@pytest.fixture
def make_record(db):
    """
    Factory for attendance records. Times are operator-local "HH:MM" strings
    (or None); pass period to attach the record to a period.
    """
    transaction_ids = count(1)

    def _make(
        work_date: date = date(2024, 1, 15),
        clock_in: str = "09:00",
        clock_out: str = "17:00",
        employee_code: str = "EMP001",
        resolution: ConflictResolution = ConflictResolution.CONFIRMED,
        period: AttendancePeriod = None,
        is_finalized: bool = False,
    ) -> AttendanceRecord:
        clock_in_at = combine_local(work_date, time.fromisoformat(clock_in)) if clock_in else None
        clock_out_at = combine_local(work_date, time.fromisoformat(clock_out)) if clock_out else None
        record = AttendanceRecord(
            employee_code=employee_code,
            work_date=work_date,
            transaction_id=f"zkt-{next(transaction_ids)}",
            clock_in_at=clock_in_at,
            clock_out_at=clock_out_at,
            total_hours=hours_between(clock_in_at, clock_out_at),
            conflict_resolution=resolution,
            period_id=period.id if period is not None else None,
            is_finalized=is_finalized,
        )
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    return _make


@pytest.fixture
def make_period(db):
    """Factory for periods inserted directly (no record association, no audit)."""
    def _make(
        start_date: date = date(2024, 1, 1),
        end_date: date = date(2024, 1, 31),
        status: PeriodStatus = PeriodStatus.PENDING,
    ) -> AttendancePeriod:
        period = AttendancePeriod(
            start_date=start_date,
            end_date=end_date,
            status=status,
            created_by="hr-1",
        )
        db.add(period)
        db.commit()
        db.refresh(period)
        return period

    return _make
