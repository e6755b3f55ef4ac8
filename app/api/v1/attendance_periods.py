"""
Attendance period endpoints: validation preview, summary, creation, finalize and unlock.
Reads are open to any authenticated actor; state changes need HR or ADMIN.
"""
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.constants import ENTITY_PERIOD, ROLE_ADMIN, ROLE_HR
from app.core.deps import Actor, get_current_actor, get_db, require_roles
from app.core.errors import ERROR_CODE_STATUS
from app.schemas.attendance_period import (
    FinalizeRequest,
    PeriodCreate,
    PeriodListResponse,
    PeriodOut,
    PeriodSummary,
    PeriodValidationResult,
    UnlockRequest,
)
from app.schemas.audit import AuditLogListResponse, AuditLogOut
from app.schemas.results import FinalizationResult
from app.services.audit_service import list_audit_entries
from app.services.finalization_service import finalize_period, unlock_period
from app.services.period_service import create_period, get_period, list_periods, to_period_out
from app.services.period_summary_service import get_period_summary
from app.services.period_validator import validate_period

router = APIRouter()


def _result_response(result: FinalizationResult):
    if result.success:
        return result
    return JSONResponse(
        status_code=ERROR_CODE_STATUS[result.error_code],
        content=result.model_dump(mode="json"),
    )


@router.get("/validate", response_model=PeriodValidationResult)
async def validate_period_endpoint(
    start: date = Query(..., description="First day of the range (inclusive)"),
    end: date = Query(..., description="Last day of the range (inclusive)"),
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Can the records dated in [start, end] be finalized?"""
    return validate_period(db, start, end)


@router.get("/summary", response_model=PeriodSummary)
async def period_summary_endpoint(
    start: date = Query(..., description="First day of the range (inclusive)"),
    end: date = Query(..., description="Last day of the range (inclusive)"),
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Record, employee and issue counts for [start, end]"""
    return get_period_summary(db, start, end)


@router.get("", response_model=PeriodListResponse)
async def list_periods_endpoint(
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """List periods, newest first"""
    items = [to_period_out(db, period) for period in list_periods(db)]
    return PeriodListResponse(items=items, total=len(items))


@router.post("", response_model=PeriodOut, status_code=201)
async def create_period_endpoint(
    period_data: PeriodCreate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(require_roles(ROLE_HR, ROLE_ADMIN))
):
    """Create a PENDING period (HR/Admin). Overlapping ranges are rejected with 409."""
    period = create_period(
        db=db,
        start_date=period_data.start_date,
        end_date=period_data.end_date,
        actor_id=current_actor.id
    )
    return to_period_out(db, period)


@router.get("/{period_id}", response_model=PeriodOut)
async def get_period_endpoint(
    period_id: int,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Get a period by ID"""
    return to_period_out(db, get_period(db, period_id))


@router.post("/{period_id}/finalize", response_model=FinalizationResult)
async def finalize_period_endpoint(
    period_id: int,
    body: FinalizeRequest,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(require_roles(ROLE_HR, ROLE_ADMIN))
):
    """
    Finalize a PENDING period and lock all of its records (HR/Admin).

    The client must send confirm_finalization=true: finalization cannot be
    undone without an unlock.
    """
    if not body.confirm_finalization:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Finalization must be confirmed"
        )
    return _result_response(finalize_period(db, period_id, current_actor.id))


@router.post("/{period_id}/unlock", response_model=FinalizationResult)
async def unlock_period_endpoint(
    period_id: int,
    body: UnlockRequest,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(require_roles(ROLE_HR, ROLE_ADMIN))
):
    """Return a FINALIZED period to PENDING (HR/Admin). Requires confirm_unlock=true and a reason."""
    if not body.confirm_unlock:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unlock must be confirmed"
        )
    return _result_response(unlock_period(db, period_id, current_actor.id, body.reason))


@router.get("/{period_id}/audit", response_model=AuditLogListResponse)
async def period_audit_endpoint(
    period_id: int,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Audit history of a period, oldest first"""
    get_period(db, period_id)
    entries = list_audit_entries(db, ENTITY_PERIOD, period_id)
    return AuditLogListResponse(
        items=[AuditLogOut.model_validate(entry) for entry in entries],
        total=len(entries)
    )
