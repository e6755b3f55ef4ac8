"""
Attendance record endpoints: read, editability check, live edit validation and manual edit.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.constants import ROLE_ADMIN, ROLE_HR
from app.core.deps import Actor, get_current_actor, get_db, require_roles
from app.core.errors import ERROR_CODE_STATUS
from app.schemas.attendance_record import (
    AttendanceRecordOut,
    EditabilityDecision,
    EditValidationResponse,
    RecordEditRequest,
    RecordEditValidationRequest,
)
from app.schemas.results import EditResult
from app.services.attendance_record_service import edit_record, get_record, validate_edit
from app.services.editability_guard import can_edit

router = APIRouter()


@router.post("/validate-edit", response_model=EditValidationResponse)
async def validate_edit_endpoint(
    body: RecordEditValidationRequest,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Field-level feedback for the edit form; nothing is saved"""
    request = RecordEditRequest(**body.model_dump(exclude={"record_id"}))
    return validate_edit(db, body.record_id, request)


@router.get("/{record_id}", response_model=AttendanceRecordOut)
async def get_record_endpoint(
    record_id: int,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Get an attendance record by ID"""
    return get_record(db, record_id)


@router.get("/{record_id}/editability", response_model=EditabilityDecision)
async def record_editability_endpoint(
    record_id: int,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Whether the record may currently be edited, with the reason when it may not"""
    return can_edit(get_record(db, record_id))


@router.put("/{record_id}/edit", response_model=EditResult)
async def edit_record_endpoint(
    record_id: int,
    body: RecordEditRequest,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(require_roles(ROLE_HR, ROLE_ADMIN))
):
    """Manually correct date and clock times (HR/Admin). The edit confirms the record."""
    result = edit_record(db, record_id, current_actor.id, body)
    if result.success:
        return result
    return JSONResponse(
        status_code=ERROR_CODE_STATUS[result.error_code],
        content=result.model_dump(mode="json"),
    )
