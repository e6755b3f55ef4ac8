"""
Client-side optimistic update protocol for attendance record edits.

An AttendanceEditStore belongs to one UI session (create it when the
attendance screen mounts, call clear() on unmount or logout). It shows an
edit immediately as a projection, then replaces the projection with the
server's record or rolls it back when the server refuses.

Per record there is at most one PendingEdit:

    IDLE -> OPTIMISTIC_APPLIED -> CONFIRMED
                               -> ROLLED_BACK

A newer submit for the same record replaces the older projection. When the
older request later succeeds, its server record becomes the state the newer
edit would roll back to; when it fails, nothing visible changes.
"""
import asyncio
import enum
import itertools
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from app.models.attendance_record import ConflictResolution
from app.schemas.attendance_record import AttendanceRecordOut, RecordEditRequest
from app.schemas.results import EditResult, ErrorCode
from app.services.attendance_record_service import manual_edit_notes
from app.services.editability_guard import can_edit
from app.services.record_edit_validator import parse_wall_clock, validate_record_edit
from app.utils.datetime_utils import combine_local, hours_between, now_utc

_log = logging.getLogger(__name__)

SendEdit = Callable[[int, RecordEditRequest], Awaitable[EditResult]]

MSG_INVALID_EDIT = "Attendance record edit is invalid"
MSG_SAVE_FAILED = "Failed to save attendance record. Please try again."


class EditState(str, enum.Enum):
    IDLE = "IDLE"
    OPTIMISTIC_APPLIED = "OPTIMISTIC_APPLIED"
    CONFIRMED = "CONFIRMED"
    ROLLED_BACK = "ROLLED_BACK"


class CancellationToken:
    """
    Detaches a UI from an in-flight submission (modal closed, screen left).

    The request itself is not aborted: the server may still commit it. A
    cancelled submission that succeeds is reconciled to the server's record;
    one that fails is rolled back without being reported.
    """

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class PendingEdit:
    record_id: int
    sequence: int
    generation: int
    projection: AttendanceRecordOut
    token: CancellationToken
    state: EditState = EditState.OPTIMISTIC_APPLIED


def build_projection(
    original: AttendanceRecordOut,
    request: RecordEditRequest,
    actor_id: Optional[str] = None
) -> AttendanceRecordOut:
    """The record as it should look once the server accepts `request`."""
    clock_in = parse_wall_clock(request.clock_in)
    clock_out = parse_wall_clock(request.clock_out)
    clock_in_at = combine_local(request.work_date, clock_in) if clock_in is not None else None
    clock_out_at = combine_local(request.work_date, clock_out) if clock_out is not None else None
    return original.model_copy(
        update={
            "work_date": request.work_date,
            "clock_in_at": clock_in_at,
            "clock_out_at": clock_out_at,
            "total_hours": hours_between(clock_in_at, clock_out_at),
            "conflict_resolution": ConflictResolution.CONFIRMED,
            "conflict_resolved_by": actor_id,
            "conflict_notes": manual_edit_notes(request.reason),
            "updated_at": now_utc(),
        }
    )


@dataclass
class AttendanceEditStore:
    """Optimistic view of attendance records for one UI session."""
    actor_id: Optional[str] = None
    _pending: Dict[int, PendingEdit] = field(default_factory=dict, init=False, repr=False)
    _confirmed: Dict[int, Tuple[int, AttendanceRecordOut]] = field(default_factory=dict, init=False, repr=False)
    _sequence: Iterator[int] = field(default_factory=lambda: itertools.count(1), init=False, repr=False)
    _generation: int = field(default=0, init=False, repr=False)

    @property
    def is_busy(self) -> bool:
        return bool(self._pending)

    def state_of(self, record_id: int) -> EditState:
        pending = self._pending.get(record_id)
        return pending.state if pending else EditState.IDLE

    def get(self, record_id: int) -> Optional[AttendanceRecordOut]:
        """Current projection or last confirmed server record, if the store has one."""
        pending = self._pending.get(record_id)
        if pending is not None:
            return pending.projection
        confirmed = self._confirmed.get(record_id)
        return confirmed[1] if confirmed else None

    def records_with_updates(self, records: Iterable[AttendanceRecordOut]) -> List[AttendanceRecordOut]:
        """Overlay projections and confirmed edits onto a freshly fetched list."""
        return [self.get(record.id) or record for record in records]

    def clear(self) -> None:
        """Forget everything. Submissions still in flight settle into nothing."""
        self._pending.clear()
        self._confirmed.clear()
        self._generation += 1

    async def submit(
        self,
        original: AttendanceRecordOut,
        request: RecordEditRequest,
        send: SendEdit,
        token: Optional[CancellationToken] = None
    ) -> EditResult:
        """
        Validate, project, send and settle one edit.

        Args:
            original: The record as the form was opened on
            request: Date, times and reason from the form
            send: Coroutine function persisting the edit, e.g. AttendanceApiClient.edit_record
            token: Optional cancellation token held by the UI

        Returns:
            The server's EditResult, or a local failure when the guard or the
            validator refuse the edit (nothing is projected or sent then).
        """
        decision = can_edit(original)
        if not decision.allowed:
            return EditResult.failure(ErrorCode.INVALID_STATE, decision.reason)
        violations = validate_record_edit(request, original)
        if violations:
            return EditResult.failure(ErrorCode.VALIDATION_FAILED, MSG_INVALID_EDIT, violations)

        record_id = original.id
        pending = PendingEdit(
            record_id=record_id,
            sequence=next(self._sequence),
            generation=self._generation,
            projection=build_projection(original, request, self.actor_id),
            token=token or CancellationToken(),
        )
        self._pending[record_id] = pending

        try:
            result = await send(record_id, request)
        except asyncio.CancelledError:
            self._settle(pending, None)
            raise
        except Exception:
            _log.exception("Failed to edit attendance record %s", record_id)
            result = EditResult.failure(ErrorCode.SYSTEM_ERROR, MSG_SAVE_FAILED)

        self._settle(pending, result)
        return result

    def _settle(self, pending: PendingEdit, result: Optional[EditResult]) -> None:
        if pending.generation != self._generation:
            return

        record_id = pending.record_id
        current = self._pending.get(record_id)
        succeeded = result is not None and result.success
        server_record = (result.record or pending.projection) if succeeded else None

        if succeeded:
            self._remember_confirmed(record_id, pending.sequence, server_record)

        if current is not pending:
            # Superseded by a newer submit; a rollback of that one falls back to _confirmed.
            return

        del self._pending[record_id]
        if succeeded:
            pending.state = EditState.CONFIRMED
            return

        pending.state = EditState.ROLLED_BACK
        if pending.token.cancelled:
            _log.debug("Cancelled edit of attendance record %s rolled back", record_id)
        else:
            _log.info("Edit of attendance record %s rolled back", record_id)

    def _remember_confirmed(self, record_id: int, sequence: int, record: AttendanceRecordOut) -> None:
        known = self._confirmed.get(record_id)
        if known is None or known[0] < sequence:
            self._confirmed[record_id] = (sequence, record)
