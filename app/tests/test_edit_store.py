"""
Tests for the client-side optimistic edit store
"""
import asyncio
from datetime import date, time

import pytest

from app.client.edit_store import AttendanceEditStore, CancellationToken, EditState
from app.models.attendance_period import PeriodStatus
from app.models.attendance_record import ConflictResolution
from app.schemas.attendance_record import AttendanceRecordOut, RecordEditRequest
from app.schemas.results import EditResult, ErrorCode
from app.utils.datetime_utils import combine_local, format_hhmm

WORK_DATE = date(2024, 1, 15)


@pytest.fixture
def original():
    return AttendanceRecordOut(
        id=42,
        employee_code="EMP001",
        work_date=WORK_DATE,
        clock_in_at=combine_local(WORK_DATE, time(9, 0)),
        clock_out_at=combine_local(WORK_DATE, time(17, 0)),
        total_hours=8.0,
        conflict_resolution=ConflictResolution.REJECTED,
        period_id=1,
        period_status=PeriodStatus.PENDING,
    )


def _request(clock_in="10:00", clock_out="18:00", reason="Shift swap"):
    return RecordEditRequest(work_date=WORK_DATE, clock_in=clock_in, clock_out=clock_out, reason=reason)


def _server_record(original, request, actor_id="hr-1"):
    return original.model_copy(update={
        "clock_in_at": combine_local(request.work_date, time.fromisoformat(request.clock_in)),
        "clock_out_at": combine_local(request.work_date, time.fromisoformat(request.clock_out)),
        "total_hours": 8.0,
        "conflict_resolution": ConflictResolution.CONFIRMED,
        "conflict_resolved_by": actor_id,
        "conflict_notes": f"Manual edit: {request.reason}",
    })


class FakeServer:
    """send() stand-in whose responses are released by the test, one per call."""

    def __init__(self):
        self.calls = []
        self._gates = []

    async def send(self, record_id, request):
        gate = asyncio.get_running_loop().create_future()
        self.calls.append((record_id, request))
        self._gates.append(gate)
        outcome = await gate
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def respond(self, index, outcome):
        self._gates[index].set_result(outcome)


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


def test_projection_is_visible_while_in_flight_then_replaced(original):
    store = AttendanceEditStore(actor_id="hr-1")
    server = FakeServer()
    request = _request()

    async def scenario():
        task = asyncio.create_task(store.submit(original, request, server.send))
        await _settle()

        projected = store.get(original.id)
        assert store.state_of(original.id) == EditState.OPTIMISTIC_APPLIED
        assert store.is_busy is True
        assert format_hhmm(projected.clock_in_at) == "10:00"
        assert projected.total_hours == 8.0
        assert projected.conflict_resolution == ConflictResolution.CONFIRMED
        assert projected.conflict_notes == "Manual edit: Shift swap"
        assert projected.conflict_resolved_by == "hr-1"

        confirmed = _server_record(original, request).model_copy(update={"total_hours": 7.99})
        server.respond(0, EditResult(success=True, record=confirmed))
        result = await task
        return result, confirmed

    result, confirmed = asyncio.run(scenario())

    assert result.success is True
    assert store.state_of(original.id) == EditState.IDLE
    assert store.is_busy is False
    assert store.get(original.id).total_hours == 7.99
    assert store.records_with_updates([original]) == [confirmed]


def test_failure_rolls_back_to_original(original):
    store = AttendanceEditStore()
    server = FakeServer()

    async def scenario():
        task = asyncio.create_task(store.submit(original, _request(), server.send))
        await _settle()
        server.respond(0, EditResult.failure(ErrorCode.INVALID_STATE, "Record is part of a finalized period and cannot be edited"))
        return await task

    result = asyncio.run(scenario())

    assert result.error_code == ErrorCode.INVALID_STATE
    assert store.get(original.id) is None
    assert store.records_with_updates([original]) == [original]


def test_exception_rolls_back_and_reports_system_error(original):
    store = AttendanceEditStore()

    async def send(record_id, request):
        raise ConnectionError("network down")

    result = asyncio.run(store.submit(original, _request(), send))

    assert result.success is False
    assert result.error_code == ErrorCode.SYSTEM_ERROR
    assert result.errors[0].message == "Failed to save attendance record. Please try again."
    assert store.records_with_updates([original]) == [original]


def test_invalid_edit_is_never_sent(original):
    store = AttendanceEditStore()
    calls = []

    async def send(record_id, request):
        calls.append(record_id)

    result = asyncio.run(store.submit(original, _request(clock_in="18:00", clock_out="10:00"), send))

    assert result.error_code == ErrorCode.VALIDATION_FAILED
    assert result.violations[0].field == "clock_out"
    assert calls == []
    assert store.get(original.id) is None


def test_locked_record_is_never_sent(original):
    store = AttendanceEditStore()
    locked = original.model_copy(update={"period_status": PeriodStatus.FINALIZED, "is_finalized": True})
    calls = []

    async def send(record_id, request):
        calls.append(record_id)

    result = asyncio.run(store.submit(locked, _request(), send))

    assert result.error_code == ErrorCode.INVALID_STATE
    assert calls == []


def test_newer_submit_replaces_projection_and_older_failure_is_ignored(original):
    store = AttendanceEditStore()
    server = FakeServer()
    first_request = _request(clock_in="10:00")
    second_request = _request(clock_in="11:00")

    async def scenario():
        first = asyncio.create_task(store.submit(original, first_request, server.send))
        await _settle()
        second = asyncio.create_task(store.submit(original, second_request, server.send))
        await _settle()

        assert format_hhmm(store.get(original.id).clock_in_at) == "11:00"

        server.respond(0, EditResult.failure(ErrorCode.SYSTEM_ERROR, "boom"))
        await first
        # the superseded failure does not disturb the newer projection
        assert format_hhmm(store.get(original.id).clock_in_at) == "11:00"
        assert store.state_of(original.id) == EditState.OPTIMISTIC_APPLIED

        server.respond(1, EditResult(success=True, record=_server_record(original, second_request)))
        await second

    asyncio.run(scenario())

    assert format_hhmm(store.get(original.id).clock_in_at) == "11:00"
    assert store.state_of(original.id) == EditState.IDLE


def test_older_success_becomes_rollback_target_for_newer_edit(original):
    store = AttendanceEditStore()
    server = FakeServer()
    first_request = _request(clock_in="10:00")
    second_request = _request(clock_in="11:00")

    async def scenario():
        first = asyncio.create_task(store.submit(original, first_request, server.send))
        await _settle()
        second = asyncio.create_task(store.submit(original, second_request, server.send))
        await _settle()

        server.respond(0, EditResult(success=True, record=_server_record(original, first_request)))
        await first
        assert format_hhmm(store.get(original.id).clock_in_at) == "11:00"

        server.respond(1, EditResult.failure(ErrorCode.INVALID_STATE, "locked"))
        await second

    asyncio.run(scenario())

    assert format_hhmm(store.get(original.id).clock_in_at) == "10:00"
    assert store.state_of(original.id) == EditState.IDLE


def test_late_success_does_not_override_newer_confirmation(original):
    store = AttendanceEditStore()
    server = FakeServer()
    first_request = _request(clock_in="10:00")
    second_request = _request(clock_in="11:00")

    async def scenario():
        first = asyncio.create_task(store.submit(original, first_request, server.send))
        await _settle()
        second = asyncio.create_task(store.submit(original, second_request, server.send))
        await _settle()

        server.respond(1, EditResult(success=True, record=_server_record(original, second_request)))
        await second
        server.respond(0, EditResult(success=True, record=_server_record(original, first_request)))
        await first

    asyncio.run(scenario())

    assert format_hhmm(store.get(original.id).clock_in_at) == "11:00"


def test_cancelled_submission_reconciles_to_server_truth(original):
    store = AttendanceEditStore()
    server = FakeServer()
    token = CancellationToken()
    request = _request()

    async def scenario():
        task = asyncio.create_task(store.submit(original, request, server.send, token=token))
        await _settle()
        token.cancel()
        server.respond(0, EditResult(success=True, record=_server_record(original, request)))
        return await task

    result = asyncio.run(scenario())

    assert token.cancelled is True
    assert result.success is True
    assert format_hhmm(store.get(original.id).clock_in_at) == "10:00"


def test_cancelled_submission_failure_rolls_back(original):
    store = AttendanceEditStore()
    server = FakeServer()
    token = CancellationToken()

    async def scenario():
        task = asyncio.create_task(store.submit(original, _request(), server.send, token=token))
        await _settle()
        token.cancel()
        server.respond(0, EditResult.failure(ErrorCode.VALIDATION_FAILED, "rejected"))
        return await task

    result = asyncio.run(scenario())

    assert result.success is False
    assert store.get(original.id) is None


def test_task_cancellation_rolls_back_projection(original):
    store = AttendanceEditStore()
    server = FakeServer()

    async def scenario():
        task = asyncio.create_task(store.submit(original, _request(), server.send))
        await _settle()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert store.get(original.id) is None
    assert store.is_busy is False


def test_clear_discards_in_flight_results(original):
    store = AttendanceEditStore()
    server = FakeServer()
    request = _request()

    async def scenario():
        task = asyncio.create_task(store.submit(original, request, server.send))
        await _settle()
        store.clear()
        server.respond(0, EditResult(success=True, record=_server_record(original, request)))
        await task

    asyncio.run(scenario())

    assert store.get(original.id) is None
    assert store.records_with_updates([original]) == [original]


def test_stores_are_independent(original):
    first_store = AttendanceEditStore()
    second_store = AttendanceEditStore()
    request = _request()

    async def send(record_id, req):
        return EditResult(success=True, record=_server_record(original, req))

    asyncio.run(first_store.submit(original, request, send))

    assert first_store.get(original.id) is not None
    assert second_store.get(original.id) is None
