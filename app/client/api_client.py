"""
Async HTTP client for the attendance finalization API.
"""
from datetime import date
from typing import Any, Dict, List, Optional
import httpx

from app.schemas.attendance_period import (
    FinalizeRequest,
    PeriodCreate,
    PeriodListResponse,
    PeriodOut,
    PeriodSummary,
    PeriodValidationResult,
    UnlockRequest,
)
from app.schemas.attendance_record import (
    AttendanceRecordOut,
    EditabilityDecision,
    EditValidationResponse,
    RecordEditRequest,
    RecordEditValidationRequest,
)
from app.schemas.results import EditResult, ErrorCode, FinalizationResult

API_PREFIX = "/api/v1"

STATUS_ERROR_CODES = {
    400: ErrorCode.VALIDATION_FAILED,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.INVALID_STATE,
    422: ErrorCode.VALIDATION_FAILED,
}


def _error_code_for(status_code: int) -> ErrorCode:
    return STATUS_ERROR_CODES.get(status_code, ErrorCode.SYSTEM_ERROR)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return response.reason_phrase


class AttendanceApiClient:
    """
    Thin wrapper over httpx.AsyncClient.

    Finalize, unlock and edit return result objects for every HTTP outcome,
    since their failures are part of normal use. Other calls raise
    httpx.HTTPStatusError on non-2xx responses.

    Usage:
        async with AttendanceApiClient("http://localhost:8000", token=jwt) as api:
            result = await store.submit(record, request, api.edit_record)
    """

    def __init__(
        self,
        base_url: str = "",
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._headers = headers

    async def __aenter__(self) -> "AttendanceApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        return await self._client.request(method, f"{API_PREFIX}{path}", headers=self._headers, **kwargs)

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._request("GET", path, params=params)
        response.raise_for_status()
        return response.json()

    # Periods

    async def list_periods(self) -> PeriodListResponse:
        return PeriodListResponse.model_validate(await self._get_json("/attendance/periods"))

    async def get_period(self, period_id: int) -> PeriodOut:
        return PeriodOut.model_validate(await self._get_json(f"/attendance/periods/{period_id}"))

    async def create_period(self, start_date: date, end_date: date) -> PeriodOut:
        payload = PeriodCreate(start_date=start_date, end_date=end_date)
        response = await self._request("POST", "/attendance/periods", json=payload.model_dump(mode="json"))
        response.raise_for_status()
        return PeriodOut.model_validate(response.json())

    async def validate_period(self, start_date: date, end_date: date) -> PeriodValidationResult:
        data = await self._get_json(
            "/attendance/periods/validate",
            params={"start": start_date.isoformat(), "end": end_date.isoformat()},
        )
        return PeriodValidationResult.model_validate(data)

    async def get_period_summary(self, start_date: date, end_date: date) -> PeriodSummary:
        data = await self._get_json(
            "/attendance/periods/summary",
            params={"start": start_date.isoformat(), "end": end_date.isoformat()},
        )
        return PeriodSummary.model_validate(data)

    async def finalize_period(self, period_id: int) -> FinalizationResult:
        payload = FinalizeRequest(confirm_finalization=True)
        response = await self._request(
            "POST", f"/attendance/periods/{period_id}/finalize", json=payload.model_dump()
        )
        return self._finalization_result(response)

    async def unlock_period(self, period_id: int, reason: str) -> FinalizationResult:
        payload = UnlockRequest(confirm_unlock=True, reason=reason)
        response = await self._request(
            "POST", f"/attendance/periods/{period_id}/unlock", json=payload.model_dump()
        )
        return self._finalization_result(response)

    async def get_period_audit(self, period_id: int) -> List[Dict[str, Any]]:
        data = await self._get_json(f"/attendance/periods/{period_id}/audit")
        return data["items"]

    # Records

    async def get_record(self, record_id: int) -> AttendanceRecordOut:
        return AttendanceRecordOut.model_validate(await self._get_json(f"/attendance/records/{record_id}"))

    async def get_editability(self, record_id: int) -> EditabilityDecision:
        data = await self._get_json(f"/attendance/records/{record_id}/editability")
        return EditabilityDecision.model_validate(data)

    async def validate_edit(self, record_id: int, request: RecordEditRequest) -> EditValidationResponse:
        payload = RecordEditValidationRequest(record_id=record_id, **request.model_dump())
        response = await self._request(
            "POST", "/attendance/records/validate-edit", json=payload.model_dump(mode="json")
        )
        response.raise_for_status()
        return EditValidationResponse.model_validate(response.json())

    async def edit_record(self, record_id: int, request: RecordEditRequest) -> EditResult:
        """Matches the `send` signature AttendanceEditStore.submit expects."""
        response = await self._request(
            "PUT", f"/attendance/records/{record_id}/edit", json=request.model_dump(mode="json")
        )
        body = self._result_body(response)
        if body is not None:
            return EditResult.model_validate(body)
        return EditResult.failure(_error_code_for(response.status_code), _error_message(response))

    def _finalization_result(self, response: httpx.Response) -> FinalizationResult:
        body = self._result_body(response)
        if body is not None:
            return FinalizationResult.model_validate(body)
        return FinalizationResult.failure(_error_code_for(response.status_code), _error_message(response))

    @staticmethod
    def _result_body(response: httpx.Response) -> Optional[Dict[str, Any]]:
        """The JSON body when it is a result envelope; None for plain HTTP errors."""
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and "success" in body:
            return body
        return None
