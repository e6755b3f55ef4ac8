"""
Client-side pieces of the edit flow: optimistic edit store and API client.
"""
from app.client.api_client import AttendanceApiClient
from app.client.edit_store import AttendanceEditStore, CancellationToken, EditState, PendingEdit

__all__ = [
    "AttendanceApiClient",
    "AttendanceEditStore",
    "CancellationToken",
    "EditState",
    "PendingEdit",
]
