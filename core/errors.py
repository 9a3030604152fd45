from enum import Enum
from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse


class LocationFailure(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"


class TimesheetError(Exception):
    """Base class for every failure the shift/reporting services surface."""

    code = "timesheet_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_response(self) -> dict:
        return {"status": "error", "code": self.code, "detail": self.detail}


class ValidationError(TimesheetError):
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class LocationError(TimesheetError):
    code = "location_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, kind: LocationFailure, detail: Optional[str] = None):
        super().__init__(detail or f"Could not acquire device location ({kind.value}).")
        self.kind = kind

    @property
    def retryable(self) -> bool:
        # A blocked permission needs the user to change a setting; the rest may clear up.
        return self.kind != LocationFailure.PERMISSION_DENIED

    def to_response(self) -> dict:
        body = super().to_response()
        body["kind"] = self.kind.value
        body["retryable"] = self.retryable
        return body


class LocationRequired(LocationError):
    code = "location_required"


class StorageFailure(TimesheetError):
    code = "storage_failure"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class EvidenceUploadFailed(StorageFailure):
    """
    The shift was ended but the end-of-shift photo could not be stored.

    The record stays ended; the caller may retry only the upload.
    """

    code = "evidence_upload_failed"

    def __init__(self, detail: str, record_id: str):
        super().__init__(detail)
        self.record_id = record_id

    def to_response(self) -> dict:
        body = super().to_response()
        body["record_id"] = self.record_id
        return body


class ConcurrencyViolation(TimesheetError):
    code = "concurrency_violation"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, detail: str, active_record_id: Optional[str] = None):
        super().__init__(detail)
        self.active_record_id = active_record_id

    def to_response(self) -> dict:
        body = super().to_response()
        body["active_record_id"] = self.active_record_id
        return body


class InvalidTransition(TimesheetError):
    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT


class RecordNotFound(TimesheetError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class PermissionDenied(TimesheetError):
    code = "permission_denied"
    status_code = status.HTTP_403_FORBIDDEN


async def timesheet_error_handler(request: Request, exc: TimesheetError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())
