"""
Custom exceptions for the exam sync service.

Every ingestion failure says whether it is permanent (redelivery will not
help) or transient (the platform should redeliver), and which status code the
callback endpoint answers with.
"""
from typing import Optional


class ExamSyncError(Exception):
    """Base class for delivery failures."""

    permanent = False
    status_code = 500
    code = "error"

    def __init__(self, message: str, external_id: Optional[str] = None):
        self.message = message
        self.external_id = external_id
        super().__init__(message)


class AuthRejected(ExamSyncError):
    """Raised when a callback fails the configured authentication scheme."""

    permanent = True
    status_code = 401
    code = "auth_rejected"

    def __init__(self, message: str = "Callback authentication failed"):
        super().__init__(message)


class UnrecognizedPayload(ExamSyncError):
    """Raised when a structured body matches none of the known payload forms."""

    permanent = True
    status_code = 400
    code = "unrecognized_payload"

    def __init__(self, message: str = "Payload form not recognized", external_id: Optional[str] = None):
        super().__init__(message, external_id)


class FetchFailed(ExamSyncError):
    """Raised when the full result document cannot be pulled from the platform."""

    status_code = 502
    code = "fetch_failed"

    def __init__(self, message: str, external_id: Optional[str] = None, upstream_status: Optional[int] = None):
        self.upstream_status = upstream_status
        super().__init__(message, external_id)


class StorageWriteFailed(ExamSyncError):
    """Raised when the raw payload could not be written to blob storage."""

    status_code = 500
    code = "storage_write_failed"


class RecordWriteFailed(ExamSyncError):
    """Raised when the result row could not be created after the blob was stored."""

    status_code = 500
    code = "record_write_failed"

    def __init__(self, message: str, external_id: Optional[str] = None, blob_path: Optional[str] = None):
        self.blob_path = blob_path
        super().__init__(message, external_id)


class TransportTimeout(ExamSyncError):
    """Raised when a fetch or storage call exceeds its timeout."""

    code = "transport_timeout"

    def __init__(self, message: str, external_id: Optional[str] = None, status_code: int = 500):
        self.status_code = status_code
        super().__init__(message, external_id)


class PlatformRequestFailed(Exception):
    """Raised when an outbound appointment call to the exam platform fails."""

    def __init__(self, detail: str, status_code: Optional[int] = None):
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)
