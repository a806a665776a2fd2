"""Data models for the exam sync service."""
from exam_sync.models.appointments import (
    Appointment,
    AppointmentMutation,
    AppointmentStatus,
    MutationType,
    SyncOperation,
    SyncResult,
    SyncState,
)
from exam_sync.models.results import (
    ClassifiedPayload,
    Delivery,
    DeliveryOutcome,
    DeliveryState,
    LinkageStatus,
    PayloadForm,
    ResultRecord,
)

__all__ = [
    "Appointment",
    "AppointmentMutation",
    "AppointmentStatus",
    "MutationType",
    "SyncOperation",
    "SyncResult",
    "SyncState",
    "ClassifiedPayload",
    "Delivery",
    "DeliveryOutcome",
    "DeliveryState",
    "LinkageStatus",
    "PayloadForm",
    "ResultRecord",
]
