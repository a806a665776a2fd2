"""
Pydantic models for appointments and their outbound sync lifecycle.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class SyncState(str, Enum):
    """Outbound synchronization status of an appointment."""
    PENDING = "pending"
    IN_SYNC = "in_sync"
    ERROR = "error"


class AppointmentStatus(str, Enum):
    """Soft lifecycle; appointments are never deleted."""
    SCHEDULED = "scheduled"
    RESCHEDULED = "rescheduled"
    CANCELED = "canceled"
    COMPLETED = "completed"


class MutationType(str, Enum):
    """Database webhook event types."""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class SyncOperation(str, Enum):
    """External platform operation chosen for a mutation."""
    CREATE = "create"
    UPDATE = "update"
    CANCEL = "cancel"


# Columns written by the sync engine itself. An UPDATE touching only these is
# an echo of our own write, not a local mutation.
SYNC_OWNED_FIELDS = frozenset({
    "sync_state",
    "sync_error",
    "external_urls",
    "last_synced_at",
    "external_id",
    "updated_at",
})


class Appointment(BaseModel):
    """Appointment row as stored in the record store."""
    id: str = Field(..., description="Local primary key")
    external_id: Optional[str] = Field(None, description="Stable identifier shared with the exam platform")
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    clinician_name: Optional[str] = None
    clinician_email: Optional[str] = None
    patient_name: Optional[str] = None
    patient_email: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    sync_state: Optional[SyncState] = None
    sync_error: Optional[str] = None
    external_urls: Dict[str, str] = Field(default_factory=dict)
    last_synced_at: Optional[datetime] = None

    model_config = {"extra": "ignore"}

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Appointment":
        data = dict(row)
        data["id"] = str(data["id"])
        if data.get("external_urls") is None:
            data["external_urls"] = {}
        return cls.model_validate(data)

    def to_platform_payload(self) -> Dict[str, Any]:
        """Request document for the platform's create/update endpoints."""
        return {
            "appointmentId": self.external_id,
            "startDate": self.start_time.isoformat() if self.start_time else None,
            "endDate": self.end_time.isoformat() if self.end_time else None,
            "status": self.status.value,
            "clinician": {
                "name": self.clinician_name,
                "email": self.clinician_email,
            },
            "patient": {
                "name": self.patient_name,
                "email": self.patient_email,
            },
        }


class AppointmentMutation(BaseModel):
    """One local appointment change, as delivered by the database webhook."""
    type: MutationType
    appointment_id: Optional[str] = None
    record: Dict[str, Any] = Field(default_factory=dict)
    old_record: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_webhook(cls, payload: Dict[str, Any]) -> "AppointmentMutation":
        """
        Parse a Supabase database webhook envelope.

        Expected payload format:
        {
            "type": "INSERT" | "UPDATE" | "DELETE",
            "table": "appointments",
            "record": {...},
            "old_record": {...} (for UPDATE/DELETE)
        }
        """
        record = payload.get("record") or {}
        old_record = payload.get("old_record") or {}
        appointment_id = record.get("id") or old_record.get("id")
        return cls(
            type=MutationType(str(payload.get("type", "")).upper()),
            appointment_id=str(appointment_id) if appointment_id is not None else None,
            record=record,
            old_record=old_record,
        )

    def is_sync_echo(self) -> bool:
        """True when an UPDATE changed nothing but sync-owned columns."""
        if self.type != MutationType.UPDATE or not self.old_record:
            return False
        changed = {
            key for key in set(self.record) | set(self.old_record)
            if self.record.get(key) != self.old_record.get(key)
        }
        return changed <= SYNC_OWNED_FIELDS


class SyncResult(BaseModel):
    """Outcome of one outbound sync attempt."""
    appointment_id: str
    external_id: Optional[str] = None
    operation: Optional[SyncOperation] = None
    sync_state: Optional[SyncState] = None
    error: Optional[str] = None
    skipped: bool = False
