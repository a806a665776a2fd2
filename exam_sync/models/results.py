"""
Exam result ingestion models: payload forms, deliveries, outcomes and the
durable result record.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field


class PayloadForm(str, Enum):
    """Closed set of callback body shapes."""
    NOTIFICATION = "notification"
    FULL_RESULT = "full_result"
    HTML_WRAPPED = "html_wrapped"
    RAW_HTML = "raw_html"
    UNRECOGNIZED = "unrecognized"


class DeliveryState(str, Enum):
    """Per-delivery pipeline states."""
    RECEIVED = "received"
    AUTHENTICATED = "authenticated"
    CLASSIFIED = "classified"
    FETCHED = "fetched"
    PERSISTED = "persisted"
    REJECTED = "rejected"
    FAILED = "failed"


class LinkageStatus(str, Enum):
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class ClassifiedPayload:
    """Classifier output."""
    form: PayloadForm
    external_id: Optional[str] = None
    document: Optional[Dict[str, Any]] = None


@dataclass
class Delivery:
    """One inbound callback invocation. Lives only while the pipeline runs."""
    body: bytes
    headers: Mapping[str, str]
    delivery_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: DeliveryState = DeliveryState.RECEIVED
    form: Optional[PayloadForm] = None
    external_id: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.body)

    def describe(self) -> str:
        """Log-safe description; never includes the body."""
        return f"delivery={self.delivery_id} external_id={self.external_id or '-'} size={self.size}"


class ResultRecord(BaseModel):
    """Append-only summary row for one ingested delivery."""
    id: Optional[str] = None
    appointment_id: Optional[str] = Field(None, description="Owning appointment, null when unresolved")
    external_id: Optional[str] = None
    form: PayloadForm
    summary: Dict[str, Any] = Field(default_factory=dict)
    blob_bucket: str
    blob_path: str
    content_type: str
    size_bytes: int
    linkage_status: LinkageStatus = LinkageStatus.UNRESOLVED
    needs_reconciliation: bool = False
    created_at: Optional[datetime] = None

    model_config = {"extra": "ignore"}

    def to_row(self) -> Dict[str, Any]:
        """Insert payload; id and created_at are left to the store."""
        return self.model_dump(mode="json", exclude={"id", "created_at"})


@dataclass
class DeliveryOutcome:
    """Terminal result of a delivery, mapped onto the callback response."""
    state: DeliveryState
    status_code: int
    delivery_id: str
    form: Optional[PayloadForm] = None
    external_id: Optional[str] = None
    record: Optional[ResultRecord] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    permanent: bool = False

    @property
    def success(self) -> bool:
        return self.state == DeliveryState.PERSISTED

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "delivery_id": self.delivery_id,
            "state": self.state.value,
            "form": self.form.value if self.form else None,
            "external_id": self.external_id,
            "record_id": self.record.id if self.record else None,
            "linkage_status": self.record.linkage_status.value if self.record else None,
            "error": self.error,
            "error_code": self.error_code,
        }
