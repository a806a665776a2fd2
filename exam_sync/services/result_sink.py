"""
Durable Result Sink

Stream-first persistence for exam result deliveries:
1. the raw payload is written to blob storage and acknowledged,
2. only then is a summary row created that points at the blob.

A failed blob write leaves nothing behind. A failed row write leaves an
orphaned blob, which is logged for reconciliation; a missing index row is
reported as a failure so the platform redelivers.
"""

import asyncio
import logging
import time
import uuid
from typing import Any, Dict, Optional

from exam_sync.config import Settings
from exam_sync.exceptions import (
    RecordWriteFailed,
    StorageWriteFailed,
    TransportTimeout,
)
from exam_sync.models.results import LinkageStatus, PayloadForm, ResultRecord
from exam_sync.services.blob_store import BlobStore
from exam_sync.services.external_timeouts import storage_timeout
from exam_sync.services.record_store import RecordStore

logger = logging.getLogger(__name__)

UNIDENTIFIED_PREFIX = "unidentified"

_EXTENSIONS = {
    "application/json": "json",
    "text/html": "html",
}


def build_blob_path(external_id: Optional[str], content_type: str) -> str:
    """
    Unique key per delivery: identifier + nanosecond timestamp + random suffix.

    Redeliveries and re-pulls of the same exam always land on new keys.
    """
    prefix = _safe_segment(external_id) if external_id else UNIDENTIFIED_PREFIX
    extension = _EXTENSIONS.get(content_type.split(";")[0].strip().lower(), "bin")
    return f"{prefix}/{time.time_ns()}-{uuid.uuid4().hex[:8]}.{extension}"


def _safe_segment(value: str) -> str:
    cleaned = "".join(c if c.isalnum() or c in "-_." else "_" for c in value)
    return cleaned.strip(".") or UNIDENTIFIED_PREFIX


class DurableResultSink:
    """Writes the blob, resolves linkage, then appends the result row"""

    def __init__(self, blob_store: BlobStore, record_store: RecordStore, settings: Settings):
        self.blobs = blob_store
        self.records = record_store
        self.timeout = storage_timeout(settings)

    async def persist(
        self,
        external_id: Optional[str],
        raw_bytes: bytes,
        content_kind: str,
        summary: Dict[str, Any],
        form: PayloadForm = PayloadForm.FULL_RESULT,
    ) -> ResultRecord:
        """
        Persist one delivery.

        Args:
            external_id: Identifier from the payload, if any
            raw_bytes: Payload exactly as received (or as fetched)
            content_kind: MIME type stored with the blob
            summary: Parsed summary document for the row
            form: Payload form the bytes were classified as

        Returns:
            The created ResultRecord

        Raises:
            StorageWriteFailed / RecordWriteFailed / TransportTimeout
        """
        blob_path = build_blob_path(external_id, content_kind)

        # Phase 1: blob first
        try:
            await asyncio.wait_for(
                self.blobs.upload(blob_path, raw_bytes, content_kind),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise TransportTimeout(
                f"Blob upload timed out after {self.timeout}s",
                external_id=external_id,
            )
        except Exception as e:
            raise StorageWriteFailed(
                f"Blob upload failed: {type(e).__name__}: {e}",
                external_id=external_id,
            ) from e

        logger.info(f"Stored raw payload for {external_id or '-'} at {self.blobs.bucket}/{blob_path} ({len(raw_bytes)} bytes)")

        # Phase 2: linkage never blocks persistence
        appointment_id = await self._resolve_appointment(external_id)

        record = ResultRecord(
            appointment_id=appointment_id,
            external_id=external_id,
            form=form,
            summary=summary,
            blob_bucket=self.blobs.bucket,
            blob_path=blob_path,
            content_type=content_kind,
            size_bytes=len(raw_bytes),
            linkage_status=LinkageStatus.RESOLVED if appointment_id else LinkageStatus.UNRESOLVED,
            needs_reconciliation=appointment_id is None,
        )

        # Phase 3: index row referencing the acknowledged blob
        try:
            row = await asyncio.wait_for(
                self.records.insert_result_record(record.to_row()),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Orphaned blob {self.blobs.bucket}/{blob_path}: result row insert timed out")
            raise TransportTimeout(
                f"Result row insert timed out after {self.timeout}s",
                external_id=external_id,
            )
        except Exception as e:
            logger.error(f"Orphaned blob {self.blobs.bucket}/{blob_path}: result row insert failed ({type(e).__name__})")
            raise RecordWriteFailed(
                f"Result row insert failed: {type(e).__name__}: {e}",
                external_id=external_id,
                blob_path=blob_path,
            ) from e

        return ResultRecord.model_validate({
            **record.model_dump(),
            "id": str(row["id"]) if row.get("id") is not None else None,
            "created_at": row.get("created_at"),
        })

    async def _resolve_appointment(self, external_id: Optional[str]) -> Optional[str]:
        if not external_id:
            self._flag_unresolved("payload carries no identifier")
            return None

        try:
            appointment = await asyncio.wait_for(
                self.records.find_appointment_by_external_id(external_id),
                timeout=self.timeout,
            )
        except Exception as e:
            self._flag_unresolved(f"lookup for {external_id} failed ({type(e).__name__})")
            return None

        if not appointment:
            self._flag_unresolved(f"no appointment with external id {external_id}")
            return None

        return str(appointment["id"])

    @staticmethod
    def _flag_unresolved(reason: str) -> None:
        logger.warning(f"Linkage unresolved: {reason} - result stored for reconciliation")
