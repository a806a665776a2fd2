"""
Outbound Appointment Sync Engine

Pushes local appointment mutations to the exam platform:

    *any* --(local mutation)--> pending --(2xx)--> in_sync
                                   |
                                   +--(error)--> error

Every external call is preceded by a committed `pending` write. There is no
retry loop here: touching the appointment again replays the sync, and the
stable external_id makes a replayed create reconcile instead of duplicate.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from exam_sync.exceptions import PlatformRequestFailed
from exam_sync.models.appointments import (
    Appointment,
    AppointmentMutation,
    AppointmentStatus,
    MutationType,
    SyncOperation,
    SyncResult,
    SyncState,
)
from exam_sync.services.exam_platform_client import ExamPlatformClient, extract_reference_urls
from exam_sync.services.record_store import RecordStore

logger = logging.getLogger(__name__)


def select_operation(appointment: Appointment) -> SyncOperation:
    """Pick the platform call for the appointment's current state."""
    if appointment.status == AppointmentStatus.CANCELED:
        return SyncOperation.CANCEL
    if appointment.last_synced_at is None and not appointment.external_urls:
        # Never acknowledged by the platform yet (or the last create failed).
        # last_synced_at is only written after a 2xx, with or without URLs.
        return SyncOperation.CREATE
    return SyncOperation.UPDATE


class AppointmentSyncEngine:
    """Owns the sync_state transitions of appointments"""

    def __init__(self, record_store: RecordStore, platform: ExamPlatformClient):
        self.records = record_store
        self.platform = platform

    async def handle_mutation(self, mutation: AppointmentMutation) -> SyncResult:
        """React to one database webhook event."""
        appointment_id = mutation.appointment_id or ""

        if mutation.type == MutationType.DELETE:
            logger.warning(f"Ignoring DELETE for appointment {appointment_id}: appointments are status-transitioned, not deleted")
            return SyncResult(appointment_id=appointment_id, skipped=True)

        if mutation.is_sync_echo():
            logger.info(f"Skipping webhook for appointment {appointment_id} - sync operation detected")
            return SyncResult(appointment_id=appointment_id, skipped=True)

        return await self.sync_appointment(appointment_id)

    async def sync_appointment(self, appointment_id: str) -> SyncResult:
        """
        Run one outbound sync for an appointment.

        Returns:
            SyncResult with the final sync_state; failures are recorded on the
            appointment row, not raised
        """
        row = await self.records.get_appointment(appointment_id)
        if not row:
            logger.warning(f"Appointment {appointment_id} not found, skipping sync")
            return SyncResult(appointment_id=appointment_id, skipped=True)

        appointment = Appointment.from_row(row)

        # Enter pending before any external call; external_id is set once
        pending: Dict[str, Any] = {"sync_state": SyncState.PENDING.value, "sync_error": None}
        if not appointment.external_id:
            pending["external_id"] = str(uuid.uuid4())
        try:
            row = await self.records.update_appointment(appointment.id, pending)
        except Exception as e:
            logger.error(f"Could not mark appointment {appointment.id} pending, no external call made: {e}", exc_info=True)
            raise

        appointment = Appointment.from_row(row)
        operation = select_operation(appointment)
        logger.info(f"Syncing appointment {appointment.id} ({appointment.external_id}) to exam platform: {operation.value}")

        try:
            response = await self._call(operation, appointment)
        except PlatformRequestFailed as e:
            return await self._record_failure(appointment, operation, e.detail)
        except Exception as e:
            logger.error(f"Unexpected error calling exam platform for {appointment.id}", exc_info=True)
            return await self._record_failure(appointment, operation, f"{type(e).__name__}: {e}")

        urls = {**appointment.external_urls, **extract_reference_urls(response)}
        await self.records.update_appointment(appointment.id, {
            "sync_state": SyncState.IN_SYNC.value,
            "sync_error": None,
            "external_urls": urls,
            "last_synced_at": datetime.now(timezone.utc).isoformat(),
        })
        logger.info(f"✅ Successfully synced appointment {appointment.id} ({operation.value})")

        return SyncResult(
            appointment_id=appointment.id,
            external_id=appointment.external_id,
            operation=operation,
            sync_state=SyncState.IN_SYNC,
        )

    async def _record_failure(self, appointment: Appointment, operation: SyncOperation, detail: str) -> SyncResult:
        """Move the row to `error` with the failure detail kept verbatim."""
        logger.error(f"❌ Failed to sync appointment {appointment.id}: {detail}")
        try:
            await self.records.update_appointment(appointment.id, {
                "sync_state": SyncState.ERROR.value,
                "sync_error": detail,
            })
        except Exception as e:
            # Row stays pending; the next mutation or a trigger replays the sync
            logger.error(f"Could not record sync error for appointment {appointment.id}: {e}", exc_info=True)

        return SyncResult(
            appointment_id=appointment.id,
            external_id=appointment.external_id,
            operation=operation,
            sync_state=SyncState.ERROR,
            error=detail,
        )

    async def _call(self,operation: SyncOperation, appointment: Appointment) -> Dict[str, Any]:
        if operation == SyncOperation.CANCEL:
            return await self.platform.cancel_appointment(appointment.external_id)
        if operation == SyncOperation.UPDATE:
            return await self.platform.update_appointment(appointment.external_id, appointment.to_platform_payload())
        return await self.platform.create_appointment(appointment.to_platform_payload())
