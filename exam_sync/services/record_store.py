"""
Record store adapter over the Supabase tables holding appointments and exam
result rows. Transactions and consistency belong to the database; this layer
only shapes queries and bounds how long each one may take.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from supabase import AsyncClient

from exam_sync.config import Settings

logger = logging.getLogger(__name__)


class RecordStore:
    """Abstract record store"""

    async def get_appointment(self, appointment_id: str) -> Optional[Dict[str, Any]]:
        """Fetch an appointment row by local id"""
        raise NotImplementedError

    async def find_appointment_by_external_id(self, external_id: str) -> Optional[Dict[str, Any]]:
        """Fetch an appointment row by its external identifier"""
        raise NotImplementedError

    async def update_appointment(self, appointment_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Write fields onto an appointment row, returning the updated row"""
        raise NotImplementedError

    async def insert_result_record(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one result row, returning it with store-generated columns"""
        raise NotImplementedError


class SupabaseRecordStore(RecordStore):
    """Record store backed by Supabase PostgREST"""

    def __init__(self, client: AsyncClient, settings: Settings):
        self.client = client
        self.appointments_table = settings.APPOINTMENTS_TABLE
        self.results_table = settings.RESULTS_TABLE
        self.timeout = settings.STORAGE_TIMEOUT_SECONDS

    async def get_appointment(self, appointment_id: str) -> Optional[Dict[str, Any]]:
        query = self.client.table(self.appointments_table).select("*").eq("id", appointment_id).limit(1)
        response = await asyncio.wait_for(query.execute(), timeout=self.timeout)
        return response.data[0] if response.data else None

    async def find_appointment_by_external_id(self, external_id: str) -> Optional[Dict[str, Any]]:
        query = self.client.table(self.appointments_table).select(
            "id, external_id"
        ).eq("external_id", external_id).limit(1)
        response = await asyncio.wait_for(query.execute(), timeout=self.timeout)
        return response.data[0] if response.data else None

    async def update_appointment(self, appointment_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        query = self.client.table(self.appointments_table).update(fields).eq("id", appointment_id)
        response = await asyncio.wait_for(query.execute(), timeout=self.timeout)
        if not response.data:
            raise LookupError(f"Appointment {appointment_id} not updated (no rows returned)")
        return response.data[0]

    async def insert_result_record(self, row: Dict[str, Any]) -> Dict[str, Any]:
        query = self.client.table(self.results_table).insert(row)
        response = await asyncio.wait_for(query.execute(), timeout=self.timeout)
        if not response.data:
            raise LookupError("Result record insert returned no rows")
        return response.data[0]
