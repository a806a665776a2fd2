"""
Test fixtures for the exam sync service
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from exam_sync.config import Settings
from exam_sync.services.blob_store import BlobStore
from exam_sync.services.record_store import RecordStore

# Sample test data
TEST_BEARER_TOKEN = 'test-callback-token'
TEST_PLATFORM_TOKEN = 'test-platform-token'
TEST_PLATFORM_URL = 'https://exams.example.test/api'
TEST_BUCKET = 'exam-results'


def make_settings(**overrides) -> Settings:
    """Build settings without reading a .env file"""
    values = {
        'SUPABASE_URL': 'http://localhost:54321',
        'SUPABASE_SERVICE_ROLE_KEY': 'test_service_role_key',
        'RESULTS_BUCKET': TEST_BUCKET,
        'EXAM_PLATFORM_BASE_URL': TEST_PLATFORM_URL,
        'EXAM_PLATFORM_API_TOKEN': TEST_PLATFORM_TOKEN,
        'CALLBACK_AUTH_SCHEME': 'bearer',
        'CALLBACK_BEARER_TOKEN': TEST_BEARER_TOKEN,
        'STORAGE_TIMEOUT_SECONDS': 0.5,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def auth_headers(token: str = TEST_BEARER_TOKEN) -> Dict[str, str]:
    return {'authorization': f'Bearer {token}'}


def create_test_appointment(**kwargs) -> Dict[str, Any]:
    """Create a test appointment row"""
    start = kwargs.get('start_time', datetime(2025, 10, 1, 10, 0, tzinfo=timezone.utc))
    return {
        'id': kwargs.get('id', str(uuid.uuid4())),
        'external_id': kwargs.get('external_id'),
        'start_time': start.isoformat(),
        'end_time': kwargs.get('end_time', start + timedelta(hours=1)).isoformat(),
        'clinician_name': kwargs.get('clinician_name', 'Dr. Ana Ruiz'),
        'clinician_email': kwargs.get('clinician_email', 'ana.ruiz@clinic.test'),
        'patient_name': kwargs.get('patient_name', 'Jane Doe'),
        'patient_email': kwargs.get('patient_email', 'jane.doe@mail.test'),
        'status': kwargs.get('status', 'scheduled'),
        'sync_state': kwargs.get('sync_state'),
        'sync_error': kwargs.get('sync_error'),
        'external_urls': kwargs.get('external_urls', {}),
        'last_synced_at': kwargs.get('last_synced_at'),
    }


class InMemoryRecordStore(RecordStore):
    """Record store double keeping rows in dicts; records every update"""

    def __init__(self, appointments: Optional[List[Dict[str, Any]]] = None):
        self.appointments: Dict[str, Dict[str, Any]] = {
            row['id']: dict(row) for row in (appointments or [])
        }
        self.results: List[Dict[str, Any]] = []
        self.updates: List[Dict[str, Any]] = []
        self.events: List[str] = []
        self.fail_insert: Optional[Exception] = None
        self.fail_lookup: Optional[Exception] = None
        self.fail_update_on_state: Optional[str] = None

    async def get_appointment(self, appointment_id):
        row = self.appointments.get(appointment_id)
        return dict(row) if row else None

    async def find_appointment_by_external_id(self, external_id):
        if self.fail_lookup:
            raise self.fail_lookup
        for row in self.appointments.values():
            if row.get('external_id') == external_id:
                return dict(row)
        return None

    async def update_appointment(self, appointment_id, fields):
        if self.fail_update_on_state and fields.get('sync_state') == self.fail_update_on_state:
            raise ConnectionError('record store unavailable')
        self.events.append(f"update:{fields.get('sync_state')}")
        self.updates.append(dict(fields))
        self.appointments[appointment_id].update(fields)
        return dict(self.appointments[appointment_id])

    async def insert_result_record(self, row):
        self.events.append('insert')
        if self.fail_insert:
            raise self.fail_insert
        stored = {**row, 'id': str(uuid.uuid4()), 'created_at': datetime.now(timezone.utc).isoformat()}
        self.results.append(stored)
        return stored


class InMemoryBlobStore(BlobStore):
    """Blob store double; refuses to overwrite an existing key"""

    def __init__(self, bucket: str = TEST_BUCKET, events: Optional[List[str]] = None):
        self.bucket = bucket
        self.blobs: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self.events = events if events is not None else []
        self.fail_upload: Optional[Exception] = None
        self.delay: float = 0.0

    async def upload(self, path, data, content_type):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_upload:
            raise self.fail_upload
        if path in self.blobs:
            raise FileExistsError(path)
        self.events.append('upload')
        self.blobs[path] = data
        self.content_types[path] = content_type
        return path
