"""
Pytest configuration for the exam sync test suite
"""

from unittest.mock import AsyncMock

import pytest

from exam_sync.security.callback_auth import CallbackAuthValidator
from exam_sync.services.callback_pipeline import CallbackPipeline
from exam_sync.services.exam_platform_client import ExamPlatformClient, FetchedResult
from exam_sync.services.result_sink import DurableResultSink
from tests.fixtures import InMemoryBlobStore, InMemoryRecordStore, make_settings


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def blob_store(record_store):
    # Shared event log so ordering between blob and row writes is observable
    return InMemoryBlobStore(events=record_store.events)


@pytest.fixture
def sink(blob_store, record_store, settings):
    return DurableResultSink(blob_store, record_store, settings)


@pytest.fixture
def fetcher():
    """Mock result fetcher returning a full result document"""
    mock = AsyncMock(spec=ExamPlatformClient)
    mock.fetch_result.return_value = FetchedResult(
        body=b'{"appointmentId": "A1", "patientName": "Jane Doe", "readings": [{"type": "HR", "value": 61}]}',
        content_type='application/json',
    )
    return mock


@pytest.fixture
def pipeline(settings, fetcher, sink):
    return CallbackPipeline(
        validator=CallbackAuthValidator(settings),
        fetcher=fetcher,
        sink=sink,
    )
