"""
Tests for the Supabase record store, blob store and client factory
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from exam_sync.database import close_async_supabase_client, create_async_supabase_client
from exam_sync.services.blob_store import SupabaseBlobStore
from exam_sync.services.record_store import SupabaseRecordStore
from tests.fixtures import TEST_BUCKET, make_settings


def mock_supabase(data=None):
    """Supabase client whose query builder chains back onto itself"""
    query = MagicMock()
    for method in ('select', 'eq', 'limit', 'update', 'insert'):
        getattr(query, method).return_value = query
    query.execute = AsyncMock(return_value=SimpleNamespace(data=data if data is not None else []))

    client = MagicMock()
    client.table.return_value = query
    return client, query


class TestSupabaseRecordStore:

    async def test_get_appointment_returns_first_row(self):
        client, query = mock_supabase([{'id': 'appt-1', 'status': 'scheduled'}])
        store = SupabaseRecordStore(client, make_settings())

        row = await store.get_appointment('appt-1')

        assert row == {'id': 'appt-1', 'status': 'scheduled'}
        client.table.assert_called_with('appointments')
        query.eq.assert_called_with('id', 'appt-1')
        query.limit.assert_called_with(1)

    async def test_missing_appointment_returns_none(self):
        client, _ = mock_supabase([])
        store = SupabaseRecordStore(client, make_settings())

        assert await store.get_appointment('nope') is None
        assert await store.find_appointment_by_external_id('nope') is None

    async def test_find_by_external_id(self):
        client, query = mock_supabase([{'id': 'appt-1', 'external_id': 'A1'}])
        store = SupabaseRecordStore(client, make_settings())

        row = await store.find_appointment_by_external_id('A1')

        assert row['id'] == 'appt-1'
        query.eq.assert_called_with('external_id', 'A1')

    async def test_update_with_no_rows_raises(self):
        client, query = mock_supabase([])
        store = SupabaseRecordStore(client, make_settings())

        with pytest.raises(LookupError):
            await store.update_appointment('appt-1', {'sync_state': 'pending'})

        query.update.assert_called_once_with({'sync_state': 'pending'})

    async def test_insert_result_record_uses_results_table(self):
        client, query = mock_supabase([{'id': 'rec-1', 'created_at': '2025-10-01T10:00:00+00:00'}])
        store = SupabaseRecordStore(client, make_settings(RESULTS_TABLE='lab_results'))

        stored = await store.insert_result_record({'blob_path': 'A1/x.json'})

        assert stored['id'] == 'rec-1'
        client.table.assert_called_with('lab_results')
        query.insert.assert_called_once_with({'blob_path': 'A1/x.json'})

    async def test_slow_query_times_out(self):
        client, query = mock_supabase()

        async def slow():
            await asyncio.sleep(5)

        query.execute = slow
        store = SupabaseRecordStore(client, make_settings(STORAGE_TIMEOUT_SECONDS=0.05))

        with pytest.raises(asyncio.TimeoutError):
            await store.get_appointment('appt-1')


class TestSupabaseBlobStore:

    async def test_upload_never_overwrites(self):
        client = MagicMock()
        bucket = MagicMock()
        bucket.upload = AsyncMock(return_value=None)
        client.storage.from_.return_value = bucket
        store = SupabaseBlobStore(client, TEST_BUCKET)

        path = await store.upload('A1/1-abcd.json', b'{}', 'application/json')

        assert path == 'A1/1-abcd.json'
        client.storage.from_.assert_called_once_with(TEST_BUCKET)
        bucket.upload.assert_awaited_once_with(
            path='A1/1-abcd.json',
            file=b'{}',
            file_options={'content-type': 'application/json', 'upsert': 'false'},
        )


class TestClientFactory:

    async def test_client_uses_service_role_and_schema(self):
        settings = make_settings(SUPABASE_SCHEMA='clinic')

        with patch('exam_sync.database.create_async_client', new_callable=AsyncMock) as create:
            await create_async_supabase_client(settings)

        args, kwargs = create.await_args
        assert args == ('http://localhost:54321', 'test_service_role_key')
        assert kwargs['options'].schema == 'clinic'

    async def test_missing_credentials_raise(self):
        with pytest.raises(ValueError):
            await create_async_supabase_client(make_settings(SUPABASE_URL=''))

    async def test_close_releases_postgrest_and_storage_sessions(self):
        client = MagicMock()
        client.postgrest.aclose = AsyncMock()
        client.storage.aclose = AsyncMock()

        await close_async_supabase_client(client)

        client.postgrest.aclose.assert_awaited_once()
        client.storage.aclose.assert_awaited_once()
