"""
Canonical Supabase client module.

This is the ONLY module allowed to call create_async_client directly. The
client is created once in the application lifespan from Settings and shared
by the record store and blob store adapters.
"""
import logging

from supabase import AsyncClient, create_async_client
from supabase.lib.client_options import AsyncClientOptions

from exam_sync.config import Settings
from exam_sync.services.external_timeouts import DEFAULT_DB_TIMEOUT

logger = logging.getLogger(__name__)


def _get_credentials(settings: Settings) -> tuple:
    """Get Supabase credentials from settings."""
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

    return settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY


async def create_async_supabase_client(settings: Settings) -> AsyncClient:
    """
    Create the async Supabase client bound to the configured schema.

    Uses the service-role key: row-level policies are enforced for end users
    by the database, this service acts with a service-level credential.
    """
    supabase_url, supabase_key = _get_credentials(settings)

    options = AsyncClientOptions(
        schema=settings.SUPABASE_SCHEMA,
        auto_refresh_token=False,  # For server/service-role usage
        persist_session=False,
        postgrest_client_timeout=DEFAULT_DB_TIMEOUT,
        storage_client_timeout=int(DEFAULT_DB_TIMEOUT),
    )

    client = await create_async_client(supabase_url, supabase_key, options=options)
    logger.info(f"Created async Supabase client for schema: {settings.SUPABASE_SCHEMA}")

    return client


async def close_async_supabase_client(client: AsyncClient) -> None:
    """Close the HTTP sessions held by the PostgREST and storage sub-clients."""
    await client.postgrest.aclose()
    await client.storage.aclose()
    logger.info("Closed async Supabase client")
