"""
FastAPI application factory.

Creates and configures the FastAPI application with:
- Settings built once and stored on app.state
- Supabase and exam platform clients opened in the lifespan
- Callback pipeline and appointment sync engine wired from those clients
- Webhook routers and a health endpoint
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from exam_sync import __version__
from exam_sync.config import Settings, get_settings, validate_settings
from exam_sync.security.callback_auth import CallbackAuthValidator
from exam_sync.services.appointment_sync import AppointmentSyncEngine
from exam_sync.services.blob_store import SupabaseBlobStore
from exam_sync.services.callback_pipeline import CallbackPipeline
from exam_sync.services.exam_platform_client import ExamPlatformClient
from exam_sync.services.record_store import SupabaseRecordStore
from exam_sync.services.result_sink import DurableResultSink

logger = logging.getLogger(__name__)


def build_components(app: FastAPI, settings: Settings, supabase, platform: ExamPlatformClient) -> None:
    """Wire the pipeline and sync engine onto app.state."""
    record_store = SupabaseRecordStore(supabase, settings)
    blob_store = SupabaseBlobStore(supabase, settings.RESULTS_BUCKET)

    app.state.callback_pipeline = CallbackPipeline(
        validator=CallbackAuthValidator(settings),
        fetcher=platform,
        sink=DurableResultSink(blob_store, record_store, settings),
    )
    app.state.sync_engine = AppointmentSyncEngine(record_store, platform)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open shared clients on startup, close them on shutdown."""
    from exam_sync.database import close_async_supabase_client, create_async_supabase_client

    settings: Settings = app.state.settings
    if not validate_settings(settings):
        logger.warning("Configuration validation failed - see logs above for details")

    supabase = await create_async_supabase_client(settings)
    platform = ExamPlatformClient(settings)
    build_components(app, settings, supabase, platform)
    logger.info("🚀 Exam sync service ready")

    try:
        yield
    finally:
        await platform.aclose()
        await close_async_supabase_client(supabase)
        logger.info("Exam platform and Supabase clients closed")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Configuration value; built from the environment when omitted

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Exam Sync Service",
        description="""
Bidirectional sync between the scheduling database and the exam platform.

## Features
- Appointment create/update/cancel pushed to the exam platform
- Exam result callbacks persisted blob-first with appointment linkage
""",
        version=__version__,
        lifespan=lifespan,
        redirect_slashes=False,
    )
    app.state.settings = settings

    from exam_sync.webhooks import appointment_sync_webhook, exam_result_webhook

    app.include_router(exam_result_webhook.router)
    app.include_router(appointment_sync_webhook.router)

    @app.get("/health", tags=["health"])
    async def health():
        return {
            "status": "healthy",
            "version": __version__,
            "callback_auth_scheme": settings.CALLBACK_AUTH_SCHEME,
        }

    return app
