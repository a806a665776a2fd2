"""
Appointment Sync Webhook
Pushes appointments to the exam platform when they're created/updated/canceled
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from pydantic import ValidationError

from exam_sync.models.appointments import AppointmentMutation
from exam_sync.services.appointment_sync import AppointmentSyncEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/appointment-sync", tags=["webhooks"])


def get_sync_engine(request: Request) -> AppointmentSyncEngine:
    """Engine built once in the app lifespan"""
    return request.app.state.sync_engine


async def run_mutation_sync(engine: AppointmentSyncEngine, mutation: AppointmentMutation):
    """Background task to sync one appointment mutation"""
    try:
        await engine.handle_mutation(mutation)
    except Exception as e:
        logger.error(f"Error syncing appointment {mutation.appointment_id} to exam platform: {e}", exc_info=True)


@router.post("/supabase")
async def supabase_appointment_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    engine: AppointmentSyncEngine = Depends(get_sync_engine)
):
    """
    Webhook endpoint for Supabase Database Webhooks
    Receives notifications when appointments are created/updated/deleted
    """
    try:
        payload = await request.json()
        mutation = AppointmentMutation.from_webhook(payload)
    except (ValueError, ValidationError, AttributeError) as e:
        logger.warning(f"Rejecting malformed appointment webhook: {type(e).__name__}")
        raise HTTPException(status_code=400, detail="Malformed database webhook payload")

    logger.info(f"Received appointment sync webhook: {mutation.type.value}")

    if not mutation.appointment_id:
        logger.warning("No appointment ID in webhook payload")
        raise HTTPException(status_code=400, detail="Missing appointment ID")

    background_tasks.add_task(run_mutation_sync, engine, mutation)

    return {
        'success': True,
        'appointment_id': mutation.appointment_id,
        'operation': mutation.type.value
    }


@router.post("/trigger")
async def trigger_appointment_sync(
    payload: Dict[str, Any],
    engine: AppointmentSyncEngine = Depends(get_sync_engine)
):
    """
    Re-run the sync for one appointment and wait for the result.
    Used by operators to retry an appointment left in `error`.
    """
    appointment_id = payload.get('appointment_id')
    if not appointment_id:
        raise HTTPException(status_code=400, detail="Missing appointment ID")

    try:
        result = await engine.sync_appointment(str(appointment_id))
    except Exception as e:
        logger.error(f"Error running triggered sync for {appointment_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Appointment sync could not start")

    if result.skipped:
        raise HTTPException(status_code=404, detail="Appointment not found")

    return {
        'success': result.error is None,
        'appointment_id': result.appointment_id,
        'external_id': result.external_id,
        'operation': result.operation.value if result.operation else None,
        'sync_state': result.sync_state.value if result.sync_state else None,
        'error': result.error
    }
