"""
Exam Result Callback Webhook
Receives asynchronous exam results from the exam platform.

Status codes are the redelivery contract with the platform:
200 persisted, 401 auth rejected, 400 unrecognized shape,
502 fetch failure, 500 storage/record failure.
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from exam_sync.models.results import Delivery
from exam_sync.services.callback_pipeline import CallbackPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def get_callback_pipeline(request: Request) -> CallbackPipeline:
    """Pipeline built once in the app lifespan"""
    return request.app.state.callback_pipeline


@router.post("/exam-results")
async def exam_result_callback(
    request: Request,
    pipeline: CallbackPipeline = Depends(get_callback_pipeline)
):
    """
    Webhook endpoint for exam result callbacks.

    Body is either a JSON document (notification, full result, or
    HTML-wrapped result) or raw markup.
    """
    body = await request.body()
    delivery = Delivery(body=body, headers=dict(request.headers))

    outcome = await pipeline.handle(delivery)

    return JSONResponse(status_code=outcome.status_code, content=outcome.to_response())
