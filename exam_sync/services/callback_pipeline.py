"""
Exam Result Callback Pipeline

Per-delivery state machine:

    received -> authenticated -> classified -> (fetched) -> persisted
                     |                |              |           |
                 rejected         rejected        failed      failed

- rejected (auth):            401, body never inspected
- rejected (unrecognized):    400, redelivery will not help
- failed (fetch/timeout):     502, platform should redeliver
- failed (storage/record):    500, platform should redeliver

Deliveries share no in-process state; the blob and record stores are the only
synchronization points.
"""

import asyncio
import json
import logging
from typing import Any, Dict

from exam_sync.exceptions import AuthRejected, ExamSyncError, UnrecognizedPayload
from exam_sync.models.results import (
    ClassifiedPayload,
    Delivery,
    DeliveryOutcome,
    DeliveryState,
    PayloadForm,
    ResultRecord,
)
from exam_sync.security.callback_auth import CallbackAuthValidator
from exam_sync.services.exam_platform_client import ExamPlatformClient, FetchedResult
from exam_sync.services.payload_classifier import classify_payload, html_summary
from exam_sync.services.result_sink import DurableResultSink

logger = logging.getLogger(__name__)

JSON_CONTENT = "application/json"
HTML_CONTENT = "text/html"


class CallbackPipeline:
    """Runs Auth Validator -> Classifier -> (Fetcher) -> Sink for one delivery"""

    def __init__(
        self,
        validator: CallbackAuthValidator,
        fetcher: ExamPlatformClient,
        sink: DurableResultSink,
    ):
        self.validator = validator
        self.fetcher = fetcher
        self.sink = sink

    async def handle(self, delivery: Delivery) -> DeliveryOutcome:
        """Process a delivery to a terminal outcome. Never raises."""
        try:
            record = await self._run(delivery)
        except ExamSyncError as e:
            return self._failure(delivery, e)
        except Exception as e:
            logger.error(f"Unexpected error processing callback ({delivery.describe()}): {e}", exc_info=True)
            delivery.state = DeliveryState.FAILED
            return DeliveryOutcome(
                state=DeliveryState.FAILED,
                status_code=500,
                delivery_id=delivery.delivery_id,
                form=delivery.form,
                external_id=delivery.external_id,
                error="Internal error",
                error_code="internal_error",
            )

        delivery.state = DeliveryState.PERSISTED
        logger.info(
            f"✅ Persisted exam result ({delivery.describe()} form={delivery.form.value} "
            f"record={record.id} linkage={record.linkage_status.value})"
        )
        return DeliveryOutcome(
            state=DeliveryState.PERSISTED,
            status_code=200,
            delivery_id=delivery.delivery_id,
            form=delivery.form,
            external_id=delivery.external_id,
            record=record,
        )

    async def _run(self, delivery: Delivery) -> ResultRecord:
        if not self.validator.validate(delivery.headers):
            raise AuthRejected()
        delivery.state = DeliveryState.AUTHENTICATED

        classified = classify_payload(delivery.body)
        delivery.form = classified.form
        delivery.external_id = classified.external_id
        delivery.state = DeliveryState.CLASSIFIED
        logger.info(f"Classified callback as {classified.form.value} ({delivery.describe()})")

        if classified.form == PayloadForm.UNRECOGNIZED:
            raise UnrecognizedPayload(external_id=delivery.external_id)

        if classified.form == PayloadForm.NOTIFICATION:
            fetched = await self.fetcher.fetch_result(classified.external_id)
            delivery.state = DeliveryState.FETCHED
            return await self._persist_fetched(delivery, fetched)

        raw_bytes, content_kind, summary = self._prepare(delivery.body, classified)
        return await self._persist(delivery, raw_bytes, content_kind, summary, classified.form)

    async def _persist_fetched(self, delivery: Delivery, fetched: FetchedResult) -> ResultRecord:
        """
        Store a pulled document. Objects are stored as Full-Result; anything
        else is kept as markup, under the content type the platform sent.
        """
        body = fetched.body
        try:
            document = json.loads(body)
        except (ValueError, TypeError, RecursionError):
            document = None

        if isinstance(document, dict):
            return await self._persist(delivery, body, JSON_CONTENT, document, PayloadForm.FULL_RESULT)

        logger.warning(f"Fetched result for {delivery.external_id} is not a JSON object, storing as markup")
        return await self._persist(
            delivery, body, fetched.content_type or HTML_CONTENT, html_summary(body), PayloadForm.RAW_HTML
        )

    @staticmethod
    def _prepare(body: bytes, classified: ClassifiedPayload) -> tuple:
        if classified.form == PayloadForm.FULL_RESULT:
            return body, JSON_CONTENT, classified.document
        if classified.form == PayloadForm.HTML_WRAPPED:
            return body, JSON_CONTENT, html_summary(body, classified.document)
        return body, HTML_CONTENT, html_summary(body)

    async def _persist(
        self,
        delivery: Delivery,
        raw_bytes: bytes,
        content_kind: str,
        summary: Dict[str, Any],
        form: PayloadForm,
    ) -> ResultRecord:
        # Shielded so a disconnecting caller cannot abandon a dispatched write
        # between the blob upload and the row insert.
        return await asyncio.shield(
            self.sink.persist(delivery.external_id, raw_bytes, content_kind, summary, form)
        )

    @staticmethod
    def _failure(delivery: Delivery, error: ExamSyncError) -> DeliveryOutcome:
        state = DeliveryState.REJECTED if error.permanent else DeliveryState.FAILED
        delivery.state = state

        log = logger.warning if error.permanent else logger.error
        log(f"❌ Callback {state.value}: {error.code} - {error.message} ({delivery.describe()})")

        return DeliveryOutcome(
            state=state,
            status_code=error.status_code,
            delivery_id=delivery.delivery_id,
            form=delivery.form,
            external_id=delivery.external_id,
            error=error.message,
            error_code=error.code,
            permanent=error.permanent,
        )

