"""
Lambda handler for S3-triggered ingestion.

Runs the ingestion trigger for every finalized object in the invocation,
delivered either directly by S3 or through SQS.

Environment variables:
- S3_DOCUMENTS_BUCKET / S3_DOCUMENTS_REGION: uploads bucket
- DATABASE_URL: record store connection string
- GEMINI_API_KEY or SECRETS_ARN: model provider key
- LOG_LEVEL: Logging level (read through settings)

Dependencies: ingestion_trigger, lambda_utils, studyspark.boundary
System role: Lambda entry point for upload processing
"""

import asyncio
import json
import logging
from typing import Any, Dict, List

from dotenv import load_dotenv

from studyspark.boundary.aws.s3_client import S3BlobStore
from studyspark.boundary.db.connection import (
    build_async_engine,
    create_all_tables,
    get_async_session_factory,
)
from studyspark.boundary.db.record_store import ProcessingRecordStore
from studyspark.boundary.genai.gemini_client import GeminiClient
from studyspark.configs import Settings, get_settings
from studyspark.core.document_processing.ingestion_trigger import (
    IngestionResult,
    IngestionTrigger,
    StorageFinalizeEvent,
)
from studyspark.core.document_processing.lambda_utils.config import configure_secrets
from studyspark.core.document_processing.lambda_utils.event_parser import parse_lambda_event
from studyspark.core.exceptions import EventParseError
from studyspark.core.retry import RetryPolicy
from studyspark.models.processing_record import SummaryMode
from studyspark.observability import configure_logging

# Load environment variables from .env if present
load_dotenv()

logger = logging.getLogger(__name__)


async def _run(events: List[StorageFinalizeEvent], settings: Settings) -> List[IngestionResult]:
    engine = build_async_engine(settings.database)
    try:
        await create_all_tables(engine)
        record_store = ProcessingRecordStore(get_async_session_factory(engine))
        trigger = IngestionTrigger(
            blob_store=S3BlobStore(
                bucket=settings.s3_documents.bucket,
                region=settings.s3_documents.region,
            ),
            record_store=record_store,
            gemini=GeminiClient(
                api_key=settings.gemini.api_key,
                model_id=settings.gemini.model_id,
                temperature=settings.gemini.temperature,
            ),
            retry_policy=RetryPolicy.from_settings(settings.pipeline),
            default_mode=SummaryMode.parse(
                settings.pipeline.default_summary_mode, SummaryMode.DETAILED
            ),
        )

        # Sequential: each invocation handles its events one after another
        results = []
        for event in events:
            results.append(await trigger.handle(event))
        await record_store.drain()
        return results
    finally:
        await engine.dispose()


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for S3 finalize notifications.

    Ingestion failures are recorded on the processing record, so the
    invocation itself succeeds and the event is not redelivered.

    Args:
        event: S3 or SQS event with Records array
        context: Lambda context object

    Returns:
        Dict with statusCode and results array
    """
    configure_secrets()

    # Settings read after secrets are in the environment
    get_settings.cache_clear()
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(
        f"{__name__}:handler - Received event",
        extra={"record_count": len(event.get("Records", []))},
    )

    try:
        events = parse_lambda_event(event)
    except EventParseError as e:
        logger.error(f"{__name__}:handler - EventParseError: {e}")
        return {
            "statusCode": 400,
            "body": json.dumps({"error": "Invalid event format", "details": str(e), "results": []}),
        }

    results = asyncio.run(_run(events, settings))

    failed_count = sum(1 for result in results if result.status == "error")
    status_code = 200 if failed_count == 0 else 206
    logger.info(
        f"{__name__}:handler - Processing complete",
        extra={"success_count": len(results) - failed_count, "failed_count": failed_count},
    )

    return {
        "statusCode": status_code,
        "body": json.dumps(
            {
                "processed": len(results),
                "failed": failed_count,
                "results": [result.model_dump() for result in results],
            }
        ),
    }
