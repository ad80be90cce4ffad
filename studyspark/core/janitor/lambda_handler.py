"""
Scheduled janitor entry points.

handler: Lambda target for an hourly EventBridge schedule
main: studyspark-janitor console script (cron)

Dependencies: janitor, studyspark.configs
System role: Ops entry point for blob retention
"""

import asyncio
import json
import logging
from datetime import timedelta
from typing import Any, Dict

from dotenv import load_dotenv

from studyspark.boundary.aws.s3_client import S3BlobStore
from studyspark.configs import get_settings
from studyspark.core.janitor.janitor import BlobJanitor
from studyspark.observability import configure_logging

load_dotenv()

logger = logging.getLogger(__name__)


def build_janitor() -> BlobJanitor:
    settings = get_settings()
    return BlobJanitor(
        blob_store=S3BlobStore(
            bucket=settings.s3_documents.bucket,
            region=settings.s3_documents.region,
        ),
        retention=timedelta(hours=settings.pipeline.retention_hours),
    )


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Run one sweep. The schedule payload is ignored."""
    configure_logging(get_settings().log_level)
    deleted = asyncio.run(build_janitor().sweep())
    return {"statusCode": 200, "body": json.dumps({"deleted": deleted})}


def main() -> None:
    """Console script: run one sweep and exit."""
    configure_logging(get_settings().log_level)
    deleted = asyncio.run(build_janitor().sweep())
    logger.info(f"{__name__}:main - Sweep finished, deleted={deleted}")


if __name__ == "__main__":
    main()
