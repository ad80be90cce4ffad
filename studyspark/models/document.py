"""
Document API schemas.

Request/response schemas for the upload and enrichment endpoints.

Dependencies: pydantic
System role: Document API contracts
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from studyspark.models.processing_record import EnrichmentFeature, SummaryMode


class UploadUrlRequest(BaseModel):
    """Request schema for generating a presigned upload URL."""

    filename: str = Field(description="Original filename from user")
    summary_mode: SummaryMode = Field(
        default=SummaryMode.DETAILED,
        description="Initial summary variant",
    )


class UploadUrlResponse(BaseModel):
    """Presigned URL plus the headers the client must send with the PUT."""

    presigned_url: str = Field(description="URL for uploading file to S3")
    blob_name: str = Field(description="Object key the upload will land under")
    document_id: str = Field(description="Processing record id to subscribe to")
    expires_at: str = Field(description="ISO timestamp when URL expires")
    headers: dict[str, str] = Field(description="Headers required by the signature")


class FeatureRequestResponse(BaseModel):
    document_id: str
    feature: EnrichmentFeature
    requested: bool


class EnrichmentTaskResponse(BaseModel):
    """Enrichment task as returned by the tasks endpoint."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: str
    feature: EnrichmentFeature
    status: str
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("status", mode="before")
    @classmethod
    def _status_value(cls, value):
        return value.value if isinstance(value, Enum) else value
