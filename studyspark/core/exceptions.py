"""
Exception hierarchy for StudySpark.

Provides layered exception structure for pipeline errors.
All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class StudySparkException(Exception):
    """Base exception for all StudySpark errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class BlobStoreError(StudySparkException):
    """Raised when a blob store operation fails."""

    def __init__(
        self,
        message: str,
        name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if name:
            details["name"] = name
        super().__init__(message, details)


class RecordStoreError(StudySparkException):
    """Base exception for processing record store errors."""

    def __init__(
        self,
        message: str,
        document_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if document_id:
            details["document_id"] = document_id
        super().__init__(message, details)


class RecordNotFoundError(RecordStoreError):
    """Raised when update() targets a record that does not exist."""

    def __init__(self, document_id: str) -> None:
        super().__init__(f"Processing record not found: {document_id}", document_id)


class ImmutableFieldError(RecordStoreError):
    """Raised when a merge write tries to change a write-once field."""

    def __init__(self, document_id: str, field: str) -> None:
        super().__init__(
            f"Field '{field}' is immutable once set",
            document_id,
            {"field": field},
        )


class ConcurrentWriteError(RecordStoreError):
    """Raised when a write keeps losing optimistic concurrency races."""

    pass


class ModelProviderError(StudySparkException):
    """Raised when the generative model provider returns no usable output."""

    pass


class ModelResponseParseError(StudySparkException):
    """Raised when the model output is not the expected JSON shape."""

    def __init__(
        self,
        message: str,
        artifact: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize parse error.

        Args:
            message: Error message
            artifact: Which artifact was being parsed (summary, flashcards, quiz)
            details: Additional context
        """
        details = details or {}
        if artifact:
            details["artifact"] = artifact
        super().__init__(message, details)


class MissingFileHandleError(StudySparkException):
    """Raised when a record has no model file handle for follow-up calls."""

    def __init__(self, document_id: str) -> None:
        super().__init__(
            "The uploaded file is no longer available to the model. Please re-upload the PDF.",
            {"document_id": document_id},
        )


class EventParseError(StudySparkException):
    """Raised when a storage event notification cannot be parsed."""

    pass


class InvalidStateTransitionError(StudySparkException):
    """Raised when the client state machine is asked to move backwards."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Cannot move from '{current}' to '{target}'",
            {"current": current, "target": target},
        )
