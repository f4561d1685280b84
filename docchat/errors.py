"""Exceptions raised by docchat.

Hierarchy:
    DocChatError
    ├── UnreadableDocumentError
    └── ServiceError
        ├── EmbeddingServiceError
        └── ModelServiceError

An empty vector index is not an error: retrieval simply returns no passages.
"""

from __future__ import annotations

from pathlib import Path


class DocChatError(Exception):
    """Base exception for all docchat errors.

    Attributes:
        message: Human-readable error description.
        details: Additional technical details, if any.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        self.message = message
        self.details = details

        full_message = message
        if details:
            full_message = f"{message} | Details: {details}"

        super().__init__(full_message)


class UnreadableDocumentError(DocChatError):
    """The document source could not be parsed into text."""

    def __init__(self, path: Path | str, reason: str | None = None) -> None:
        self.path = Path(path)
        super().__init__(f"Cannot read document: {self.path}", details=reason)


class ServiceError(DocChatError):
    """A remote API call failed. Never retried internally."""


class EmbeddingServiceError(ServiceError):
    """The embedding API call failed or timed out."""


class ModelServiceError(ServiceError):
    """The chat-completion API call failed or timed out."""
