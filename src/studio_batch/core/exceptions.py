"""Custom exceptions for the studio batch pipeline."""

from __future__ import annotations

from typing import Optional


class StudioBatchError(Exception):
    """Base exception for all studio batch errors."""


class ConfigurationError(StudioBatchError):
    """Error raised for invalid configuration options."""


class InvalidStateError(StudioBatchError):
    """Error raised when an operation is not allowed in the current run status."""


class IngestionError(StudioBatchError):
    """Error raised when a folder or file selection cannot be read at all."""


class TransformError(StudioBatchError):
    """Error raised when a transform cannot produce a result image.

    ``status`` carries the HTTP-style status code reported by the remote
    service, or ``None`` when the failure has no status (local failures,
    transport errors).
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        return self.message


class TransientTransformError(TransformError):
    """Remote failure that may succeed when retried (429 or 5xx)."""


class TerminalTransformError(TransformError):
    """Transient failure that kept failing after every retry."""


class AuthorizationError(TransformError):
    """The remote service rejected the credential; it must be selected again."""


class NoResultError(TransformError):
    """The remote service answered without any image payload."""


class DecodeError(TransformError):
    """The source image could not be decoded."""


class DeliveryWriteError(StudioBatchError):
    """Writing a result back next to its source failed."""
