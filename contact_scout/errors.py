"""
Error taxonomy for ContactScout.

Strategy-local failures (:class:`DirectFetchError`, :class:`RemoteProxyError`)
never reach the orchestrator: the acquisition chain folds them into a single
:class:`AcquisitionError`. Their *message text* is part of the contract, since
the chain decides which strategy to try next by inspecting it.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class FailureKind(str, Enum):
    """Terminal classification of a failed site run."""

    DOWNLOAD = "download"
    EXTRACTION = "extraction"
    UNEXPECTED = "unexpected"


class ContactScoutError(Exception):
    """Base class for all project errors."""


class DirectFetchError(ContactScoutError):
    """All direct attempts (original URL plus hostname variants) failed."""

    def __init__(self, message: str, *, reason: str, retryable: bool) -> None:
        super().__init__(message)
        self.reason = reason
        self.retryable = retryable


class RemoteProxyError(ContactScoutError):
    """The remote proxy reader could not deliver the page."""


class AcquisitionError(ContactScoutError):
    """Every applicable strategy failed (or none was applicable)."""

    def __init__(self, url: str, last_error: Optional[BaseException] = None) -> None:
        detail = str(last_error) if last_error is not None else "All download strategies failed"
        super().__init__(detail)
        self.url = url
        self.last_error = last_error


class RenderingError(ContactScoutError):
    """Headless rendering failed; callers keep the pre-rendering result."""


class InferenceServiceError(ContactScoutError):
    """The inference service reported an error (error body or non-JSON HTTP failure)."""


class InferenceResponseError(ContactScoutError):
    """The inference service answered with something that is not the expected JSON."""


class ExtractionError(ContactScoutError):
    """A flush failed after exhausting retries, or the response was unusable."""

    def __init__(self, message: str, *, retry_count: int = 0, transient: bool = False) -> None:
        super().__init__(message)
        self.retry_count = retry_count
        self.transient = transient


__all__ = [
    "FailureKind",
    "ContactScoutError",
    "DirectFetchError",
    "RemoteProxyError",
    "AcquisitionError",
    "RenderingError",
    "InferenceServiceError",
    "InferenceResponseError",
    "ExtractionError",
]
