"""
Data models for ContactScout.

Acquisition results and outcomes are plain frozen dataclasses; the extracted
contact data is a pydantic model because it is validated straight from the
inference service's JSON.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from contact_scout.errors import FailureKind

_PLACEHOLDERS = frozenset({"nothing found", "n/a", "none"})


class Protocol(str, Enum):
    HTTP = "HTTP"
    HTTPS = "HTTPS"


class AcquisitionMethod(str, Enum):
    """How a page was obtained. Carried on every result instead of being guessed later."""

    DIRECT = "Direct"
    REMOTE_PROXY = "RemoteProxy"
    RENDERED = "Rendered"


@dataclass(frozen=True, slots=True)
class AcquisitionResult:
    """One successful strategy attempt.

    ``links`` is an ordered set: absolute URLs, de-duplicated, in discovery order.
    """

    content: str
    effective_url: str
    size_bytes: int
    links: Tuple[str, ...] = ()
    is_normalized_text: bool = True
    method: AcquisitionMethod = AcquisitionMethod.DIRECT


@dataclass(frozen=True, slots=True)
class AcquisitionOutcome:
    """Reporting-only projection of a strategy attempt."""

    success: bool
    protocol: Protocol
    method: AcquisitionMethod
    detail: str
    error: Optional[BaseException] = None


@dataclass(frozen=True, slots=True)
class ExtractionRequest:
    site_id: str
    text: str


class ExtractedData(BaseModel):
    """Contact data for one site as returned by the inference service."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    phone_numbers: Tuple[str, ...] = Field(default_factory=tuple)
    social_media_links: Tuple[str, ...] = Field(default_factory=tuple)
    addresses: Tuple[str, ...] = Field(default_factory=tuple)

    @field_validator("phone_numbers", "social_media_links", "addresses", mode="before")
    def _dedupe(cls, v: Any) -> Any:
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        if isinstance(v, (list, tuple, set)):
            cleaned = (str(item).strip() for item in v if item is not None)
            kept = [item for item in cleaned if item and item.lower() not in _PLACEHOLDERS]
            return tuple(dict.fromkeys(kept))
        return v

    @classmethod
    def empty(cls) -> ExtractedData:
        return cls()

    @property
    def is_empty(self) -> bool:
        return not (self.phone_numbers or self.social_media_links or self.addresses)

    def datapoints(self) -> int:
        return len(self.phone_numbers) + len(self.social_media_links) + len(self.addresses)


class StageStatus(str, Enum):
    SUCCESS = "Success"
    FAILURE = "Failure"
    PENDING = "Pending"
    SKIPPED = "Skipped"
    PARTIAL = "Partial"


@dataclass(slots=True)
class ActionStatus:
    status: StageStatus
    protocol: str = ""
    details: str = ""

    @classmethod
    def pending(cls, details: str) -> ActionStatus:
        return cls(StageStatus.PENDING, "", details)

    @classmethod
    def skipped(cls, details: str) -> ActionStatus:
        return cls(StageStatus.SKIPPED, "", details)

    @classmethod
    def of(cls, success: Optional[bool], protocol: str, details: str) -> ActionStatus:
        if success is None:
            return cls(StageStatus.SKIPPED, protocol, details)
        return cls(StageStatus.SUCCESS if success else StageStatus.FAILURE, protocol, details)


def _initial_actions() -> Dict[str, ActionStatus]:
    return {
        "main_page": ActionStatus.pending("Attempting to download..."),
        "remote_proxy": ActionStatus.skipped("Not yet started"),
        "rendering": ActionStatus.skipped("Not needed"),
        "contact_pages": ActionStatus.skipped("Not yet started"),
        "extraction": ActionStatus.skipped("Not yet started"),
    }


@dataclass(slots=True)
class SiteProcessingRecord:
    """Per-site reporting state filled in by the orchestrator. Never read by the pipeline."""

    site_name: str
    duration: float = 0.0
    size: Optional[int] = None
    actions: Dict[str, ActionStatus] = field(default_factory=_initial_actions)
    contact_links: Tuple[str, ...] = ()


@dataclass(slots=True)
class SiteResult:
    site_url: str
    site_id: str
    record: SiteProcessingRecord
    data: ExtractedData = field(default_factory=ExtractedData.empty)
    failure_kind: Optional[FailureKind] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.failure_kind is None


__all__ = [
    "Protocol",
    "AcquisitionMethod",
    "AcquisitionResult",
    "AcquisitionOutcome",
    "ExtractionRequest",
    "ExtractedData",
    "StageStatus",
    "ActionStatus",
    "SiteProcessingRecord",
    "SiteResult",
]
