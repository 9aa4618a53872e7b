"""
Strategy interface shared by every acquisition technique.

A strategy is a small capability object: it says whether it applies to a URL
given the error of the previous attempt, and it acquires the page. Strategies
keep no per-request state, so one instance serves all workers.
"""
from __future__ import annotations

from typing import Optional, Protocol as _Interface, runtime_checkable

from contact_scout.models import AcquisitionMethod, AcquisitionResult, Protocol


@runtime_checkable
class Strategy(_Interface):
    name: str
    protocol: Protocol
    method: AcquisitionMethod

    def is_applicable(self, url: str, previous_error: Optional[BaseException] = None) -> bool:
        ...

    async def acquire(self, url: str) -> AcquisitionResult:
        ...


class BaseStrategy:
    """Default: always applicable. Subclasses override when they escalate."""

    name: str = "base"
    protocol: Protocol = Protocol.HTTPS
    method: AcquisitionMethod = AcquisitionMethod.DIRECT

    def is_applicable(self, url: str, previous_error: Optional[BaseException] = None) -> bool:
        return True

    async def acquire(self, url: str) -> AcquisitionResult:  # pragma: no cover - abstract
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


def error_text(error: Optional[BaseException]) -> str:
    """Lower-cased message used for applicability decisions."""
    return str(error).lower() if error is not None else ""


__all__ = ["Strategy", "BaseStrategy", "error_text"]
