# contact_scout/rendering/spa.py
"""
SPA detection and the DOM-stabilization wait.

A page whose acquired text is smaller than the threshold is assumed to be
script-driven and is re-fetched through the headless renderer. After
navigation the renderer samples the serialized document length until it stops
changing; the decision logic lives in :class:`StabilityTracker` so it can be
exercised with plain lists of lengths.
"""
from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Iterable, Optional

from contact_scout.models import AcquisitionResult

DEFAULT_SPA_THRESHOLD = 1500


def needs_rendering(result: AcquisitionResult, threshold: int = DEFAULT_SPA_THRESHOLD) -> bool:
    """True when the acquired text is below *threshold* bytes (exclusive)."""
    return result.size_bytes < threshold


class StabilityTracker:
    """Counts consecutive samples whose length changed by less than *tolerance*.

    The previous length starts at 0, so an empty document counts as stable
    from the first sample.
    """

    def __init__(self, tolerance: int = 50, required: int = 3) -> None:
        self.tolerance = tolerance
        self.required = required
        self.previous = 0
        self.stable_count = 0
        self.samples = 0

    def observe(self, length: int) -> bool:
        self.samples += 1
        if abs(length - self.previous) < self.tolerance:
            self.stable_count += 1
        else:
            self.stable_count = 0
        self.previous = length
        return self.stable

    @property
    def stable(self) -> bool:
        return self.stable_count >= self.required


def stabilization_index(
    samples: Iterable[int], tolerance: int = 50, required: int = 3
) -> Optional[int]:
    """Number of samples consumed before stability was declared, or ``None``."""
    tracker = StabilityTracker(tolerance, required)
    for length in samples:
        if tracker.observe(length):
            return tracker.samples
    return None


async def wait_for_stable_dom(
    sample: Callable[[], Awaitable[int]],
    *,
    settle_ms: int = 1000,
    interval_ms: int = 500,
    max_wait_ms: int = 5000,
    tolerance: int = 50,
    required: int = 3,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Poll *sample* until the length is stable or *max_wait_ms* elapses.

    Returns the number of samples taken. Running out of time is not an error:
    the caller proceeds with whatever the document holds.
    """
    await sleep(settle_ms / 1000)
    tracker = StabilityTracker(tolerance, required)
    deadline = clock() + max_wait_ms / 1000
    while clock() < deadline:
        if tracker.observe(await sample()):
            break
        await sleep(interval_ms / 1000)
    return tracker.samples


__all__ = [
    "DEFAULT_SPA_THRESHOLD",
    "needs_rendering",
    "StabilityTracker",
    "stabilization_index",
    "wait_for_stable_dom",
]
