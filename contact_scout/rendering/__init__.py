"""SPA detection and headless rendering fallback."""
from contact_scout.rendering.renderer import HeadlessRenderer, RenderSession, rendered_markdown
from contact_scout.rendering.spa import (
    StabilityTracker,
    needs_rendering,
    stabilization_index,
    wait_for_stable_dom,
)

__all__ = [
    "HeadlessRenderer",
    "RenderSession",
    "rendered_markdown",
    "StabilityTracker",
    "needs_rendering",
    "stabilization_index",
    "wait_for_stable_dom",
]
