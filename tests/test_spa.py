# File: tests/test_spa.py
import pytest

from contact_scout.rendering.spa import (
    StabilityTracker,
    needs_rendering,
    stabilization_index,
    wait_for_stable_dom,
)


@pytest.mark.parametrize(
    "size,expected",
    [(0, True), (1200, True), (1499, True), (1500, False), (50_000, False)],
)
def test_needs_rendering_threshold(fakes, size, expected):
    assert needs_rendering(fakes.result("a" * size)) is expected


def test_needs_rendering_custom_threshold(fakes):
    assert needs_rendering(fakes.result("a" * 200), threshold=100) is False
    assert needs_rendering(fakes.result("a" * 99), threshold=100) is True


def test_stabilization_sequence():
    # 1000 → 1010 → 1020 → 1030: three consecutive small changes after the first jump
    assert stabilization_index([1000, 1010, 1020, 1030]) == 4


def test_large_change_resets_counter():
    assert stabilization_index([1000, 1010, 1020, 5000, 5010, 5020, 5030]) == 7


def test_never_stable():
    assert stabilization_index([100, 200, 300, 400, 500]) is None


def test_empty_document_is_stable_immediately():
    tracker = StabilityTracker(tolerance=50, required=3)
    assert [tracker.observe(0) for _ in range(3)] == [False, False, True]


def test_tolerance_is_exclusive():
    tracker = StabilityTracker(tolerance=50, required=1)
    tracker.observe(1000)
    assert tracker.observe(1050) is False
    assert tracker.observe(1099) is True


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _sampler(values):
    it = iter(values)
    taken = []

    async def sample():
        value = next(it)
        taken.append(value)
        return value

    return sample, taken


@pytest.mark.asyncio()
async def test_wait_stops_when_stable():
    clock = FakeClock()
    sample, taken = _sampler([1000, 1010, 1020, 1030, 9999])
    count = await wait_for_stable_dom(
        sample, settle_ms=1000, interval_ms=500, max_wait_ms=5000, sleep=clock.sleep, clock=clock
    )
    assert count == 4
    assert taken == [1000, 1010, 1020, 1030]
    # settle first, then one interval between samples
    assert clock.sleeps == [1.0, 0.5, 0.5, 0.5]


@pytest.mark.asyncio()
async def test_wait_gives_up_at_deadline():
    clock = FakeClock()
    sample, taken = _sampler(range(0, 100_000, 1000))
    count = await wait_for_stable_dom(
        sample, settle_ms=0, interval_ms=500, max_wait_ms=2000, sleep=clock.sleep, clock=clock
    )
    # samples at t = 0, 0.5, 1.0, 1.5
    assert count == 4
    assert len(taken) == 4
