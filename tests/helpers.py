"""Test helpers for webcam-snapshot.

Fakes for the browser and the clock, image factories, and a protocol
compliance assertion.

Example:
    from tests.helpers import FakeClock, make_camera, make_png

    source = FakeScreenshotSource(failing=frozenset({"pier"}))
    source.capture(make_camera("dock"))  # PNG bytes
"""

from __future__ import annotations

import io
from datetime import UTC, datetime
from typing import Protocol

from PIL import Image

from webcam_snapshot.errors import ScreenshotError
from webcam_snapshot.registry import CameraDescriptor

#: Wall-clock instant every FakeClock reports (13:30 in Moscow).
FIXED_NOW = datetime(2026, 10, 19, 10, 30, 5, tzinfo=UTC)


def make_png(width: int = 320, height: int = 240, color=(0, 0, 0)) -> bytes:
    """Encode a solid-colour RGB image as PNG bytes.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        color: RGB fill.

    Returns:
        PNG file contents.
    """
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_camera(
    name: str = "dock", url: str = "https://example.test/stream"
) -> CameraDescriptor:
    """Build a camera descriptor with plausible selectors."""
    return CameraDescriptor(
        name=name,
        url=url,
        fullscreen_trigger_selector="//button[@id='fullscreen']",
        capture_region_selector="//div[@id='player']",
    )


class FakeClock:
    """Clock that never blocks.

    ``sleep()`` records the request and advances monotonic time, and
    ``now()`` always returns the same instant.
    """

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.t = 0.0
        self.sleeps: list[float] = []
        self._now = now

    def monotonic(self) -> float:
        return self.t

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.t += seconds

    def now(self) -> datetime:
        return self._now


class FakeScreenshotSource:
    """Screenshot source returning canned PNG bytes.

    Cameras whose name is in ``failing`` raise ScreenshotError the way
    an unreachable page does. Every request is recorded in ``calls``.
    """

    def __init__(
        self,
        png: bytes | None = None,
        failing: frozenset[str] = frozenset(),
        clock: FakeClock | None = None,
        elapsed_s: float = 0.0,
    ) -> None:
        self.png = png if png is not None else make_png()
        self.failing = failing
        self.clock = clock
        self.elapsed_s = elapsed_s
        self.calls: list[str] = []

    def capture(self, camera: CameraDescriptor) -> bytes:
        self.calls.append(camera.name)
        if self.clock is not None:
            self.clock.t += self.elapsed_s
        if camera.name in self.failing:
            raise ScreenshotError(
                "navigate failed: net::ERR_NAME_NOT_RESOLVED", "navigate"
            )
        return self.png


def assert_implements_protocol(instance: object, protocol: type[Protocol]) -> None:
    """Assert that an instance implements a runtime-checkable Protocol.

    Args:
        instance: Object to check.
        protocol: Protocol class decorated with @runtime_checkable.

    Raises:
        AssertionError: Listing the protocol members the instance lacks.
    """
    if isinstance(instance, protocol):
        return

    object_attrs = set(dir(object))
    protocol_methods = {
        attr
        for attr in set(dir(protocol)) - object_attrs
        if not attr.startswith("_")
    }
    missing = sorted(m for m in protocol_methods if not hasattr(instance, m))
    raise AssertionError(
        f"{type(instance).__name__} does not implement {protocol.__name__}. "
        f"Missing: {', '.join(missing) or 'unknown'}"
    )
