"""Pytest configuration and fixtures for webcam-snapshot tests.

Slow or external collaborators (browser, clock) are replaced by the
fakes in tests.helpers so a full capture cycle runs in milliseconds and
without Chromium. Image work in tests uses real Pillow and OpenCV.
"""

from __future__ import annotations

import io

import pytest

from tests.helpers import FakeClock, make_camera, make_png
from webcam_snapshot.observability import configure_logging, reset_logging
from webcam_snapshot.registry import CameraDescriptor, CameraRegistry


@pytest.fixture
def camera() -> CameraDescriptor:
    """Single camera named 'dock'."""
    return make_camera()


@pytest.fixture
def registry() -> CameraRegistry:
    """Three cameras in a fixed order."""
    return CameraRegistry(
        [
            make_camera("dock", "https://example.test/dock"),
            make_camera("pier", "https://example.test/pier"),
            make_camera("harbour", "https://example.test/harbour"),
        ]
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    """Non-blocking clock pinned to FIXED_NOW."""
    return FakeClock()


@pytest.fixture
def png_bytes() -> bytes:
    """320x240 black PNG."""
    return make_png()


@pytest.fixture
def missing_font(tmp_path):
    """Font path that does not exist, forcing Pillow's default face."""
    return tmp_path / "no-such-font.ttf"


@pytest.fixture
def log_stream():
    """Route webcam_snapshot logging into a StringIO for assertions.

    Yields:
        io.StringIO receiving text-format log lines at DEBUG level.
    """
    stream = io.StringIO()
    configure_logging(level="DEBUG", stream=stream, force=True)
    yield stream
    reset_logging()
