"""Exception types and stage outcomes for webcam-snapshot.

Startup problems raise ``ConfigError`` and end the process. Everything that
can go wrong during one camera's capture attempt raises a
``ScreenshotError`` or ``FinishingError``; the orchestrator turns those into
``StageResult`` failures and moves on to the next camera.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class WebcamSnapshotError(Exception):
    """Base class for all webcam-snapshot errors."""


class ConfigError(WebcamSnapshotError):
    """Raised when startup configuration is unreadable or invalid."""


class ScreenshotError(WebcamSnapshotError):
    """Raised when the browser session cannot produce a screenshot.

    Attributes:
        step: Browser step that failed ('launch', 'navigate', 'fullscreen',
            'screenshot').
    """

    def __init__(self, message: str, step: str = "navigate") -> None:
        super().__init__(message)
        self.step = step


class ScreenshotTimeout(ScreenshotError):
    """Raised when the browser session exceeds its wall-clock budget."""


class FinishingError(WebcamSnapshotError):
    """Raised when a finishing step fails.

    Attributes:
        step: One of 'write_intermediate', 'watermark', 'read',
            'transcode', 'write_final'.
    """

    def __init__(self, message: str, step: str) -> None:
        super().__init__(message)
        self.step = step


@dataclass(frozen=True)
class StageResult:
    """Outcome of one pipeline stage.

    Exactly one of ``value`` (on success) or ``reason`` (on failure) is
    meaningful. Build instances with ``success()`` and ``failure()``.

    Attributes:
        ok: True when the stage produced its value.
        value: Stage output (raw bytes, final image path, ...).
        stage: Stage name the outcome belongs to.
        reason: Human-readable failure description.
        error_type: Short failure category used for statistics.

    Example:
        >>> result = StageResult.failure("render", "navigation timed out")
        >>> result.ok
        False
        >>> StageResult.success(Path("dock.jpg"), stage="finishing").value
        PosixPath('dock.jpg')
    """

    ok: bool
    value: Any = None
    stage: str = ""
    reason: str = ""
    error_type: str | None = None

    @classmethod
    def success(cls, value: Any, stage: str = "") -> StageResult:
        """Build a successful outcome carrying ``value``."""
        return cls(ok=True, value=value, stage=stage)

    @classmethod
    def failure(
        cls, stage: str, reason: str, error_type: str | None = None
    ) -> StageResult:
        """Build a failed outcome; ``error_type`` defaults to the stage name."""
        return cls(ok=False, stage=stage, reason=reason, error_type=error_type or stage)
