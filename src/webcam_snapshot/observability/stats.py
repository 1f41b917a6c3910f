"""Capture attempt statistics.

Keeps per-camera counters for capture attempts:
- Success/failure totals and success rate
- Duration statistics (min, max, avg, p95) over a rolling window
- Failure counts by pipeline stage
- Fleet cycle counter

The scheduler thread writes and the diagnostic endpoint reads, so every
collector is guarded by a lock.

Example:
    stats = CaptureStats()
    stats.record_attempt("dock", duration_ms=11250, success=True)
    stats.record_attempt("pier", duration_ms=60010, success=False,
                         error_type="render")

    summary = stats.get_summary("dock")
    print(f"Success rate: {summary.success_rate:.1%}")

    data = stats.to_dict()
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

#: Capture records kept per camera. At one attempt every ~5 minutes
#: this is several days of history.
DEFAULT_STATS_WINDOW_SIZE: int = 1000


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


@dataclass
class StatsSummary:
    """Summary statistics for one camera.

    Attributes:
        camera: Camera name from the registry
        total_attempts: Total capture attempts
        successful_attempts: Attempts that produced a final image
        failed_attempts: Attempts skipped because a stage failed
        success_rate: Success rate (0.0 to 1.0)
        min_duration_ms: Fastest successful attempt
        max_duration_ms: Slowest successful attempt
        avg_duration_ms: Mean successful attempt duration
        p95_duration_ms: 95th percentile successful attempt duration
        error_counts: Failure count by stage
        last_attempt_time: Time of the last attempt
        uptime_seconds: Time since stats reset
    """

    camera: str
    total_attempts: int = 0
    successful_attempts: int = 0
    failed_attempts: int = 0
    success_rate: float = 0.0
    min_duration_ms: float = 0.0
    max_duration_ms: float = 0.0
    avg_duration_ms: float = 0.0
    p95_duration_ms: float = 0.0
    error_counts: dict[str, int] = field(default_factory=dict)
    last_attempt_time: datetime | None = None
    uptime_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert the summary to a JSON-serializable dictionary.

        Returns:
            Dictionary with every summary field; ``last_attempt_time`` is
            an ISO timestamp or None.

        Example:
            >>> data = stats.get_summary("dock").to_dict()
            >>> data["success_rate"]
            0.95
        """
        return {
            "camera": self.camera,
            "total_attempts": self.total_attempts,
            "successful_attempts": self.successful_attempts,
            "failed_attempts": self.failed_attempts,
            "success_rate": self.success_rate,
            "min_duration_ms": self.min_duration_ms,
            "max_duration_ms": self.max_duration_ms,
            "avg_duration_ms": self.avg_duration_ms,
            "p95_duration_ms": self.p95_duration_ms,
            "error_counts": self.error_counts.copy(),
            "last_attempt_time": (
                self.last_attempt_time.isoformat() if self.last_attempt_time else None
            ),
            "uptime_seconds": self.uptime_seconds,
        }


@dataclass
class AttemptRecord:
    """Single capture attempt record."""

    timestamp: float  # monotonic time
    duration_ms: float
    success: bool
    error_type: str | None = None


class CameraStatsCollector:
    """Statistics collector for a single camera.

    Maintains a rolling window of recent attempts and computes summary
    statistics on demand.
    """

    def __init__(
        self,
        camera: str,
        window_size: int = DEFAULT_STATS_WINDOW_SIZE,
    ) -> None:
        """Initialize a collector for one camera.

        Args:
            camera: Camera name the records belong to.
            window_size: Maximum attempt records kept for duration
                statistics. Totals are cumulative regardless.
        """
        self.camera = camera
        self._window_size = window_size
        self._records: deque[AttemptRecord] = deque(maxlen=window_size)
        self._error_counts: dict[str, int] = {}
        self._total_attempts = 0
        self._successful_attempts = 0
        self._start_time = time.monotonic()
        self._last_attempt_time: datetime | None = None
        self._lock = threading.Lock()

    def record(
        self,
        duration_ms: float,
        success: bool,
        error_type: str | None = None,
    ) -> None:
        """Record one capture attempt.

        Args:
            duration_ms: Wall time of the attempt in milliseconds.
            success: True if a final image was written.
            error_type: Failing stage ('render', 'finishing', ...) for
                failures, None for successes.

        Example:
            >>> collector = CameraStatsCollector("dock")
            >>> collector.record(duration_ms=11000, success=True)
            >>> collector.record(duration_ms=60000, success=False, error_type="render")
        """
        record = AttemptRecord(
            timestamp=time.monotonic(),
            duration_ms=duration_ms,
            success=success,
            error_type=error_type,
        )

        with self._lock:
            self._records.append(record)
            self._total_attempts += 1
            if success:
                self._successful_attempts += 1
            elif error_type:
                self._error_counts[error_type] = (
                    self._error_counts.get(error_type, 0) + 1
                )
            self._last_attempt_time = _utc_now()

    def get_summary(self) -> StatsSummary:
        """Compute a snapshot of this camera's statistics.

        Duration statistics come from successful attempts in the window
        only; totals are all-time since the last reset.

        Returns:
            StatsSummary for this camera.

        Example:
            >>> collector.record(duration_ms=100, success=True)
            >>> collector.record(duration_ms=200, success=True)
            >>> collector.get_summary().avg_duration_ms
            150.0
        """
        # Copy under lock, sort outside it
        with self._lock:
            total = self._total_attempts
            successful = self._successful_attempts
            error_counts = self._error_counts.copy()
            last_attempt_time = self._last_attempt_time
            start_time = self._start_time
            durations = [
                r.duration_ms for r in self._records if r.success and r.duration_ms > 0
            ]

        failed = total - successful

        if durations:
            min_dur = min(durations)
            max_dur = max(durations)
            avg_dur = sum(durations) / len(durations)
            p95_dur = _percentile(sorted(durations), 95)
        else:
            min_dur = max_dur = avg_dur = p95_dur = 0.0

        return StatsSummary(
            camera=self.camera,
            total_attempts=total,
            successful_attempts=successful,
            failed_attempts=failed,
            success_rate=successful / total if total > 0 else 0.0,
            min_duration_ms=min_dur,
            max_duration_ms=max_dur,
            avg_duration_ms=avg_dur,
            p95_duration_ms=p95_dur,
            error_counts=error_counts,
            last_attempt_time=last_attempt_time,
            uptime_seconds=time.monotonic() - start_time,
        )

    def reset(self) -> None:
        """Clear all records and counters and restart the uptime timer."""
        with self._lock:
            self._records.clear()
            self._error_counts.clear()
            self._total_attempts = 0
            self._successful_attempts = 0
            self._start_time = time.monotonic()
            self._last_attempt_time = None


class CaptureStats:
    """Statistics for the whole camera fleet.

    Lazily creates one collector per camera name and counts completed
    fleet cycles.

    Usage:
        stats = CaptureStats()
        stats.record_attempt("dock", duration_ms=11000, success=True)
        stats.record_cycle()
        stats.get_summary("dock")
        stats.to_dict()
    """

    def __init__(self, window_size: int = DEFAULT_STATS_WINDOW_SIZE) -> None:
        """Initialize the fleet statistics container.

        Args:
            window_size: Rolling window passed to each camera collector.
        """
        self._window_size = window_size
        self._collectors: dict[str, CameraStatsCollector] = {}
        self._cycles = 0
        self._lock = threading.Lock()

    def _get_collector(self, camera: str) -> CameraStatsCollector:
        """Get or create the collector for a camera name."""
        with self._lock:
            if camera not in self._collectors:
                self._collectors[camera] = CameraStatsCollector(
                    camera, self._window_size
                )
            return self._collectors[camera]

    def record_attempt(
        self,
        camera: str,
        duration_ms: float,
        success: bool,
        error_type: str | None = None,
    ) -> None:
        """Record a capture attempt for one camera.

        Args:
            camera: Camera name.
            duration_ms: Attempt wall time in milliseconds.
            success: True if a final image was written.
            error_type: Failing stage for failures, None otherwise.
        """
        self._get_collector(camera).record(duration_ms, success, error_type)

    def record_cycle(self) -> None:
        """Count one completed pass over the registry."""
        with self._lock:
            self._cycles += 1

    @property
    def cycles(self) -> int:
        """Number of completed fleet cycles."""
        with self._lock:
            return self._cycles

    def get_summary(self, camera: str) -> StatsSummary:
        """Get the summary for one camera (zeroed if never seen)."""
        return self._get_collector(camera).get_summary()

    def get_all_summaries(self) -> dict[str, StatsSummary]:
        """Get summaries for every camera that has been recorded.

        Returns:
            Mapping of camera name to StatsSummary, in first-seen order.
        """
        with self._lock:
            collectors = list(self._collectors.items())
        return {camera: collector.get_summary() for camera, collector in collectors}

    def reset(self, camera: str | None = None) -> None:
        """Reset statistics for one camera, or everything when camera is None.

        Unknown camera names are a no-op.
        """
        with self._lock:
            if camera is not None:
                if camera in self._collectors:
                    self._collectors[camera].reset()
            else:
                for collector in self._collectors.values():
                    collector.reset()
                self._cycles = 0

    def to_dict(self) -> dict[str, Any]:
        """Export all statistics as a JSON-serializable dictionary.

        Returns:
            {
                "cycles": 12,
                "cameras": {"dock": {...}, "pier": {...}},
                "timestamp": "2026-10-19T10:30:00+00:00"
            }
        """
        summaries = self.get_all_summaries()
        return {
            "cycles": self.cycles,
            "cameras": {
                camera: summary.to_dict() for camera, summary in summaries.items()
            },
            "timestamp": _utc_now().isoformat(),
        }


def _percentile(sorted_data: list[float], p: float) -> float:
    """Calculate a percentile from pre-sorted data.

    Uses linear interpolation between neighbouring points (numpy's
    'linear' method).

    Args:
        sorted_data: Values sorted ascending. Empty input returns 0.0.
        p: Percentile in [0, 100].

    Returns:
        The interpolated percentile value.

    Raises:
        ValueError: If p is outside [0, 100].

    Example:
        >>> _percentile([1.0, 2.0, 3.0, 4.0, 5.0], 50)
        3.0
        >>> _percentile([100.0, 150.0, 200.0], 95)
        195.0
    """
    if not 0 <= p <= 100:
        raise ValueError(f"Percentile must be between 0 and 100, got {p}")

    if not sorted_data:
        return 0.0

    k = (len(sorted_data) - 1) * (p / 100)
    floor_idx = int(k)
    ceil_idx = min(floor_idx + 1, len(sorted_data) - 1)

    if floor_idx == ceil_idx:
        return sorted_data[floor_idx]

    fraction = k - floor_idx
    return sorted_data[floor_idx] * (1 - fraction) + sorted_data[ceil_idx] * fraction
