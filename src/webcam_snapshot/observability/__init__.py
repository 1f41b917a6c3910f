"""Observability module for webcam-snapshot.

Provides structured logging and capture statistics.

Example:
    from webcam_snapshot.observability import get_logger, LogContext

    logger = get_logger(__name__)
    logger.info("Webcam capture started")

    with LogContext(camera="dock"):
        logger.error("Screenshot failed", stage="render", reason="timeout")

Statistics Example:
    from webcam_snapshot.observability import CaptureStats

    stats = CaptureStats()
    stats.record_attempt("dock", duration_ms=11000, success=True)
    print(f"Success rate: {stats.get_summary('dock').success_rate:.1%}")
"""

from webcam_snapshot.observability.logging import (
    LogContext,
    StructuredLogger,
    configure_logging,
    get_logger,
    reset_logging,
)
from webcam_snapshot.observability.stats import (
    CaptureStats,
    StatsSummary,
)

__all__ = [
    # Logging
    "LogContext",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "reset_logging",
    # Statistics
    "CaptureStats",
    "StatsSummary",
]
