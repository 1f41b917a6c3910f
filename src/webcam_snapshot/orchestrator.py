"""Capture orchestration for a single camera.

``CaptureOrchestrator.run()`` performs one capture attempt: screenshot,
then finishing. It never raises. A failed stage is logged with the camera
name and stage, recorded in the statistics, and returned as a failed
``StageResult``; the camera is simply skipped until the next cycle.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from webcam_snapshot.browser import ScreenshotSource
from webcam_snapshot.clock import Clock, SystemClock
from webcam_snapshot.errors import (
    FinishingError,
    ScreenshotError,
    ScreenshotTimeout,
    StageResult,
)
from webcam_snapshot.finishing import FinishingPipeline, snapshot_basename
from webcam_snapshot.observability import CaptureStats, LogContext, get_logger
from webcam_snapshot.registry import CameraDescriptor

logger = get_logger(__name__)

RENDER_STAGE = "render"
FINISHING_STAGE = "finishing"
INTERNAL_STAGE = "internal"


def render_stage(source: ScreenshotSource, camera: CameraDescriptor) -> StageResult:
    """Acquire the raw screenshot as a stage outcome.

    Returns:
        Success carrying PNG bytes, or a 'render' failure. Timeouts use
        error_type 'render_timeout' but are otherwise the same failure.
    """
    try:
        return StageResult.success(source.capture(camera), stage=RENDER_STAGE)
    except ScreenshotError as e:
        error_type = "render_timeout" if isinstance(e, ScreenshotTimeout) else None
        return StageResult.failure(RENDER_STAGE, str(e), error_type)


def finishing_stage(
    pipeline: FinishingPipeline, raw: bytes, base_path: Path, now: datetime
) -> StageResult:
    """Run the finishing pipeline as a stage outcome.

    Returns:
        Success carrying the final image path, or a 'finishing' failure.
    """
    try:
        return StageResult.success(
            pipeline.finish(raw, base_path, now), stage=FINISHING_STAGE
        )
    except FinishingError as e:
        return StageResult.failure(FINISHING_STAGE, f"{e.step}: {e}")


class CaptureOrchestrator:
    """Runs screenshot then finishing for one camera, never raising.

    Holds no per-attempt state, so one instance serves the whole fleet.

    Example:
        >>> orchestrator = CaptureOrchestrator(source, pipeline, Path("/tmp/out"))
        >>> result = orchestrator.run(camera)
        >>> result.ok, result.value
        (True, PosixPath('/tmp/out/dock_2026-10-19_10-30-05.jpg'))
    """

    def __init__(
        self,
        source: ScreenshotSource,
        pipeline: FinishingPipeline,
        save_dir: Path,
        clock: Clock | None = None,
        stats: CaptureStats | None = None,
    ) -> None:
        """Wire the stages.

        Args:
            source: Produces raw screenshots.
            pipeline: Finishes raw screenshots into files.
            save_dir: Directory receiving finished images.
            clock: Time source for durations and filenames.
            stats: Attempt statistics sink.
        """
        self.source = source
        self.pipeline = pipeline
        self.save_dir = Path(save_dir)
        self.clock = clock or SystemClock()
        self.stats = stats or CaptureStats()

    def run(self, camera: CameraDescriptor) -> StageResult:
        """Perform one capture attempt for ``camera``.

        Args:
            camera: Target camera.

        Returns:
            The last stage's outcome: success with the final path, or the
            first failure.
        """
        started = self.clock.monotonic()
        with LogContext(camera=camera.name):
            try:
                result = self._attempt(camera)
            except Exception as e:
                logger.exception("Unexpected error during capture")
                result = StageResult.failure(INTERNAL_STAGE, f"{type(e).__name__}: {e}")

            duration_ms = (self.clock.monotonic() - started) * 1000
            self.stats.record_attempt(
                camera.name,
                duration_ms=duration_ms,
                success=result.ok,
                error_type=result.error_type,
            )
        return result

    def _attempt(self, camera: CameraDescriptor) -> StageResult:
        shot = render_stage(self.source, camera)
        if not shot.ok:
            logger.error(
                "Could not acquire screenshot",
                stage=shot.stage,
                reason=shot.reason,
                url=camera.url,
            )
            return shot

        now = self.clock.now()
        base_path = self.save_dir / snapshot_basename(camera.name, now)
        finished = finishing_stage(self.pipeline, shot.value, base_path, now)
        if not finished.ok:
            logger.error(
                "Could not finish screenshot",
                stage=finished.stage,
                reason=finished.reason,
            )
            return finished

        logger.info("Saved screenshot", path=str(finished.value))
        return finished
