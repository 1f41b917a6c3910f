"""CLI entry point for webcam-snapshot.

Provides the ``webcam-snapshot`` console script. All options are also
read from environment variables (see ``webcam_snapshot.config``).

Usage::

    # Defaults: ./data/config.json, 280-300 s between cycles
    webcam-snapshot

    # Short cycle, diagnostics on http://127.0.0.1:8080/debug/health
    webcam-snapshot --capture-delay-from 10 --capture-delay-to 20 --profile

    # Same via environment
    SAVE_PATH=/srv/shots WATERMARK_TIMEZONE=UTC DEBUG=1 webcam-snapshot

Exit codes:
    0 - interrupted from the keyboard
    1 - configuration error at startup
    2 - invalid command-line flags (argparse)
"""

from __future__ import annotations

import sys
from collections.abc import Mapping, Sequence

from webcam_snapshot.browser import PlaywrightScreenshotSource
from webcam_snapshot.clock import SystemClock
from webcam_snapshot.config import AppConfig, FinishingOptions, parse_args
from webcam_snapshot.errors import ConfigError
from webcam_snapshot.finishing import FinishingPipeline
from webcam_snapshot.observability import CaptureStats, configure_logging, get_logger
from webcam_snapshot.orchestrator import CaptureOrchestrator
from webcam_snapshot.registry import CameraRegistry
from webcam_snapshot.scheduler import FleetScheduler
from webcam_snapshot.watermark import Watermarker

logger = get_logger(__name__)


def build_scheduler(
    config: AppConfig,
    registry: CameraRegistry,
    stats: CaptureStats,
) -> FleetScheduler:
    """Assemble the production component graph from the configuration.

    Args:
        config: Resolved process configuration.
        registry: Loaded cameras.
        stats: Shared statistics (also served by the diagnostic endpoint).

    Returns:
        FleetScheduler ready for ``run_forever()``.
    """
    options = FinishingOptions()
    clock = SystemClock()
    pipeline = FinishingPipeline(
        watermarker=Watermarker(config.font_path, config.watermark_timezone, options),
        options=options,
    )
    orchestrator = CaptureOrchestrator(
        source=PlaywrightScreenshotSource(),
        pipeline=pipeline,
        save_dir=config.save_path,
        clock=clock,
        stats=stats,
    )
    return FleetScheduler(
        registry,
        orchestrator,
        config.capture_delay_from,
        config.capture_delay_to,
        clock=clock,
        stats=stats,
    )


def main(
    argv: Sequence[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Run webcam-snapshot until the process is terminated.

    Args:
        argv: Arguments without the program name (default sys.argv[1:]).
        environ: Environment mapping (default os.environ).

    Returns:
        Exit code; only returned on startup failure or Ctrl+C.

    Raises:
        SystemExit: On --help or invalid flags (argparse).
    """
    print("Webcam capture started", flush=True)

    try:
        config = parse_args(argv, environ)
    except ConfigError as e:
        logger.error("Failed to parse flags", error=str(e))
        return 1

    configure_logging(debug=config.debug, json_format=config.json_logs, force=True)
    logger.info("Options", **config.to_dict())

    stats = CaptureStats()

    try:
        registry = CameraRegistry.from_file(config.config_path)
    except ConfigError as e:
        logger.error("Failed to load camera list", error=str(e))
        return 1
    logger.info("Cameras loaded", count=len(registry), cameras=registry.names())

    try:
        config.save_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error("Failed to create save directory", path=str(config.save_path), error=str(e))
        return 1

    if config.profile:
        from webcam_snapshot.profiler import start_profiler

        start_profiler(stats, registry, config.profile_host, config.profile_port)

    scheduler = build_scheduler(config, registry, stats)
    try:
        scheduler.run_forever()
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting", cycles=stats.cycles)
    finally:
        if config.profile:
            from webcam_snapshot.profiler import stop_profiler

            stop_profiler()
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
