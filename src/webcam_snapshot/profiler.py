"""Background diagnostic server.

Runs the FastAPI diagnostic app under uvicorn on a daemon thread so the
capture loop keeps the main thread. A server that fails to start is
logged and otherwise ignored; capture carries on without it.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

import uvicorn

from webcam_snapshot.observability import CaptureStats, get_logger
from webcam_snapshot.registry import CameraRegistry
from webcam_snapshot.web.app import create_app

logger = get_logger(__name__)


@dataclass
class ProfilerState:
    """Background thread and uvicorn server of the diagnostic endpoint."""

    thread: threading.Thread | None = field(default=None)
    server: uvicorn.Server | None = field(default=None)


_profiler = ProfilerState()


def _run_profiler(
    host: str,
    port: int,
    stats: CaptureStats,
    registry: CameraRegistry | None,
    log_level: str,
) -> None:
    """Serve the diagnostic app until shutdown (thread target).

    Errors are logged, never raised.
    """
    try:
        app = create_app(stats, registry)
        config = uvicorn.Config(app, host=host, port=port, log_level=log_level)
        _profiler.server = uvicorn.Server(config)
        _profiler.server.run()
    except OSError as e:
        logger.error("Diagnostic server failed to start", error=str(e), host=host, port=port)
    except SystemExit as e:
        # uvicorn exits instead of raising when it cannot bind.
        logger.error(
            "Diagnostic server failed to start", exit_code=e.code, host=host, port=port
        )
    except Exception:
        logger.exception("Unexpected error in diagnostic server")


def start_profiler(
    stats: CaptureStats,
    registry: CameraRegistry | None = None,
    host: str = "127.0.0.1",
    port: int = 8080,
    log_level: str = "warning",
) -> None:
    """Start the diagnostic server on a daemon thread.

    No-op if it is already running.

    Args:
        stats: Statistics exposed at /debug/stats.
        registry: Cameras listed at /debug/health.
        host: Bind address.
        port: Bind port.
        log_level: uvicorn log level.

    Example:
        >>> start_profiler(stats, registry, port=8080)
        >>> # curl http://127.0.0.1:8080/debug/threads
    """
    if _profiler.thread is not None and _profiler.thread.is_alive():
        logger.warning("Diagnostic server already running")
        return

    _profiler.thread = threading.Thread(
        target=_run_profiler,
        args=(host, port, stats, registry, log_level),
        daemon=True,
        name=f"webcam-snapshot-diagnostics-{host}:{port}",
    )
    _profiler.thread.start()
    logger.info(f"Diagnostic server started at http://{host}:{port}/debug/health")


def stop_profiler() -> None:
    """Ask the diagnostic server to shut down. Safe if not running."""
    if _profiler.server is not None:
        logger.info("Stopping diagnostic server")
        _profiler.server.should_exit = True
        _profiler.server = None
