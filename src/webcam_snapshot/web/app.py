"""FastAPI diagnostic application.

Read-only runtime introspection for a running capture process:

- ``GET /debug/health``   liveness and uptime
- ``GET /debug/stats``    capture statistics per camera
- ``GET /debug/threads``  current stack of every live thread
- ``GET /debug/gc``       garbage collector counters and object count

The app only reads from ``CaptureStats`` (which is lock-protected) and
interpreter state, so it cannot block the capture loop.
"""

from __future__ import annotations

import gc
import os
import sys
import threading
import time
import traceback
from typing import Any

from fastapi import FastAPI

from webcam_snapshot import __version__
from webcam_snapshot.observability import CaptureStats, get_logger
from webcam_snapshot.registry import CameraRegistry

logger = get_logger(__name__)


def _thread_dump() -> list[dict[str, Any]]:
    """Snapshot the stack of every live thread.

    Returns:
        One entry per thread with name, ident, daemon flag and the
        formatted stack (innermost frame last).
    """
    frames = sys._current_frames()
    dump = []
    for thread in threading.enumerate():
        frame = frames.get(thread.ident) if thread.ident is not None else None
        dump.append(
            {
                "name": thread.name,
                "ident": thread.ident,
                "daemon": thread.daemon,
                "stack": traceback.format_stack(frame) if frame is not None else [],
            }
        )
    return dump


def create_app(
    stats: CaptureStats,
    registry: CameraRegistry | None = None,
) -> FastAPI:
    """Create the diagnostic FastAPI application.

    Args:
        stats: Live statistics shared with the orchestrator.
        registry: Configured cameras, listed by /debug/health.

    Returns:
        FastAPI app ready for uvicorn or TestClient.

    Example:
        >>> app = create_app(CaptureStats())
        >>> TestClient(app).get("/debug/health").json()["status"]
        'ok'
    """
    app = FastAPI(title="webcam-snapshot diagnostics", version=__version__)
    started = time.monotonic()

    @app.get("/debug/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "version": __version__,
            "pid": os.getpid(),
            "uptime_seconds": time.monotonic() - started,
            "cameras": registry.names() if registry is not None else [],
        }

    @app.get("/debug/stats")
    async def capture_stats() -> dict[str, Any]:
        return stats.to_dict()

    @app.get("/debug/threads")
    async def threads() -> dict[str, Any]:
        dump = _thread_dump()
        return {"count": len(dump), "threads": dump}

    @app.get("/debug/gc")
    async def garbage_collector() -> dict[str, Any]:
        return {
            "enabled": gc.isenabled(),
            "counts": list(gc.get_count()),
            "thresholds": list(gc.get_threshold()),
            "generations": gc.get_stats(),
            "objects": len(gc.get_objects()),
        }

    return app
