"""Fleet scheduler: the never-ending capture loop.

One cycle walks the registry in order and runs the orchestrator for each
camera, one at a time. When the last camera is done, the scheduler
sleeps a random whole number of seconds drawn uniformly from
``[delay_from, delay_to)`` and starts again. Per-camera failures never
reach this loop.
"""

from __future__ import annotations

import random
from typing import Protocol

from webcam_snapshot.clock import Clock, SystemClock
from webcam_snapshot.errors import ConfigError, StageResult
from webcam_snapshot.observability import CaptureStats, get_logger
from webcam_snapshot.registry import CameraDescriptor, CameraRegistry

logger = get_logger(__name__)


class CameraCapture(Protocol):  # pragma: no cover
    """Anything that can run one never-raising capture attempt."""

    def run(self, camera: CameraDescriptor) -> StageResult:
        ...


class FleetScheduler:
    """Drives capture attempts over the whole registry, forever.

    Example:
        >>> scheduler = FleetScheduler(registry, orchestrator, 280, 300)
        >>> scheduler.run_forever()  # returns only on process exit
    """

    def __init__(
        self,
        registry: CameraRegistry,
        orchestrator: CameraCapture,
        delay_from: int,
        delay_to: int,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        stats: CaptureStats | None = None,
    ) -> None:
        """Configure the loop.

        Args:
            registry: Cameras in capture order.
            orchestrator: Runs one attempt per camera.
            delay_from: Inclusive lower bound of the inter-cycle sleep (s).
            delay_to: Exclusive upper bound of the inter-cycle sleep (s).
            clock: Sleep provider.
            rng: Random source for the sleep draw.
            stats: Cycle counter sink.

        Raises:
            ConfigError: If the delay range is negative or empty.
        """
        if delay_from < 0 or delay_from >= delay_to:
            raise ConfigError(
                f"invalid capture delay range [{delay_from}, {delay_to})"
            )
        self.registry = registry
        self.orchestrator = orchestrator
        self.delay_from = delay_from
        self.delay_to = delay_to
        self.clock = clock or SystemClock()
        self.rng = rng or random.Random()
        self.stats = stats or CaptureStats()

    def next_delay(self) -> int:
        """Draw the next inter-cycle sleep in whole seconds.

        Example:
            >>> FleetScheduler(registry, orchestrator, 280, 300).next_delay()
            291
        """
        return self.rng.randrange(self.delay_from, self.delay_to)

    def run_cycle(self) -> list[StageResult]:
        """Attempt every camera once, in registry order.

        Returns:
            One outcome per camera, same order as the registry.
        """
        results = [self.orchestrator.run(camera) for camera in self.registry]
        self.stats.record_cycle()
        return results

    def run_forever(self, max_cycles: int | None = None) -> None:
        """Run cycles separated by random sleeps.

        Args:
            max_cycles: Stop after this many cycles. None (production)
                loops until the process is terminated.
        """
        logger.info(
            "Fleet scheduler started",
            cameras=self.registry.names(),
            delay_from=self.delay_from,
            delay_to=self.delay_to,
        )
        cycle = 0
        while max_cycles is None or cycle < max_cycles:
            cycle += 1
            results = self.run_cycle()
            succeeded = sum(1 for result in results if result.ok)
            delay = self.next_delay()
            logger.info(
                "Cycle complete",
                cycle=cycle,
                succeeded=succeeded,
                failed=len(results) - succeeded,
                sleep_s=delay,
            )
            self.clock.sleep(delay)
