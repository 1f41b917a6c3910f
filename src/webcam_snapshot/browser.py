"""Headless browser screenshot acquisition.

Each capture launches its own Chromium through Playwright, opens the
camera page, double-clicks the full-screen control, and screenshots the
player element. The whole sequence shares one wall-clock budget
(60 s by default); every browser call is given whatever is left of it.

Launch flags aim at a session that looks like an ordinary desktop
browser to the stream page: GPU compositing stays on, extensions are not
disabled, and Playwright's ``--enable-automation`` switch is dropped.

Usage:
    source = PlaywrightScreenshotSource()
    png = source.capture(camera)

Architecture:
    ScreenshotSource (Protocol) <- PlaywrightScreenshotSource (real)
                                <- fakes (tests)
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, Protocol, runtime_checkable

from webcam_snapshot.errors import ScreenshotError, ScreenshotTimeout
from webcam_snapshot.observability import get_logger
from webcam_snapshot.registry import CameraDescriptor

logger = get_logger(__name__)

DEFAULT_TIMEOUT_S = 60.0
DEFAULT_NAVIGATION_SETTLE_S = 5.0
DEFAULT_FULLSCREEN_SETTLE_S = 5.0

#: Playwright defaults removed from the Chromium command line.
IGNORED_DEFAULT_ARGS = ["--enable-automation", "--disable-extensions", "--disable-gpu"]

_ENGINE_PREFIX = re.compile(r"^[a-z][a-z0-9_-]*=")


@runtime_checkable
class ScreenshotSource(Protocol):
    """Produces raw screenshot bytes of a camera's capture region."""

    def capture(self, camera: CameraDescriptor) -> bytes:
        """Capture the camera's player element as PNG bytes.

        Raises:
            ScreenshotError: Navigation, lookup, activation or screenshot
                failed, or the time budget ran out (ScreenshotTimeout).
        """
        ...  # pragma: no cover


class Deadline:
    """Wall-clock budget shared by all steps of one browser session."""

    def __init__(
        self, seconds: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._clock = clock
        self.seconds = seconds
        self._expires = clock() + seconds

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(0.0, self._expires - self._clock())

    def check(self, step: str) -> None:
        """Raise ScreenshotTimeout if the budget is used up."""
        if self.remaining() <= 0:
            raise ScreenshotTimeout(
                f"timed out after {self.seconds:g}s during {step}", step
            )

    def remaining_ms(self, step: str) -> float:
        """Remaining budget in milliseconds for a Playwright ``timeout=``.

        Raises:
            ScreenshotTimeout: If nothing is left.
        """
        self.check(step)
        return self.remaining() * 1000


def as_xpath(selector: str) -> str:
    """Give a bare XPath Playwright's explicit ``xpath=`` engine prefix.

    Selectors that already name an engine are returned unchanged.

    Example:
        >>> as_xpath("//div[@id='player']")
        "xpath=//div[@id='player']"
        >>> as_xpath("css=#player")
        'css=#player'
    """
    if _ENGINE_PREFIX.match(selector):
        return selector
    return f"xpath={selector}"


class PlaywrightScreenshotSource:
    """Screenshot source backed by Playwright's synchronous Chromium API."""

    def __init__(
        self,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        navigation_settle_s: float = DEFAULT_NAVIGATION_SETTLE_S,
        fullscreen_settle_s: float = DEFAULT_FULLSCREEN_SETTLE_S,
        playwright_factory: Callable[[], Any] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Configure timings and import Playwright.

        Args:
            timeout_s: Budget for launch through screenshot.
            navigation_settle_s: Wait after the page loads, for the player
                to initialise.
            fullscreen_settle_s: Wait after the double-click, for the
                full-screen transition and a stable frame.
            playwright_factory: Returns a Playwright context manager.
                Defaults to ``playwright.sync_api.sync_playwright``.
            clock: Monotonic time source for the deadline.

        Raises:
            ImportError: If playwright is not installed.
        """
        from playwright.sync_api import Error, TimeoutError, sync_playwright

        self.timeout_s = timeout_s
        self.navigation_settle_s = navigation_settle_s
        self.fullscreen_settle_s = fullscreen_settle_s
        self._playwright_factory = playwright_factory or sync_playwright
        self._clock = clock
        self._error = Error
        self._timeout_error = TimeoutError

    @contextmanager
    def _step(self, name: str) -> Iterator[None]:
        """Translate Playwright errors raised inside a step."""
        try:
            yield
        except self._timeout_error as e:
            raise ScreenshotTimeout(f"{name} timed out: {e.message}", name) from e
        except self._error as e:
            raise ScreenshotError(f"{name} failed: {e.message}", name) from e

    def _settle(self, page: Any, seconds: float, deadline: Deadline, step: str) -> None:
        """Fixed wait for page state, clipped to the remaining budget."""
        wait = min(seconds, deadline.remaining())
        page.wait_for_timeout(wait * 1000)
        deadline.check(step)

    def capture(self, camera: CameraDescriptor) -> bytes:
        """Launch a browser, drive the camera page and screenshot the player.

        The browser is closed on every exit path.

        Args:
            camera: Target camera.

        Returns:
            PNG bytes of the capture region.

        Raises:
            ScreenshotError: With ``step`` set to 'launch', 'navigate',
                'fullscreen' or 'screenshot'. ScreenshotTimeout when the
                budget runs out.
        """
        deadline = Deadline(self.timeout_s, self._clock)

        with self._step("launch"), self._playwright_factory() as pw:
            browser = pw.chromium.launch(
                headless=True,
                ignore_default_args=IGNORED_DEFAULT_ARGS,
                timeout=deadline.remaining_ms("launch"),
            )
            try:
                return self._drive(browser, camera, deadline)
            finally:
                try:
                    browser.close()
                except self._error as e:
                    logger.warning("Error closing browser", error=e.message)

    def _drive(self, browser: Any, camera: CameraDescriptor, deadline: Deadline) -> bytes:
        """Run navigate, full-screen and screenshot on a fresh page."""
        page = browser.new_page()

        with self._step("navigate"):
            logger.debug("Navigating", url=camera.url)
            page.goto(camera.url, timeout=deadline.remaining_ms("navigate"))
            self._settle(page, self.navigation_settle_s, deadline, "navigate")

        with self._step("fullscreen"):
            page.dblclick(
                as_xpath(camera.fullscreen_trigger_selector),
                timeout=deadline.remaining_ms("fullscreen"),
            )
            self._settle(page, self.fullscreen_settle_s, deadline, "fullscreen")

        with self._step("screenshot"):
            data = page.locator(as_xpath(camera.capture_region_selector)).screenshot(
                type="png",
                timeout=deadline.remaining_ms("screenshot"),
            )

        logger.debug("Screenshot captured", size_bytes=len(data))
        return data
