"""Snapshot capturer: render one page per viewport into a full-page PNG."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from playwright.async_api import Browser, Page

from pixel_police.models.config import (
    VIEWPORTS,
    CaptureConfig,
    CookieConfig,
    Phase,
    ViewportConfig,
)
from pixel_police.models.page import PageDescriptor
from pixel_police.models.snapshot import Snapshot
from pixel_police.url_utils import snapshot_filename
from pixel_police.utils.browser import create_capture_context

from .lazy_load import scroll_to_load_all
from .overlay import dismiss_overlays

logger = logging.getLogger(__name__)


class SnapshotCapturer:
    """Captures pages into ``{run_root}/{phase}/`` using one shared browser.

    Every descriptor gets its own browser context, closed before the next
    descriptor starts, so cookies and banner state never leak between pages.
    """

    def __init__(
        self,
        browser: Browser,
        run_root: Path,
        cookie: CookieConfig,
        capture: CaptureConfig,
        ignore_https_errors: bool = False,
    ):
        self.browser = browser
        self.run_root = run_root
        self.cookie = cookie
        self.capture = capture
        self.ignore_https_errors = ignore_https_errors

    async def capture_all(self, descriptors: list[PageDescriptor], phase: Phase) -> list[Snapshot]:
        """Capture every descriptor, strictly one after another."""
        total = len(descriptors)
        logger.info("Taking %s screenshots (%d URLs)...", phase.upper(), total)
        snapshots: list[Snapshot] = []
        for index, descriptor in enumerate(descriptors):
            logger.info("[%d/%d] %s", index + 1, total, descriptor.label)
            snapshots.extend(await self.capture_page(descriptor, phase))
        logger.info("%s screenshots complete", phase.upper())
        return snapshots

    async def capture_page(self, descriptor: PageDescriptor, phase: Phase) -> list[Snapshot]:
        """Capture desktop then mobile. Always returns one snapshot per viewport."""
        phase_dir = self.run_root / phase
        phase_dir.mkdir(parents=True, exist_ok=True)
        logger.info("  Screenshotting: %s (%s)", descriptor.title or descriptor.slug, descriptor.url)

        snapshots: dict[str, Snapshot] = {}
        setup_error: str | None = None
        context = None
        try:
            context = await create_capture_context(
                self.browser,
                viewport=VIEWPORTS["desktop"].as_size(),
                user_agent=self.capture.user_agent,
                ignore_https_errors=self.ignore_https_errors,
            )
            page = await context.new_page()
            for name, viewport in VIEWPORTS.items():
                snapshots[name] = await self._capture_viewport(page, descriptor, viewport, phase, phase_dir)
        except Exception as e:
            setup_error = str(e)
            logger.warning("  Browser error for %s: %s", descriptor.label, e)
        finally:
            if context is not None:
                try:
                    await context.close()
                except Exception as e:
                    logger.debug("Context close failed: %s", e)

        for name in VIEWPORTS:
            if name not in snapshots:
                snapshots[name] = self._snapshot(
                    descriptor, name, phase, phase_dir,
                    error=setup_error or "Capture did not run",
                )
        return [snapshots[name] for name in VIEWPORTS]

    async def _capture_viewport(
        self,
        page: Page,
        descriptor: PageDescriptor,
        viewport: ViewportConfig,
        phase: Phase,
        phase_dir: Path,
    ) -> Snapshot:
        path = phase_dir / snapshot_filename(descriptor.post_type, descriptor.slug, viewport.name)
        # Never let a previous run's file stand in for a failed capture.
        path.unlink(missing_ok=True)

        start = time.time()
        error = None
        try:
            await self.take_screenshot(page, descriptor.url, path, viewport)
            logger.info("    %s... done (%.1fs)", viewport.name.capitalize(), time.time() - start)
        except Exception as e:
            error = str(e)
            logger.warning("    %s... failed for %s: %s", viewport.name.capitalize(), descriptor.label, e)
        return self._snapshot(descriptor, viewport.name, phase, phase_dir, error=error)

    def _snapshot(
        self,
        descriptor: PageDescriptor,
        viewport_name: str,
        phase: Phase,
        phase_dir: Path,
        error: str | None = None,
    ) -> Snapshot:
        path = phase_dir / snapshot_filename(descriptor.post_type, descriptor.slug, viewport_name)
        return Snapshot(
            descriptor=descriptor,
            viewport=viewport_name,
            phase=phase,
            image_path=path.relative_to(self.run_root).as_posix(),
            captured_at=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            error=error,
        )

    async def take_screenshot(
        self, page: Page, url: str, output_path: Path, viewport: ViewportConfig,
    ) -> None:
        """Render ``url`` at ``viewport`` and write a full-page PNG.

        Only navigation (and the final screenshot) can fail the capture;
        overlay dismissal, scrolling, and the second idle wait are best effort.
        """
        await page.set_viewport_size(viewport.as_size())
        await page.goto(url, wait_until="networkidle", timeout=self.capture.navigation_timeout_ms)

        await dismiss_overlays(page, self.cookie, self.capture)

        try:
            await scroll_to_load_all(page, self.capture)
        except Exception as e:
            logger.warning("    Lazy-load scrolling failed: %s", e)

        # Content triggered while scrolling may still be in flight.
        try:
            await page.wait_for_load_state("networkidle", timeout=self.capture.network_idle_timeout_ms)
        except Exception as e:
            logger.debug("    Network did not settle after scrolling: %s", e)

        await page.wait_for_timeout(self.capture.settle_ms)
        await page.screenshot(path=str(output_path), full_page=True)
