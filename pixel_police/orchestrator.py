"""Session orchestrator: before capture, operator gate, after capture, diff, report."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable, Optional

from playwright.async_api import async_playwright

from pixel_police.capture.capturer import SnapshotCapturer
from pixel_police.diff.image_diff import compare_screenshots
from pixel_police.errors import NoPagesError, SnapshotArtifactError
from pixel_police.models.config import ToolConfig
from pixel_police.models.page import PageDescriptor
from pixel_police.models.session import Session
from pixel_police.models.snapshot import (
    ComparisonRecord,
    DiffResult,
    ErroredComparison,
    ViewportPair,
)
from pixel_police.reporter.reporter import Reporter
from pixel_police.session.pairing import pair_snapshots
from pixel_police.url_utils import diff_filename, extract_domain, is_local_dev_host
from pixel_police.utils.browser import launch_browser

logger = logging.getLogger(__name__)

Gate = Callable[[Session], bool]


def create_run_root(site_url: str, base_dir: str | Path = "output") -> Path:
    """Create ``{base_dir}/{YYYY-MM-DD}_{domain}`` and return it."""
    folder = f"{time.strftime('%Y-%m-%d')}_{extract_domain(site_url)}"
    run_root = Path(base_dir) / folder
    run_root.mkdir(parents=True, exist_ok=True)
    logger.info("Project folder: %s", run_root.resolve())
    return run_root


class Orchestrator:
    """Drives one Session from the first capture to the final report."""

    def __init__(self, config: ToolConfig, run_root: Path, reporter: Optional[Reporter] = None):
        self.config = config
        self.run_root = run_root
        self.reporter = reporter or Reporter(config)
        self.reports: dict[str, str] = {}

    def new_session(self, descriptors: list[PageDescriptor]) -> Session:
        if not descriptors:
            raise NoPagesError("No URLs found to screenshot")
        unique: list[PageDescriptor] = []
        seen: set[tuple[str, str]] = set()
        for descriptor in descriptors:
            if descriptor.key in seen:
                logger.warning("Skipping duplicate page %s (%s)", descriptor.label, descriptor.url)
                continue
            seen.add(descriptor.key)
            unique.append(descriptor)
        return Session(
            site_url=self.config.site_url,
            run_root=str(self.run_root),
            cookie_config=self.config.cookie,
            descriptors=unique,
        )

    def run_full_pipeline(self, descriptors: list[PageDescriptor], gate: Gate) -> Session:
        return asyncio.run(self.run(descriptors, gate))

    async def run(self, descriptors: list[PageDescriptor], gate: Gate) -> Session:
        """Launch Chromium and run both phases with it."""
        session = self.new_session(descriptors)
        local_dev = is_local_dev_host(self.config.site_url)
        async with async_playwright() as p:
            logger.debug("Launching Chromium...")
            browser = await launch_browser(p, headless=self.config.capture.headless)
            try:
                capturer = SnapshotCapturer(
                    browser,
                    self.run_root,
                    cookie=self.config.cookie,
                    capture=self.config.capture,
                    ignore_https_errors=local_dev,
                )
                return await self.run_session(session, capturer, gate)
            finally:
                await browser.close()

    async def run_session(self, session: Session, capturer: SnapshotCapturer, gate: Gate) -> Session:
        """Capture before, wait for the operator, capture after, diff, finalize.

        Both phases use ``session.descriptors`` verbatim; nothing is
        re-discovered between them.
        """
        start = time.time()
        logger.info("=== Starting session for %s (%d pages) ===",
                    session.site_url, len(session.descriptors))

        session.record_before(await capturer.capture_all(session.descriptors, "before"))
        self._report(session)

        # The operator may take as long as the update needs.
        proceed = await asyncio.to_thread(gate, session)
        if not proceed:
            logger.info("AFTER phase skipped; the report shows BEFORE screenshots only")
            return session

        session.record_after(await capturer.capture_all(session.descriptors, "after"))

        comparisons, errored = self.diff_session(session)
        session.record_comparisons(comparisons, errored)
        session.finalize()
        logger.info(session.summary_line())
        self._report(session)

        logger.info("=== Session complete in %.1fs ===", time.time() - start)
        return session

    def diff_session(self, session: Session) -> tuple[list[ComparisonRecord], list[ErroredComparison]]:
        """Pair snapshots by page identity and diff each viewport."""
        logger.info("Generating visual diff comparisons...")
        pairing = pair_snapshots(session.before_snapshots, session.after_snapshots)
        for descriptor in pairing.pending:
            logger.info("  Skipping %s: no \"after\" screenshot found", descriptor.label)

        comparisons: list[ComparisonRecord] = []
        errored: list[ErroredComparison] = []
        for pair in pairing.pairs:
            descriptor = pair.descriptor
            logger.info("  Comparing: %s", descriptor.title or descriptor.label)
            diffs: dict[str, DiffResult] = {}
            failures: list[ErroredComparison] = []
            for viewport_name, viewport_pair in pair.viewports.items():
                try:
                    diffs[viewport_name] = self._diff_viewport(descriptor, viewport_name, viewport_pair)
                except SnapshotArtifactError as e:
                    logger.warning("    Error comparing %s (%s): %s", descriptor.label, viewport_name, e)
                    failures.append(ErroredComparison(
                        descriptor=descriptor, viewport=viewport_name, reason=str(e),
                    ))
                except Exception as e:
                    logger.error("    Diff crashed for %s (%s): %s", descriptor.label, viewport_name, e)
                    failures.append(ErroredComparison(
                        descriptor=descriptor, viewport=viewport_name, reason=f"Diff failed: {e}",
                    ))
            if failures:
                errored.extend(failures)
                continue

            record = ComparisonRecord(
                descriptor=descriptor,
                desktop=pair.viewports["desktop"],
                mobile=pair.viewports["mobile"],
                desktop_diff=diffs["desktop"],
                mobile_diff=diffs["mobile"],
            )
            comparisons.append(record)
            if record.changed:
                for name, result in diffs.items():
                    logger.info("    %-8s %s pixels changed (%.2f%%)",
                                f"{name.capitalize()}:", f"{result.diff_pixels:,}", result.diff_percentage)
            else:
                logger.info("    No visual changes detected")

        return comparisons, errored

    def _diff_viewport(
        self, descriptor: PageDescriptor, viewport_name: str, pair: ViewportPair,
    ) -> DiffResult:
        for snap in (pair.before, pair.after):
            if snap.error:
                raise SnapshotArtifactError(
                    snap.resolve(self.run_root), f"{snap.phase} capture failed ({snap.error})",
                )
        rel_path = Path("diff") / diff_filename(descriptor.post_type, descriptor.slug, viewport_name)
        result = compare_screenshots(
            pair.before.resolve(self.run_root),
            pair.after.resolve(self.run_root),
            self.run_root / rel_path,
            self.config.diff,
        )
        return result.model_copy(update={"diff_path": rel_path.as_posix()})

    def _report(self, session: Session) -> None:
        self.reports = self.reporter.generate_reports(session, output_dir=self.run_root)
