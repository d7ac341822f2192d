"""Incremental scrolling to trigger lazy-loaded images and intersection observers."""

from __future__ import annotations

import logging

from playwright.async_api import Page

from pixel_police.models.config import CaptureConfig

logger = logging.getLogger(__name__)

# Page height is re-read on every step so content that grows the page while
# scrolling is reached as well. Ends at the top: full-page capture renders from there.
_SCROLL_SCRIPT = """async ({stepRatio, pauseMs, bottomPauseMs, topPauseMs, maxSteps}) => {
    const delay = (ms) => new Promise(resolve => setTimeout(resolve, ms));
    const root = document.scrollingElement || document.documentElement;
    const totalHeight = () => Math.max(
        document.body ? document.body.scrollHeight : 0,
        root ? root.scrollHeight : 0,
    );
    const step = Math.max(1, window.innerHeight * stepRatio);

    let position = 0;
    let steps = 0;
    while (position < totalHeight() && steps < maxSteps) {
        window.scrollTo(0, position);
        await delay(pauseMs);
        position += step;
        steps += 1;
    }

    window.scrollTo(0, totalHeight());
    await delay(bottomPauseMs);
    window.scrollTo(0, 0);
    await delay(topPauseMs);
    return { steps: steps, height: totalHeight(), capped: steps >= maxSteps };
}"""


async def scroll_to_load_all(page: Page, capture: CaptureConfig) -> dict:
    """Scroll top to bottom in steps, then back to the top.

    Returns the step count and final page height reported by the browser.
    """
    info = await page.evaluate(_SCROLL_SCRIPT, {
        "stepRatio": capture.scroll_step_ratio,
        "pauseMs": capture.scroll_pause_ms,
        "bottomPauseMs": capture.bottom_pause_ms,
        "topPauseMs": capture.top_pause_ms,
        "maxSteps": capture.max_scroll_steps,
    })
    info = info or {}
    if info.get("capped"):
        logger.warning("    Stopped lazy-load scrolling after %d steps (page height %spx)",
                       info.get("steps", 0), info.get("height"))
    else:
        logger.debug("    Scrolled %s steps, page height %spx", info.get("steps"), info.get("height"))
    return info
