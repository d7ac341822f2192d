"""Overlay dismissal: click away cookie/consent banners before capture."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Callable

from playwright.async_api import Locator, Page

from pixel_police.models.config import CaptureConfig, CookieConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DismissStrategy:
    """A named way of locating a clickable element for a candidate label."""

    name: str
    build: Callable[[Page, str], Locator]


def _css_string(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _role_match(page: Page, text: str) -> Locator:
    return page.get_by_role("button", name=text, exact=True)


def _exact_text_interactive(page: Page, text: str) -> Locator:
    q = _css_string(text)
    return page.locator(
        f'button:text-is({q}), a:text-is({q}), [role="button"]:text-is({q}), '
        f'input[type="button"][value={q}]'
    )


def _loose_text(page: Page, text: str) -> Locator:
    return page.get_by_text(text, exact=True)


# Most precise first. Every candidate label runs through all strategies
# before the next label is tried.
DISMISS_STRATEGIES: tuple[DismissStrategy, ...] = (
    DismissStrategy("role_match", _role_match),
    DismissStrategy("exact_text_interactive", _exact_text_interactive),
    DismissStrategy("loose_text", _loose_text),
)


@dataclass
class DismissalResult:
    clicked: bool = False
    text: str | None = None
    strategy: str | None = None
    attempted: list[str] = field(default_factory=list)
    visible_buttons: list[str] = field(default_factory=list)


async def _try_strategy(
    page: Page, strategy: DismissStrategy, text: str, capture: CaptureConfig,
) -> bool:
    """Click the first visible match. Returns True if a click happened."""
    try:
        locator = strategy.build(page, text).filter(visible=True).first
        if not await locator.is_visible():
            return False
        await locator.click(timeout=capture.dismiss_click_timeout_ms)
        return True
    except Exception as e:
        logger.debug("Overlay strategy %s failed for '%s': %s", strategy.name, text, e)
        return False


async def _visible_button_labels(page: Page, limit: int = 10) -> list[str]:
    try:
        labels = await page.get_by_role("button").all_inner_texts()
    except Exception as e:
        logger.debug("Could not list buttons: %s", e)
        return []
    return [label.strip() for label in labels if label.strip()][:limit]


async def dismiss_overlays(
    page: Page,
    cookie: CookieConfig,
    capture: CaptureConfig,
    strategies: tuple[DismissStrategy, ...] = DISMISS_STRATEGIES,
) -> DismissalResult:
    """Try to close a consent banner. Never raises.

    Stops after the first successful click. A miss is not an error: an
    undismissed banner simply becomes part of the captured page.
    """
    result = DismissalResult()
    if cookie.mode == "none":
        return result

    logger.debug("    Checking for cookie banner...")

    # Some banners only mount after the first scroll event.
    try:
        await page.mouse.wheel(0, capture.banner_probe_scroll_px)
        await page.wait_for_timeout(capture.banner_probe_pause_ms)
    except Exception as e:
        logger.debug("Banner probe scroll failed: %s", e)

    for text in cookie.candidate_texts():
        result.attempted.append(text)
        logger.debug("    Searching for cookie button with text: \"%s\"", text)
        for strategy in strategies:
            if await _try_strategy(page, strategy, text, capture):
                logger.info("    Clicked cookie button (%s): \"%s\"", strategy.name, text)
                result.clicked = True
                result.text = text
                result.strategy = strategy.name
                try:
                    await page.wait_for_timeout(capture.dismiss_animation_ms)
                except Exception as e:
                    logger.debug("Wait after dismissal failed: %s", e)
                return result

    if cookie.mode == "custom":
        logger.warning("    Could not find any clickable element labelled \"%s\"", cookie.custom_text)
        result.visible_buttons = await _visible_button_labels(page)
        if result.visible_buttons:
            logger.warning("    Visible buttons found on page: %s", ", ".join(result.visible_buttons))
    return result
