"""Browser helpers: Chromium launch and isolated per-page capture contexts."""

from __future__ import annotations

from typing import Optional

from playwright.async_api import Browser, BrowserContext, Playwright

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)

# Some security plugins serve a challenge page to obvious automation.
_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });
"""


async def launch_browser(playwright: Playwright, headless: bool = True) -> Browser:
    """Launch the single Chromium instance shared by a run."""
    return await playwright.chromium.launch(
        headless=headless,
        args=[
            "--disable-blink-features=AutomationControlled",
        ],
    )


async def create_capture_context(
    browser: Browser,
    viewport: dict,
    user_agent: Optional[str] = None,
    ignore_https_errors: bool = False,
) -> BrowserContext:
    """Create a fresh browser context for exactly one page capture.

    Args:
        viewport: Initial viewport size; the capturer resizes per preset.
        ignore_https_errors: Accept self-signed certificates. Only set for
            local development hosts, and only on this context.
    """
    context = await browser.new_context(
        viewport=viewport,
        user_agent=user_agent or DEFAULT_USER_AGENT,
        ignore_https_errors=ignore_https_errors,
    )
    await context.add_init_script(_INIT_SCRIPT)
    return context
