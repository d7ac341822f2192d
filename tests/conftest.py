"""Pytest configuration and shared fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from pixel_police.models.config import (
    CaptureConfig,
    CookieConfig,
    DiffConfig,
    ToolConfig,
)
from pixel_police.models.page import PageDescriptor
from pixel_police.models.snapshot import Snapshot


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def capture_config() -> CaptureConfig:
    """Capture settings with every wait shortened."""
    return CaptureConfig(
        navigation_timeout_ms=60000,
        network_idle_timeout_ms=1000,
        scroll_pause_ms=0,
        bottom_pause_ms=0,
        top_pause_ms=0,
        settle_ms=0,
        banner_probe_pause_ms=0,
        dismiss_animation_ms=0,
    )


@pytest.fixture
def cookie_config() -> CookieConfig:
    return CookieConfig(mode="auto")


@pytest.fixture
def diff_config() -> DiffConfig:
    return DiffConfig()


@pytest.fixture
def tool_config(capture_config: CaptureConfig) -> ToolConfig:
    """A config pointing at a fake site, with the HTML and JSON reports enabled."""
    return ToolConfig(
        site_url="https://example.com",
        capture=capture_config,
        open_report=False,
    )


# ============================================================================
# Page Fixtures
# ============================================================================


@pytest.fixture
def homepage() -> PageDescriptor:
    return PageDescriptor.homepage("https://example.com")


@pytest.fixture
def about_page() -> PageDescriptor:
    return PageDescriptor(
        post_type="page",
        slug="about",
        url="https://example.com/about/",
        title="About Us",
    )


@pytest.fixture
def descriptors(homepage: PageDescriptor, about_page: PageDescriptor) -> list[PageDescriptor]:
    return [homepage, about_page]


def make_snapshot(
    descriptor: PageDescriptor,
    viewport: str,
    phase: str,
    error: str | None = None,
) -> Snapshot:
    """Snapshot record pointing at the conventional relative path."""
    return Snapshot(
        descriptor=descriptor,
        viewport=viewport,
        phase=phase,
        image_path=f"{phase}/{descriptor.post_type}-{descriptor.slug}-{viewport}.png",
        captured_at="2026-01-01T00:00:00Z",
        error=error,
    )


# ============================================================================
# Image Fixtures
# ============================================================================


def write_png(path: Path, width: int = 20, height: int = 20, color=(0, 0, 0, 255)) -> Path:
    """Write a solid-color PNG, creating parent folders."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGBA", (width, height), color).save(path, format="PNG")
    return path


@pytest.fixture
def png_factory(tmp_path: Path):
    def _make(name: str, width: int = 20, height: int = 20, color=(0, 0, 0, 255)) -> Path:
        return write_png(tmp_path / name, width, height, color)

    return _make


# ============================================================================
# Playwright Mock Fixtures
# ============================================================================


def make_locator(visible: bool = False, labels: list[str] | None = None) -> MagicMock:
    """Locator mock whose ``.first`` and ``.filter()`` return itself."""
    locator = MagicMock()
    locator.first = locator
    locator.filter.return_value = locator
    locator.is_visible = AsyncMock(return_value=visible)
    locator.click = AsyncMock()
    locator.all_inner_texts = AsyncMock(return_value=labels or [])
    return locator


@pytest.fixture
def mock_page() -> MagicMock:
    """Page mock where no consent button is visible and screenshots write a PNG."""
    page = MagicMock()
    page.set_viewport_size = AsyncMock()
    page.goto = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    page.evaluate = AsyncMock(return_value={"steps": 3, "height": 2400, "capped": False})
    page.mouse.wheel = AsyncMock()

    hidden = make_locator(visible=False)
    page.get_by_role.return_value = hidden
    page.locator.return_value = hidden
    page.get_by_text.return_value = hidden

    async def _screenshot(path: str, full_page: bool = False):
        write_png(Path(path))

    page.screenshot = AsyncMock(side_effect=_screenshot)
    return page


@pytest.fixture
def mock_context(mock_page: MagicMock) -> MagicMock:
    context = MagicMock()
    context.new_page = AsyncMock(return_value=mock_page)
    context.add_init_script = AsyncMock()
    context.close = AsyncMock()
    return context


@pytest.fixture
def mock_browser(mock_context: MagicMock) -> MagicMock:
    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=mock_context)
    browser.close = AsyncMock()
    return browser
