"""Configuration models for the screenshot diff tool."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator


class ViewportConfig(BaseModel):
    name: str
    width: int
    height: int

    def as_size(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}


# Fixed presets. Capture order is desktop first, then mobile.
VIEWPORTS: dict[str, ViewportConfig] = {
    "desktop": ViewportConfig(name="desktop", width=1920, height=1080),
    "mobile": ViewportConfig(name="mobile", width=390, height=844),
}

ViewportName = Literal["desktop", "mobile"]
Phase = Literal["before", "after"]

# Consent button labels tried in "auto" mode, German first, then English.
COMMON_CONSENT_TEXTS: list[str] = [
    "Alle akzeptieren",
    "Alles akzeptieren",
    "Akzeptieren",
    "Zustimmen",
    "OK",
    "Einverstanden",
    "Verstanden",
    "Alle Cookies akzeptieren",
    "Accept",
    "Accept All",
    "Accept all cookies",
    "Agree",
    "I Agree",
    "Allow",
    "Allow all",
    "Okay",
    "Got it",
]


class CookieConfig(BaseModel):
    mode: Literal["auto", "custom", "none"] = "auto"
    custom_text: Optional[str] = None

    @model_validator(mode="after")
    def _require_custom_text(self) -> "CookieConfig":
        if self.mode == "custom" and not (self.custom_text or "").strip():
            raise ValueError("custom cookie mode requires custom_text")
        return self

    def candidate_texts(self) -> list[str]:
        """Button labels to look for, in the order they should be tried."""
        if self.mode == "none":
            return []
        if self.mode == "custom":
            return [self.custom_text.strip()]
        return list(COMMON_CONSENT_TEXTS)


class CaptureConfig(BaseModel):
    navigation_timeout_ms: int = 60000
    network_idle_timeout_ms: int = 30000

    # Lazy-load scrolling
    scroll_step_ratio: float = Field(default=0.8, gt=0, le=1)
    scroll_pause_ms: int = 100
    bottom_pause_ms: int = 200
    top_pause_ms: int = 100
    max_scroll_steps: int = 250
    settle_ms: int = 500

    # Overlay dismissal
    banner_probe_scroll_px: int = 10
    banner_probe_pause_ms: int = 500
    dismiss_click_timeout_ms: int = 1000
    dismiss_animation_ms: int = 1500

    headless: bool = True
    user_agent: Optional[str] = None


class DiffConfig(BaseModel):
    threshold: float = Field(default=0.1, ge=0, le=1)  # lower = more sensitive
    diff_color: tuple[int, int, int] = (255, 0, 0)
    alpha: float = Field(default=0.1, ge=0, le=1)  # blend factor for unchanged pixels
    include_aa: bool = False


class ToolConfig(BaseModel):
    # Target
    site_url: str = ""

    # Output
    output_dir: str = "output"
    report_formats: list[str] = Field(default_factory=lambda: ["html", "json"])
    open_report: bool = True

    # Discovery
    posts_per_type: int = 5
    posts_fetch_count: int = 20
    post_types: list[str] = Field(default_factory=list)

    cookie: CookieConfig = Field(default_factory=CookieConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    diff: DiffConfig = Field(default_factory=DiffConfig)

    @classmethod
    def load(cls, path: str | Path) -> "ToolConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
