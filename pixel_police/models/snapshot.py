"""Snapshot, diff, and comparison records produced during a session."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, computed_field, model_validator

from pixel_police.models.config import Phase, ViewportName
from pixel_police.models.page import PageDescriptor


class Snapshot(BaseModel):
    """One descriptor captured at one viewport in one phase.

    A snapshot exists even when the capture failed; ``error`` then holds the
    cause and ``image_path`` may point at nothing.
    """

    descriptor: PageDescriptor
    viewport: ViewportName
    phase: Phase
    image_path: str  # relative to the run root
    captured_at: str = ""
    error: Optional[str] = None

    @property
    def key(self) -> tuple[str, str]:
        return self.descriptor.key

    def resolve(self, run_root: Path) -> Path:
        return run_root / self.image_path

    def has_artifact(self, run_root: Path) -> bool:
        path = self.resolve(run_root)
        return path.exists() and path.stat().st_size > 0


class Dimensions(BaseModel):
    width: int
    height: int

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


class DiffResult(BaseModel):
    diff_pixels: int = Field(ge=0)
    total_pixels: int = Field(gt=0)
    diff_path: str = ""
    dimensions_differ: bool = False
    before_dimensions: Dimensions
    after_dimensions: Dimensions

    @model_validator(mode="after")
    def _check_counts(self) -> "DiffResult":
        if self.diff_pixels > self.total_pixels:
            raise ValueError(
                f"diff_pixels ({self.diff_pixels}) exceeds total_pixels ({self.total_pixels})"
            )
        return self

    @computed_field
    @property
    def diff_percentage(self) -> float:
        return 100 * self.diff_pixels / self.total_pixels

    @property
    def changed(self) -> bool:
        return self.diff_pixels > 0


class ViewportPair(BaseModel):
    before: Snapshot
    after: Snapshot


class ComparisonRecord(BaseModel):
    """Before/after/diff for one descriptor across both viewports."""

    descriptor: PageDescriptor
    desktop: ViewportPair
    mobile: ViewportPair
    desktop_diff: DiffResult
    mobile_diff: DiffResult

    @property
    def changed(self) -> bool:
        return self.desktop_diff.changed or self.mobile_diff.changed

    @property
    def dimensions_differ(self) -> bool:
        return self.desktop_diff.dimensions_differ or self.mobile_diff.dimensions_differ


class ErroredComparison(BaseModel):
    """A paired descriptor whose diff could not be computed."""

    descriptor: PageDescriptor
    viewport: Optional[ViewportName] = None
    reason: str
