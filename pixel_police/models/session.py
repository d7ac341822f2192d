"""Session aggregate: one before/after run against one site."""

from __future__ import annotations

import time
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from pixel_police.errors import SessionStateError
from pixel_police.models.config import CookieConfig
from pixel_police.models.page import PageDescriptor
from pixel_police.models.snapshot import ComparisonRecord, ErroredComparison, Snapshot
from pixel_police.session.pairing import pair_snapshots

SessionState = Literal[
    "not_started",
    "before_captured",
    "after_captured",
    "diffed",
    "finalized",
]


def _now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class Session(BaseModel):
    """Process-scoped record of a run.

    Lifecycle: ``not_started -> before_captured -> after_captured -> diffed
    -> finalized``. Each transition happens exactly once, in that order.
    """

    site_url: str
    run_root: str
    cookie_config: CookieConfig = Field(default_factory=CookieConfig)
    started_at: str = Field(default_factory=_now)
    ended_at: Optional[str] = None
    state: SessionState = "not_started"

    descriptors: list[PageDescriptor] = Field(default_factory=list)
    before_snapshots: list[Snapshot] = Field(default_factory=list)
    after_snapshots: list[Snapshot] = Field(default_factory=list)
    comparisons: list[ComparisonRecord] = Field(default_factory=list)
    errored: list[ErroredComparison] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_descriptors(self) -> "Session":
        keys = [d.key for d in self.descriptors]
        if len(keys) != len(set(keys)):
            duplicates = sorted({k for k in keys if keys.count(k) > 1})
            raise ValueError(f"Duplicate page identities in session: {duplicates}")
        return self

    def _advance(self, expected: SessionState, new_state: SessionState) -> None:
        if self.state != expected:
            raise SessionStateError(
                f"Cannot move session to '{new_state}' from '{self.state}' (expected '{expected}')"
            )
        self.state = new_state

    def record_before(self, snapshots: list[Snapshot]) -> None:
        self._advance("not_started", "before_captured")
        self.before_snapshots = list(snapshots)

    def record_after(self, snapshots: list[Snapshot]) -> None:
        self._advance("before_captured", "after_captured")
        self.after_snapshots = list(snapshots)

    def record_comparisons(
        self,
        comparisons: list[ComparisonRecord],
        errored: list[ErroredComparison],
    ) -> None:
        self._advance("after_captured", "diffed")
        self.comparisons = list(comparisons)
        self.errored = list(errored)

    def finalize(self) -> None:
        self._advance("diffed", "finalized")
        self.ended_at = _now()

    @property
    def pending(self) -> list[PageDescriptor]:
        """Descriptors captured before but with no usable after-snapshot pair."""
        return pair_snapshots(self.before_snapshots, self.after_snapshots).pending

    @property
    def changed_count(self) -> int:
        return sum(1 for c in self.comparisons if c.changed)

    def summary_line(self) -> str:
        return f"{self.changed_count} of {len(self.comparisons)} pages have visual changes."

    def summary(self) -> dict:
        """Counts for reports. Unchanged, errored, and pending pages stay distinct."""
        snapshots = self.before_snapshots + self.after_snapshots
        return {
            "state": self.state,
            "pages": len(self.descriptors),
            "compared": len(self.comparisons),
            "changed": self.changed_count,
            "unchanged": len(self.comparisons) - self.changed_count,
            "errored": len({e.descriptor.key for e in self.errored}),
            "pending": len(self.pending),
            "capture_errors": sum(1 for s in snapshots if s.error),
            "dimension_changes": sum(1 for c in self.comparisons if c.dimensions_differ),
            "message": self.summary_line(),
        }
