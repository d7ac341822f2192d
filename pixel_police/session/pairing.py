"""Pairing of before/after snapshot sets by page identity."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pixel_police.models.config import VIEWPORTS
from pixel_police.models.page import PageDescriptor
from pixel_police.models.snapshot import Snapshot, ViewportPair

logger = logging.getLogger(__name__)


@dataclass
class PagePair:
    descriptor: PageDescriptor
    viewports: dict[str, ViewportPair]


@dataclass
class PairingResult:
    pairs: list[PagePair] = field(default_factory=list)
    pending: list[PageDescriptor] = field(default_factory=list)
    unmatched_after: list[tuple[str, str]] = field(default_factory=list)


def _group(snapshots: list[Snapshot]) -> dict[tuple[str, str], dict[str, Snapshot]]:
    grouped: dict[tuple[str, str], dict[str, Snapshot]] = {}
    for snap in snapshots:
        grouped.setdefault(snap.key, {})[snap.viewport] = snap
    return grouped


def pair_snapshots(before: list[Snapshot], after: list[Snapshot]) -> PairingResult:
    """Match before- and after-snapshots on ``(post_type, slug)``.

    URLs are deliberately ignored: a permalink change between phases still
    refers to the same page. Output order follows the before-set. Pages
    without both viewports on both sides are reported as pending, and
    after-only pages are ignored.
    """
    before_by_key = _group(before)
    after_by_key = _group(after)
    descriptors = {snap.key: snap.descriptor for snap in before}

    result = PairingResult()
    for key, before_views in before_by_key.items():
        after_views = after_by_key.get(key, {})
        if not all(name in before_views and name in after_views for name in VIEWPORTS):
            result.pending.append(descriptors[key])
            continue
        result.pairs.append(PagePair(
            descriptor=descriptors[key],
            viewports={
                name: ViewportPair(before=before_views[name], after=after_views[name])
                for name in VIEWPORTS
            },
        ))

    result.unmatched_after = [key for key in after_by_key if key not in before_by_key]
    if result.unmatched_after:
        logger.debug("Ignoring %d after-only page(s): %s",
                     len(result.unmatched_after), result.unmatched_after)
    return result
