"""Exception types raised across the screenshot diff pipeline."""

from __future__ import annotations


class PixelPoliceError(Exception):
    """Base exception for the tool."""


class SnapshotArtifactError(PixelPoliceError):
    """A snapshot image is missing, empty, or cannot be decoded."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class SessionStateError(PixelPoliceError):
    """A session was asked to move through an illegal state transition."""


class DiscoveryError(PixelPoliceError):
    """The WordPress REST API could not be queried for post types."""


class NoPagesError(PixelPoliceError):
    """Discovery produced no pages at all, so there is nothing to capture."""
