"""Shared URL utilities: normalize site URLs, derive folder and file names."""

from __future__ import annotations

import re
from urllib.parse import urlparse

MAX_FILENAME_PART = 50

# Hostname suffixes of local development stacks that serve self-signed certificates.
LOCAL_DEV_SUFFIXES = (
    ".ddev.site",
    ".local",
    ".test",
    ".localhost",
    ".lndo.site",  # Lando
    ".wpe.dev",  # WP Engine local
)


def normalize_site_url(url: str) -> str:
    """Ensure a scheme is present and drop trailing slashes."""
    normalized = url.strip()
    if not normalized.startswith(("http://", "https://")):
        normalized = "https://" + normalized
    return normalized.rstrip("/")


def extract_domain(url: str) -> str:
    """Hostname with dots replaced by hyphens, for run folder naming."""
    try:
        hostname = urlparse(normalize_site_url(url)).hostname
    except ValueError:
        hostname = None
    if not hostname:
        return "unknown-site"
    return hostname.replace(".", "-")


def is_local_dev_host(url: str) -> bool:
    try:
        hostname = urlparse(normalize_site_url(url)).hostname or ""
    except ValueError:
        return False
    return (
        hostname in ("localhost", "127.0.0.1")
        or any(hostname.endswith(suffix) for suffix in LOCAL_DEV_SUFFIXES)
    )


def sanitize_filename(name: str) -> str:
    """Lowercase, collapse anything outside ``[a-z0-9-]`` to one hyphen, trim, truncate.

    Collisions after truncation are not deduplicated.
    """
    cleaned = re.sub(r"[^a-z0-9-]+", "-", name.lower())
    cleaned = re.sub(r"-+", "-", cleaned).strip("-")
    return cleaned[:MAX_FILENAME_PART]


def snapshot_filename(post_type: str, slug: str, viewport: str) -> str:
    return f"{sanitize_filename(post_type)}-{sanitize_filename(slug)}-{viewport}.png"


def diff_filename(post_type: str, slug: str, viewport: str) -> str:
    return f"{post_type}-{slug}-{viewport}-diff.png"
