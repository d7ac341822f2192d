"""WordPress REST API discovery: public post types and a sample of their posts."""

from __future__ import annotations

import html
import logging
import random
from typing import Any, Optional

import httpx

from pixel_police.errors import DiscoveryError
from pixel_police.models.page import ExcludedPostType, PageDescriptor, PostType
from pixel_police.url_utils import is_local_dev_host, normalize_site_url

logger = logging.getLogger(__name__)

USER_AGENT = "Pixel-Police-Screenshot-Diff/1.0"

# Built-in post types with no public pages of their own.
EXCLUDED_POST_TYPES = {
    "attachment",
    "nav_menu_item",
    "wp_block",
    "wp_template",
    "wp_template_part",
    "wp_navigation",
    "wp_font_family",
    "wp_font_face",
    "wp_global_styles",
}

EXCLUDED_REST_BASES = {
    "media",
    "blocks",
    "templates",
    "template-parts",
    "global-styles",
    "navigation",
    "font-families",
    "menu-items",
}


def create_client(site_url: str, timeout: float = 30.0) -> httpx.AsyncClient:
    """HTTP client for one run.

    Certificate checks are relaxed only on this client, and only for local
    development hosts.
    """
    return httpx.AsyncClient(
        headers={"Accept": "application/json", "User-Agent": USER_AGENT},
        timeout=timeout,
        follow_redirects=True,
        verify=not is_local_dev_host(site_url),
    )


async def check_api_access(client: httpx.AsyncClient, site_url: str) -> bool:
    try:
        response = await client.get(f"{normalize_site_url(site_url)}/wp-json/")
        return response.is_success
    except httpx.HTTPError as e:
        logger.debug("REST API check failed: %s", e)
        return False


def classify_post_type(post_type: PostType) -> Optional[str]:
    """Return an exclusion reason, or None if the type has public pages."""
    if not post_type.rest_base:
        return "No REST base"
    if "(?P<" in post_type.rest_base:
        return "Dynamic REST endpoint"
    if post_type.slug in EXCLUDED_POST_TYPES:
        return "System post type"
    if post_type.rest_base in EXCLUDED_REST_BASES:
        return "System REST endpoint"
    return None


async def fetch_post_types(
    client: httpx.AsyncClient, site_url: str,
) -> tuple[list[PostType], list[ExcludedPostType]]:
    """Fetch post types and split them into included and excluded."""
    api_url = f"{normalize_site_url(site_url)}/wp-json/wp/v2/types"
    logger.info("Fetching post types from: %s", api_url)
    try:
        response = await client.get(api_url)
        response.raise_for_status()
        data: dict[str, Any] = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise DiscoveryError(f"Failed to fetch post types: {e}") from e

    included: list[PostType] = []
    excluded: list[ExcludedPostType] = []
    for raw in data.values():
        post_type = PostType.model_validate(raw)
        reason = classify_post_type(post_type)
        if reason:
            excluded.append(ExcludedPostType(post_type=post_type, reason=reason))
        else:
            included.append(post_type)

    logger.info("Found %d public post types: %s",
                len(included), ", ".join(t.slug for t in included))
    if excluded:
        logger.debug("Excluded %d system post types:", len(excluded))
        for item in excluded:
            logger.debug("  - %s (%s)", item.post_type.slug, item.reason)
    return included, excluded


async def fetch_posts(
    client: httpx.AsyncClient, site_url: str, post_type: PostType, count: int = 20,
) -> list[dict]:
    """Fetch up to ``count`` posts of a type that have a public link."""
    api_url = f"{normalize_site_url(site_url)}/wp-json/wp/v2/{post_type.rest_base}"
    params = {"per_page": count, "_fields": "id,slug,link,title,type"}
    logger.debug("Fetching %s posts from: %s", post_type.slug, api_url)
    try:
        response = await client.get(api_url, params=params)
    except httpx.HTTPError as e:
        logger.warning("Error fetching %s posts: %s", post_type.slug, e)
        return []
    if not response.is_success:
        logger.warning("Failed to fetch %s posts: %d", post_type.slug, response.status_code)
        return []
    try:
        posts = response.json()
    except ValueError as e:
        logger.warning("Invalid JSON for %s posts: %s", post_type.slug, e)
        return []

    with_links = [
        p for p in posts
        if isinstance(p, dict) and str(p.get("link") or "").startswith("http") and p.get("slug")
    ]
    logger.info("Found %d %s posts with public URLs", len(with_links), post_type.slug)
    return with_links


def _post_title(post: dict) -> str:
    title = post.get("title")
    if isinstance(title, dict):
        title = title.get("rendered", "")
    return html.unescape(str(title or post.get("slug", "")))


async def build_descriptor_list(
    client: httpx.AsyncClient,
    site_url: str,
    posts_per_type: int = 5,
    selected_post_types: Optional[list[PostType]] = None,
    fetch_count: int = 20,
    rng: Optional[random.Random] = None,
) -> list[PageDescriptor]:
    """Homepage first, then a random sample of posts per post type.

    Falls back to the homepage alone if the REST API cannot be read.
    """
    rng = rng or random.Random()
    site_url = normalize_site_url(site_url)
    descriptors = [PageDescriptor.homepage(site_url)]
    seen = {descriptors[0].key}

    try:
        post_types = selected_post_types
        if post_types is None:
            post_types, _ = await fetch_post_types(client, site_url)

        for post_type in post_types:
            posts = await fetch_posts(client, site_url, post_type, fetch_count)
            for post in rng.sample(posts, min(posts_per_type, len(posts))):
                descriptor = PageDescriptor(
                    post_type=post_type.slug,
                    slug=str(post["slug"]),
                    url=post["link"],
                    title=_post_title(post),
                )
                if descriptor.key in seen:
                    logger.debug("Skipping duplicate page %s", descriptor.label)
                    continue
                seen.add(descriptor.key)
                descriptors.append(descriptor)
    except DiscoveryError as e:
        logger.warning("Failed to fetch from WordPress REST API, falling back to homepage only")
        logger.warning("Error: %s", e)

    logger.info("Total URLs to screenshot: %d", len(descriptors))
    return descriptors
