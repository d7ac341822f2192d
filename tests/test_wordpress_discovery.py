"""Tests for WordPress REST discovery against a mocked transport."""

import random

import httpx
import pytest

from pixel_police.discovery.wordpress import (
    USER_AGENT,
    build_descriptor_list,
    check_api_access,
    classify_post_type,
    create_client,
    fetch_post_types,
    fetch_posts,
)
from pixel_police.errors import DiscoveryError
from pixel_police.models.page import PostType

SITE = "https://example.com"

TYPES = {
    "post": {"name": "Posts", "slug": "post", "rest_base": "posts"},
    "page": {"name": "Pages", "slug": "page", "rest_base": "pages"},
    "attachment": {"name": "Media", "slug": "attachment", "rest_base": "media"},
    "wp_block": {"name": "Patterns", "slug": "wp_block", "rest_base": "blocks"},
    "product_variation": {"name": "Variations", "slug": "product_variation", "rest_base": None},
    "dynamic": {"name": "Dynamic", "slug": "dynamic", "rest_base": "items/(?P<parent>[\\d]+)/children"},
    "custom_menu": {"name": "Menus", "slug": "custom_menu", "rest_base": "menu-items"},
}


def _posts(prefix: str, count: int) -> list[dict]:
    return [
        {
            "id": i,
            "slug": f"{prefix}-{i}",
            "link": f"{SITE}/{prefix}-{i}/",
            "title": {"rendered": f"{prefix.title()} &#8220;{i}&#8221;"},
            "type": prefix,
        }
        for i in range(count)
    ]


def make_client(routes: dict, seen: list | None = None) -> httpx.AsyncClient:
    """Client whose transport answers from ``routes`` (path -> (status, json))."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if request.url.path not in routes:
            return httpx.Response(404, json={"code": "rest_no_route"})
        status, body = routes[request.url.path]
        return httpx.Response(status, json=body)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestClassifyPostType:
    @pytest.mark.parametrize("slug,expected", [
        ("post", None),
        ("page", None),
        ("attachment", "System post type"),
        ("wp_block", "System post type"),
        ("product_variation", "No REST base"),
        ("dynamic", "Dynamic REST endpoint"),
        ("custom_menu", "System REST endpoint"),
    ])
    def test_reasons(self, slug, expected):
        assert classify_post_type(PostType.model_validate(TYPES[slug])) == expected


class TestCreateClient:
    @pytest.mark.asyncio
    async def test_headers(self):
        async with create_client(SITE) as client:
            assert client.headers["Accept"] == "application/json"
            assert client.headers["User-Agent"] == USER_AGENT


class TestCheckApiAccess:
    @pytest.mark.asyncio
    async def test_reachable(self):
        async with make_client({"/wp-json/": (200, {"name": "Site"})}) as client:
            assert await check_api_access(client, SITE) is True

    @pytest.mark.asyncio
    async def test_not_found(self):
        async with make_client({}) as client:
            assert await check_api_access(client, SITE) is False

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            assert await check_api_access(client, SITE) is False


class TestFetchPostTypes:
    @pytest.mark.asyncio
    async def test_splits_included_and_excluded(self):
        async with make_client({"/wp-json/wp/v2/types": (200, TYPES)}) as client:
            included, excluded = await fetch_post_types(client, SITE)

        assert [t.slug for t in included] == ["post", "page"]
        assert {e.post_type.slug: e.reason for e in excluded} == {
            "attachment": "System post type",
            "wp_block": "System post type",
            "product_variation": "No REST base",
            "dynamic": "Dynamic REST endpoint",
            "custom_menu": "System REST endpoint",
        }

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        async with make_client({"/wp-json/wp/v2/types": (500, {})}) as client:
            with pytest.raises(DiscoveryError):
                await fetch_post_types(client, SITE)


class TestFetchPosts:
    @pytest.mark.asyncio
    async def test_query_and_link_filter(self):
        posts = _posts("post", 3) + [{"id": 99, "slug": "draft", "link": "", "title": {"rendered": ""}}]
        seen = []
        async with make_client({"/wp-json/wp/v2/posts": (200, posts)}, seen) as client:
            result = await fetch_posts(client, SITE, PostType.model_validate(TYPES["post"]), count=20)

        assert [p["slug"] for p in result] == ["post-0", "post-1", "post-2"]
        params = seen[0].url.params
        assert params["per_page"] == "20"
        assert params["_fields"] == "id,slug,link,title,type"

    @pytest.mark.asyncio
    async def test_failure_returns_empty(self):
        async with make_client({}) as client:
            assert await fetch_posts(client, SITE, PostType.model_validate(TYPES["post"])) == []


class TestBuildDescriptorList:
    """Tests for build_descriptor_list."""

    @pytest.mark.asyncio
    async def test_homepage_first_then_sampled_posts(self):
        routes = {
            "/wp-json/wp/v2/types": (200, TYPES),
            "/wp-json/wp/v2/posts": (200, _posts("post", 12)),
            "/wp-json/wp/v2/pages": (200, _posts("page", 2)),
        }
        async with make_client(routes) as client:
            descriptors = await build_descriptor_list(
                client, SITE + "/", posts_per_type=5, rng=random.Random(7),
            )

        assert descriptors[0].key == ("homepage", "homepage")
        assert descriptors[0].url == SITE
        assert descriptors[0].title == "Homepage"
        post_types = [d.post_type for d in descriptors[1:]]
        assert post_types == ["post"] * 5 + ["page"] * 2
        assert len({d.key for d in descriptors}) == len(descriptors)

    @pytest.mark.asyncio
    async def test_titles_unescaped(self):
        routes = {"/wp-json/wp/v2/pages": (200, _posts("page", 1))}
        async with make_client(routes) as client:
            descriptors = await build_descriptor_list(
                client, SITE, selected_post_types=[PostType.model_validate(TYPES["page"])],
            )
        assert descriptors[1].title == "Page “0”"

    @pytest.mark.asyncio
    async def test_seeded_sampling_is_reproducible(self):
        routes = {
            "/wp-json/wp/v2/types": (200, {"post": TYPES["post"]}),
            "/wp-json/wp/v2/posts": (200, _posts("post", 20)),
        }
        async with make_client(routes) as client:
            first = await build_descriptor_list(client, SITE, rng=random.Random(1))
            second = await build_descriptor_list(client, SITE, rng=random.Random(1))
        assert first == second

    @pytest.mark.asyncio
    async def test_duplicate_identity_dropped(self):
        duplicated = _posts("post", 1) * 2
        routes = {"/wp-json/wp/v2/posts": (200, duplicated)}
        async with make_client(routes) as client:
            descriptors = await build_descriptor_list(
                client, SITE, selected_post_types=[PostType.model_validate(TYPES["post"])],
            )
        assert [d.slug for d in descriptors] == ["homepage", "post-0"]

    @pytest.mark.asyncio
    async def test_falls_back_to_homepage(self):
        async with make_client({"/wp-json/wp/v2/types": (403, {})}) as client:
            descriptors = await build_descriptor_list(client, SITE)
        assert [d.key for d in descriptors] == [("homepage", "homepage")]

    @pytest.mark.asyncio
    async def test_empty_selection_is_homepage_only(self):
        seen = []
        async with make_client({}, seen) as client:
            descriptors = await build_descriptor_list(client, SITE, selected_post_types=[])
        assert len(descriptors) == 1
        assert seen == []
