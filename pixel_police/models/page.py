"""Page descriptors and the WordPress REST records they are built from."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

HOMEPAGE_KEY = "homepage"


class PageDescriptor(BaseModel):
    """Identity and locator for one page to capture.

    Identity is ``(post_type, slug)``; the URL is allowed to change between
    phases without the page being treated as a different page.
    """

    model_config = ConfigDict(frozen=True)

    post_type: str
    slug: str
    url: str
    title: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.post_type, self.slug)

    @property
    def label(self) -> str:
        return f"{self.post_type}: {self.slug}"

    @classmethod
    def homepage(cls, site_url: str) -> "PageDescriptor":
        return cls(post_type=HOMEPAGE_KEY, slug=HOMEPAGE_KEY, url=site_url, title="Homepage")


class PostType(BaseModel):
    """A post type as returned by ``/wp-json/wp/v2/types``."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    slug: str
    description: str = ""
    rest_base: Optional[str] = None
    rest_namespace: str = "wp/v2"
    hierarchical: bool = False
    viewable: Optional[bool] = None
    has_archive: Optional[bool | str] = None


class ExcludedPostType(BaseModel):
    post_type: PostType
    reason: str
