"""Zenn trending listing collector."""

import re
from datetime import datetime
from urllib.parse import urlparse

from bs4 import Tag

from corptrends.collectors.base import PlatformCollector
from corptrends.collectors.extraction import (
    extract_attribute,
    extract_attribute_by_selectors,
    extract_link,
    extract_link_by_selectors,
    extract_number_by_selectors,
    extract_text,
    extract_text_by_selectors,
    first_match,
)
from corptrends.collectors.models import RawArticleRecord
from corptrends.collectors.platform.constants import (
    ZENN_AUTHOR_IMAGE_SELECTORS,
    ZENN_AUTHOR_LINK_SELECTORS,
    ZENN_AUTHOR_MAX_LENGTH,
    ZENN_AUTHOR_TEXT_SELECTORS,
    ZENN_BASE_URL,
    ZENN_CONTAINER_SELECTORS,
    ZENN_DATE_SELECTORS,
    ZENN_LIKES_SELECTORS,
    ZENN_PUBLICATION_SELECTORS,
    ZENN_TITLE_SELECTORS,
    ZENN_TRENDING_URL,
    ZENN_URL_SELECTORS,
)
from corptrends.collectors.text import (
    clean_author_name,
    extract_domain,
    parse_published_at,
)
from corptrends.store.models import PlatformTag


# /{user}/articles/{slug}; publication articles live under /p/{org}/
_USER_ARTICLE_PATH_RE = re.compile(r"^/([^/@][^/]*)/articles/")
_PUBLICATION_PATH_RE = re.compile(r"^/p/([^/?#]+)")


def _short_text(node: Tag) -> str | None:
    text = extract_text(node)
    if text and len(text) <= ZENN_AUTHOR_MAX_LENGTH:
        return text
    return None


def _publication_slug(link: str | None) -> str | None:
    if not link:
        return None
    match = _PUBLICATION_PATH_RE.match(urlparse(link).path)
    return match.group(1) if match else None


def _publication_name(node: Tag) -> str | None:
    href = extract_attribute(node, "href")
    if href is None or "/articles/" in href:
        return None
    return _short_text(node)


def _date_value(node: Tag) -> str | None:
    return (
        extract_attribute(node, "datetime")
        or extract_attribute(node, "title")
        or extract_text(node)
    )


class ZennCollector(PlatformCollector):
    """Collects Zenn's trending articles.

    Engagement is the likes count. The handle comes from the ``/@user``
    link or, failing that, from the article path; the display name is the
    cleaned author text or avatar alt.
    Articles under a ``/p/{slug}`` publication record it as their
    organization.
    """

    platform = PlatformTag.ZENN
    base_url = ZENN_BASE_URL
    trending_url = ZENN_TRENDING_URL
    container_selectors = ZENN_CONTAINER_SELECTORS

    def _parse_item(self, node: Tag, now: datetime) -> RawArticleRecord:
        title = self._require(
            extract_text_by_selectors(node, ZENN_TITLE_SELECTORS), "title"
        )
        url = self._require(
            extract_link_by_selectors(
                node, ZENN_URL_SELECTORS, self.base_url, contains="/articles/"
            ),
            "url",
        )

        handle = self._extract_handle(node, url)
        display_name = clean_author_name(
            first_match(node, ZENN_AUTHOR_TEXT_SELECTORS, _short_text)
            or extract_attribute_by_selectors(node, ZENN_AUTHOR_IMAGE_SELECTORS, "alt")
        )
        author = handle or display_name

        return RawArticleRecord(
            title=title,
            url=url,
            platform=self.platform,
            author=author,
            author_name=display_name or handle,
            author_url=f"{self.base_url}/@{handle}" if handle else None,
            domain=extract_domain(url),
            engagement_count=extract_number_by_selectors(node, ZENN_LIKES_SELECTORS),
            published_at=parse_published_at(
                first_match(node, ZENN_DATE_SELECTORS, _date_value), now
            ),
            scraped_at=now,
            **self._extract_publication(node, url),
        )

    def _extract_handle(self, node: Tag, url: str) -> str | None:
        href = extract_attribute_by_selectors(node, ZENN_AUTHOR_LINK_SELECTORS, "href")
        if href is not None:
            first_segment = urlparse(href).path.strip("/").split("/")[0]
            return clean_author_name(first_segment)

        match = _USER_ARTICLE_PATH_RE.match(urlparse(url).path)
        if match and match.group(1) != "p":
            return match.group(1)
        return None

    def _extract_publication(self, node: Tag, url: str) -> dict[str, str | None]:
        slug = _publication_slug(url) or first_match(
            node,
            ZENN_PUBLICATION_SELECTORS,
            lambda el: _publication_slug(extract_link(el, self.base_url)),
        )
        if slug is None:
            return {}
        return {
            "organization": slug,
            "organization_name": (
                first_match(node, ZENN_PUBLICATION_SELECTORS, _publication_name)
                or slug
            ),
            "organization_url": f"{self.base_url}/p/{slug}",
        }
