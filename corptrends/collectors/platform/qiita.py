"""Qiita trending listing collector."""

import re
from datetime import datetime
from urllib.parse import urlparse

from bs4 import Tag

from corptrends.collectors.base import PlatformCollector
from corptrends.collectors.extraction import (
    extract_attribute,
    extract_attribute_by_selectors,
    extract_link_by_selectors,
    extract_number_by_selectors,
    extract_text,
    extract_text_by_selectors,
    first_match,
)
from corptrends.collectors.models import RawArticleRecord
from corptrends.collectors.platform.constants import (
    QIITA_AUTHOR_SELECTORS,
    QIITA_BASE_URL,
    QIITA_CONTAINER_SELECTORS,
    QIITA_DATE_SELECTORS,
    QIITA_LIKES_FALLBACK_SELECTORS,
    QIITA_LIKES_MAX_DIGITS,
    QIITA_LIKES_PRIORITY_SELECTORS,
    QIITA_ORGANIZATION_LINK_SELECTORS,
    QIITA_ORGANIZATION_NAME_SELECTORS,
    QIITA_TITLE_SELECTORS,
    QIITA_TRENDING_URL,
    QIITA_URL_SELECTORS,
)
from corptrends.collectors.text import (
    clean_author_name,
    extract_domain,
    parse_published_at,
)
from corptrends.store.models import PlatformTag


_ORGANIZATION_PATH_RE = re.compile(r"/organizations/([^/?#]+)")


def _footer_count(node: Tag) -> int | None:
    text = extract_text(node)
    if text and text.isdigit() and len(text) <= QIITA_LIKES_MAX_DIGITS:
        return int(text)
    return None


def _date_value(node: Tag) -> str | None:
    return extract_attribute(node, "datetime") or extract_attribute(node, "title")


class QiitaCollector(PlatformCollector):
    """Collects Qiita's trending articles.

    Engagement is the LGTM (likes) count. The author handle comes from the
    ``/@user`` profile link. Articles posted under an organization also
    record that organization.
    """

    platform = PlatformTag.QIITA
    base_url = QIITA_BASE_URL
    trending_url = QIITA_TRENDING_URL
    container_selectors = QIITA_CONTAINER_SELECTORS

    def _parse_item(self, node: Tag, now: datetime) -> RawArticleRecord:
        title = self._require(
            extract_text_by_selectors(node, QIITA_TITLE_SELECTORS), "title"
        )
        url = self._require(
            extract_link_by_selectors(
                node, QIITA_URL_SELECTORS, self.base_url, contains="/items/"
            ),
            "url",
        )
        author = self._extract_author(node)

        return RawArticleRecord(
            title=title,
            url=url,
            platform=self.platform,
            author=author,
            author_name=author,
            author_url=f"{self.base_url}/{author}" if author else None,
            domain=extract_domain(url),
            engagement_count=self._extract_likes(node),
            published_at=parse_published_at(
                first_match(node, QIITA_DATE_SELECTORS, _date_value), now
            ),
            scraped_at=now,
            **self._extract_organization(node, url),
        )

    def _extract_likes(self, node: Tag) -> int:
        likes = first_match(node, QIITA_LIKES_PRIORITY_SELECTORS, _footer_count)
        if likes is not None:
            return likes
        return extract_number_by_selectors(node, QIITA_LIKES_FALLBACK_SELECTORS)

    def _extract_author(self, node: Tag) -> str | None:
        href = extract_attribute_by_selectors(node, QIITA_AUTHOR_SELECTORS, "href")
        if href is None:
            return None
        first_segment = urlparse(href).path.strip("/").split("/")[0]
        return clean_author_name(first_segment)

    def _extract_organization(self, node: Tag, url: str) -> dict[str, str | None]:
        """Read the organization an article was posted under, if any.

        The slug comes from the ``/organizations/{slug}`` link, falling back
        to the article URL. The name falls back to the slug.
        """
        link = extract_link_by_selectors(
            node,
            QIITA_ORGANIZATION_LINK_SELECTORS,
            self.base_url,
            contains="/organizations/",
        )
        match = _ORGANIZATION_PATH_RE.search(urlparse(link or url).path)
        if match is None:
            return {}
        slug = match.group(1)
        return {
            "organization": slug,
            "organization_name": (
                extract_text_by_selectors(node, QIITA_ORGANIZATION_NAME_SELECTORS)
                or slug
            ),
            "organization_url": link or f"{self.base_url}/organizations/{slug}",
        }
