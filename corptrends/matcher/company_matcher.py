"""Company identification for scraped articles."""

import re
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass

import structlog

from corptrends.collectors.models import RawArticleRecord
from corptrends.store.models import Article, Company, PlatformTag
from corptrends.store.store import StateStore


logger = structlog.get_logger()


# zenn.dev/{org}/articles/... and zenn.dev/p/{org}/articles/...
_ZENN_ORG_RE = re.compile(r"zenn\.dev/(?:p/)?([^/@?#][^/?#]*)/articles/")

_USERNAME_PLATFORMS = frozenset({PlatformTag.QIITA.value, PlatformTag.ZENN.value})

# Slugs shorter than this get a generic prefix in generated domains
_MIN_SLUG_LENGTH = 3


@dataclass(frozen=True)
class MatchFields:
    """Article fields consulted by the matcher."""

    url: str = ""
    domain: str = ""
    title: str = ""
    author: str = ""
    author_name: str = ""
    platform: str = ""
    organization: str = ""
    organization_name: str = ""

    @classmethod
    def from_record(cls, record: RawArticleRecord) -> "MatchFields":
        """Build match fields from a scraped record."""
        return cls(
            url=record.url,
            domain=record.domain or "",
            title=record.title,
            author=record.author or "",
            author_name=record.author_name or "",
            platform=record.platform.value,
            organization=record.organization or "",
            organization_name=record.organization_name or "",
        )

    @classmethod
    def from_article(cls, article: Article) -> "MatchFields":
        """Build match fields from a stored article."""
        return cls(
            url=article.url,
            domain=article.domain or "",
            title=article.title,
            author=article.author or "",
            author_name=article.author_name or "",
            platform=article.platform,
            organization=article.organization or "",
            organization_name=article.organization_name or "",
        )

    @property
    def is_empty(self) -> bool:
        """Check if no field carries a value."""
        return not any(
            (self.url, self.domain, self.title, self.author, self.author_name)
        )


@dataclass(frozen=True)
class CompanyMatch:
    """A successful identification.

    Attributes:
        company: The identified company.
        strategy: Name of the winning strategy.
        matched_field: The field value or pattern that matched.
    """

    company: Company
    strategy: str
    matched_field: str


def clean_username(username: str) -> str:
    """Strip surrounding whitespace and leading ``@``/``/`` from a handle."""
    return username.strip().lstrip("@/").strip()


def extract_zenn_organization(url: str) -> str | None:
    """Return the organization slug of a Zenn article URL."""
    match = _ZENN_ORG_RE.search(url)
    if match is None or match.group(1) == "p":
        return None
    return match.group(1)


def company_slug(name: str) -> str:
    """Lowercase alphanumeric slug of an organization name, or ``auto``."""
    slug = re.sub(r"[^a-z0-9]", "", name.lower())
    return slug if len(slug) >= _MIN_SLUG_LENGTH else "auto"


def keyword_pattern(keyword: str) -> re.Pattern[str]:
    """Compile the whole-word pattern for a company keyword."""
    return re.compile(rf"\b{re.escape(keyword.lower())}\b", re.IGNORECASE)


class CompanyMatcher:
    """Resolves an article to at most one active company.

    Strategies run in priority order and the first hit wins:

    1. URL pattern: ``url_patterns`` substrings, then the Zenn organization
       of the article URL against ``zenn_organizations``.
    2. Domain: exact ``domain``, then ``domain_patterns``.
    3. Username: Qiita/Zenn handles against the platform username field.
    4. Keyword: whole-word ``keywords`` in title and author fields.
    """

    def __init__(self, companies: Iterable[Company], run_id: str = "") -> None:
        """Initialize the matcher.

        Args:
            companies: Candidate companies; inactive ones are ignored.
            run_id: Run identifier for logging.
        """
        self._companies = [c for c in companies if c.is_active]
        self._keyword_patterns: dict[int, list[tuple[str, re.Pattern[str]]]] = {
            index: [(kw, keyword_pattern(kw)) for kw in company.keywords if kw.strip()]
            for index, company in enumerate(self._companies)
        }
        self._strategies: list[
            tuple[str, Callable[[MatchFields], CompanyMatch | None]]
        ] = [
            ("url_pattern", self._match_url_pattern),
            ("domain", self._match_domain),
            ("username", self._match_username),
            ("keyword", self._match_keyword),
        ]
        self._log = logger.bind(component="matcher", run_id=run_id)

    @classmethod
    def from_store(cls, store: StateStore, run_id: str = "") -> "CompanyMatcher":
        """Build a matcher over the store's active companies."""
        return cls(store.list_companies(active_only=True), run_id=run_id)

    @property
    def companies(self) -> list[Company]:
        """Get the active companies considered by the matcher."""
        return list(self._companies)

    def identify_company(self, fields: MatchFields) -> Company | None:
        """Identify the company behind an article.

        Args:
            fields: Article fields.

        Returns:
            The matched company, or None.
        """
        match = self.match(fields)
        return match.company if match else None

    def identify_or_create_company(
        self, fields: MatchFields, store: StateStore
    ) -> Company | None:
        """Identify the company, falling back to the article's organization.

        When no strategy of :meth:`identify_company` matches and the article
        was posted under an organization, the organization slug is compared
        with the platform username and ``zenn_organizations`` of each active
        company. Failing that, the company named after the organization is
        reused, or a new inactive one is stored. Matching ignores inactive
        companies until they are activated.

        Args:
            fields: Article fields.
            store: Store the new company is written to.

        Returns:
            The company, or None when nothing matched and the article has
            no organization.
        """
        company = self.identify_company(fields)
        if company is not None:
            return company
        if not (fields.organization or fields.organization_name):
            return None

        match = self._match_organization(fields)
        if match is not None:
            self._log.info(
                "company_matched",
                strategy=match.strategy,
                matched_field=match.matched_field,
                company_id=match.company.id,
                company_name=match.company.name,
                url=fields.url,
            )
            return match.company
        return self._create_from_organization(fields, store)

    def match(self, fields: MatchFields) -> CompanyMatch | None:
        """Identify the company and report which strategy matched.

        Args:
            fields: Article fields.

        Returns:
            CompanyMatch, or None if no strategy matched.
        """
        if fields.is_empty or not self._companies:
            return None

        for _, strategy in self._strategies:
            result = strategy(fields)
            if result is not None:
                self._log.info(
                    "company_matched",
                    strategy=result.strategy,
                    matched_field=result.matched_field,
                    company_id=result.company.id,
                    company_name=result.company.name,
                    url=fields.url,
                )
                return result
        return None

    def _match_url_pattern(self, fields: MatchFields) -> CompanyMatch | None:
        if not fields.url:
            return None
        for company in self._companies:
            for pattern in company.url_patterns:
                if pattern and pattern in fields.url:
                    return CompanyMatch(company, "url_pattern", pattern)

        if "zenn.dev/" in fields.url:
            organization = extract_zenn_organization(fields.url)
            if organization is not None:
                for company in self._companies:
                    if organization in company.zenn_organizations:
                        return CompanyMatch(company, "zenn_organization", organization)
        return None

    def _match_domain(self, fields: MatchFields) -> CompanyMatch | None:
        if not fields.domain:
            return None
        domain = fields.domain.lower()
        for company in self._companies:
            if company.domain.lower() == domain:
                return CompanyMatch(company, "domain", fields.domain)
        for company in self._companies:
            for pattern in company.domain_patterns:
                if pattern and (domain == pattern.lower() or pattern.lower() in domain):
                    return CompanyMatch(company, "domain_pattern", pattern)
        return None

    def _match_username(self, fields: MatchFields) -> CompanyMatch | None:
        if fields.platform not in _USERNAME_PLATFORMS:
            return None

        candidates: list[str] = []
        for handle in (fields.author, fields.author_name):
            if handle:
                candidates.extend(
                    c for c in (clean_username(handle), handle) if c not in candidates
                )
        if not candidates:
            return None

        for company in self._companies:
            username = (
                company.qiita_username
                if fields.platform == PlatformTag.QIITA.value
                else company.zenn_username
            )
            if username and username in candidates:
                return CompanyMatch(company, "username", username)
        return None

    def _match_keyword(self, fields: MatchFields) -> CompanyMatch | None:
        haystack = f"{fields.title} {fields.author} {fields.author_name}".lower()
        if not haystack.strip():
            return None
        for index, company in enumerate(self._companies):
            for keyword, pattern in self._keyword_patterns[index]:
                if pattern.search(haystack):
                    return CompanyMatch(company, "keyword", keyword)
        return None

    def _match_organization(self, fields: MatchFields) -> CompanyMatch | None:
        slug = fields.organization
        if not slug or fields.platform not in _USERNAME_PLATFORMS:
            return None
        is_qiita = fields.platform == PlatformTag.QIITA.value
        for company in self._companies:
            if is_qiita:
                handles = [company.qiita_username]
            else:
                handles = [company.zenn_username, *company.zenn_organizations]
            if slug in handles:
                return CompanyMatch(company, "organization", slug)
        return None

    def _create_from_organization(
        self, fields: MatchFields, store: StateStore
    ) -> Company:
        name = fields.organization_name or fields.organization
        for existing in store.list_companies(active_only=False):
            if existing.name == name:
                self._log.info(
                    "company_exists", company_id=existing.id, company_name=name
                )
                return existing

        organization = fields.organization or None
        is_qiita = fields.platform == PlatformTag.QIITA.value
        is_zenn = fields.platform == PlatformTag.ZENN.value
        company = store.upsert_company(
            Company(
                name=name,
                domain=(
                    f"{company_slug(organization or name)}-{uuid.uuid4().hex[:8]}"
                    ".example.com"
                ),
                description=f"Created from {fields.platform} organization {name}",
                qiita_username=organization if is_qiita else None,
                zenn_username=organization if is_zenn else None,
                zenn_organizations=[organization] if is_zenn and organization else [],
                is_active=False,
            )
        )
        self._log.info(
            "company_created",
            company_id=company.id,
            company_name=company.name,
            domain=company.domain,
            platform=fields.platform,
            url=fields.url,
        )
        return company
