"""Company catalog schema."""

from typing import Annotated

from pydantic import Field, field_validator, model_validator

from corptrends.data_model import StrictBaseModel
from corptrends.store.models import Company


class CompanyConfig(StrictBaseModel):
    """Configuration for a single company.

    Attributes:
        name: Display name.
        domain: Primary domain (unique across the catalog).
        description: Optional free text.
        domain_patterns: Additional domains owned by the company.
        url_patterns: URL substrings such as a tech blog host.
        keywords: Title keywords used as the last matching resort.
        qiita_username: Qiita organization or account handle.
        zenn_username: Zenn account handle.
        zenn_organizations: Zenn publication slugs.
        is_active: Whether the company takes part in matching and ranking.
    """

    name: Annotated[str, Field(min_length=1, max_length=200)]
    domain: Annotated[str, Field(min_length=1, max_length=253)]
    description: str | None = None
    domain_patterns: list[str] = Field(default_factory=list)
    url_patterns: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    qiita_username: str | None = None
    zenn_username: str | None = None
    zenn_organizations: list[str] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        """Ensure the domain is a bare lowercase host."""
        if "://" in v or "/" in v:
            msg = "Domain must be a host name without scheme or path"
            raise ValueError(msg)
        return v.lower().removeprefix("www.")

    @model_validator(mode="after")
    def validate_keywords_non_empty(self) -> "CompanyConfig":
        """Ensure keywords and patterns contain non-empty strings."""
        for values in (self.keywords, self.url_patterns, self.domain_patterns):
            for value in values:
                if not value.strip():
                    msg = "Keywords and patterns must be non-empty strings"
                    raise ValueError(msg)
        return self

    def to_company(self) -> Company:
        """Convert to a store Company (without id)."""
        return Company(
            name=self.name,
            domain=self.domain,
            description=self.description,
            domain_patterns=list(self.domain_patterns),
            url_patterns=list(self.url_patterns),
            keywords=list(self.keywords),
            qiita_username=self.qiita_username,
            zenn_username=self.zenn_username,
            zenn_organizations=list(self.zenn_organizations),
            is_active=self.is_active,
        )


class CompanyCatalog(StrictBaseModel):
    """Root configuration for companies.yaml.

    Attributes:
        version: Schema version.
        companies: List of company configurations.
    """

    version: Annotated[str, Field(pattern=r"^\d+\.\d+$")] = "1.0"
    companies: list[CompanyConfig]

    @model_validator(mode="after")
    def validate_unique_domains(self) -> "CompanyCatalog":
        """Ensure all company domains are unique."""
        domains = [c.domain for c in self.companies]
        duplicates = [d for d in domains if domains.count(d) > 1]
        if duplicates:
            msg = f"Duplicate company domains found: {set(duplicates)}"
            raise ValueError(msg)
        return self
