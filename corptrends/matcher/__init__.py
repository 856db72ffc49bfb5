"""Company identification for scraped articles."""

from corptrends.matcher.company_matcher import (
    CompanyMatch,
    CompanyMatcher,
    MatchFields,
    clean_username,
    extract_zenn_organization,
)


__all__ = [
    "CompanyMatch",
    "CompanyMatcher",
    "MatchFields",
    "clean_username",
    "extract_zenn_organization",
]
