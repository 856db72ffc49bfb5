"""Unit tests for company catalog loading and validation."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from corptrends.config.error_hints import format_validation_error, get_error_hint
from corptrends.config.loader import CompanyCatalogLoader, ConfigValidationError
from corptrends.config.schemas.companies import CompanyCatalog, CompanyConfig


VALID_CATALOG = """
version: "1.0"
companies:
  - name: Acme
    domain: WWW.Acme.co.jp
    url_patterns: ["tech.acme.co.jp"]
    keywords: ["Acme", " Acme Cloud "]
    qiita_username: acme
    zenn_organizations: ["acme"]
  - name: Globex
    domain: globex.dev
    is_active: false
"""


def write(tmp_path: Path, content: str) -> Path:
    """Write a catalog file and return its path."""
    path = tmp_path / "companies.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestCompanyConfig:
    """Tests for the per-company schema."""

    def test_domain_normalized(self) -> None:
        """Test domains are lowercased and lose a leading www."""
        config = CompanyConfig(name="Acme", domain="WWW.Acme.COM")

        assert config.domain == "acme.com"

    @pytest.mark.parametrize("domain", ["https://acme.com", "acme.com/blog"])
    def test_domain_rejects_urls(self, domain: str) -> None:
        """Test schemes and paths are rejected."""
        with pytest.raises(ValidationError, match="Domain must be a host name"):
            CompanyConfig(name="Acme", domain=domain)

    def test_blank_keyword_rejected(self) -> None:
        """Test whitespace-only keywords are rejected."""
        with pytest.raises(ValidationError, match="non-empty strings"):
            CompanyConfig(name="Acme", domain="acme.com", keywords=["Acme", "  "])

    def test_unknown_field_rejected(self) -> None:
        """Test unknown keys are rejected."""
        with pytest.raises(ValidationError):
            CompanyConfig.model_validate(
                {"name": "Acme", "domain": "acme.com", "twitter": "acme"}
            )

    def test_to_company(self) -> None:
        """Test conversion to the store model."""
        company = CompanyConfig(
            name=" Acme ",
            domain="acme.com",
            keywords=["Acme"],
            zenn_username="acme_zenn",
        ).to_company()

        assert company.id is None
        assert company.name == "Acme"
        assert company.keywords == ["Acme"]
        assert company.zenn_username == "acme_zenn"
        assert company.is_active


class TestCompanyCatalog:
    """Tests for the catalog root schema."""

    def test_duplicate_domains_rejected(self) -> None:
        """Test two companies may not share a domain."""
        with pytest.raises(ValidationError, match="Duplicate company domains"):
            CompanyCatalog.model_validate(
                {
                    "companies": [
                        {"name": "A", "domain": "acme.com"},
                        {"name": "B", "domain": "www.acme.com"},
                    ]
                }
            )

    def test_version_format(self) -> None:
        """Test the version must be MAJOR.MINOR."""
        with pytest.raises(ValidationError):
            CompanyCatalog.model_validate({"version": "v1", "companies": []})


class TestCompanyCatalogLoader:
    """Tests for CompanyCatalogLoader.load."""

    def test_load_valid_file(self, tmp_path: Path) -> None:
        """Test a valid file loads with normalized values and a checksum."""
        loader = CompanyCatalogLoader(run_id="test")

        catalog = loader.load(write(tmp_path, VALID_CATALOG))

        assert [c.name for c in catalog.companies] == ["Acme", "Globex"]
        acme = catalog.companies[0]
        assert acme.domain == "acme.co.jp"
        assert acme.keywords == ["Acme", "Acme Cloud"]
        assert not catalog.companies[1].is_active
        assert loader.file_checksum is not None
        assert len(loader.file_checksum) == 64
        assert loader.validation_duration_ms >= 0

    def test_validation_errors_collected(self, tmp_path: Path) -> None:
        """Test schema violations become ConfigValidationError entries."""
        path = write(
            tmp_path,
            "companies:\n  - name: Acme\n  - domain: globex.dev\n",
        )

        with pytest.raises(ConfigValidationError) as exc_info:
            CompanyCatalogLoader().load(path)

        error = exc_info.value
        assert error.file_path == str(path)
        locations = {e["loc"] for e in error.errors}
        assert locations == {"companies.0.domain", "companies.1.name"}
        assert {e["type"] for e in error.errors} == {"missing"}

    def test_empty_file_is_missing_companies(self, tmp_path: Path) -> None:
        """Test an empty document reports the missing companies list."""
        with pytest.raises(ConfigValidationError) as exc_info:
            CompanyCatalogLoader().load(write(tmp_path, ""))

        assert exc_info.value.errors[0]["loc"] == "companies"

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file propagates FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            CompanyCatalogLoader().load(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test YAML syntax errors propagate."""
        with pytest.raises(yaml.YAMLError):
            CompanyCatalogLoader().load(write(tmp_path, "companies: [unclosed\n"))


class TestErrorHints:
    """Tests for validation error hints."""

    def test_field_hint_wins(self) -> None:
        """Test a known field name selects the field hint."""
        hint = get_error_hint("value_error", "companies.0.domain")

        assert "bare host" in hint

    def test_type_hint(self) -> None:
        """Test the error type hint is used for other fields."""
        assert get_error_hint("missing", "companies.0.name") == (
            "This field is required. Please add it to the catalog entry."
        )

    def test_unknown_type_fallback(self) -> None:
        """Test unknown error types get the generic hint."""
        assert "documentation" in get_error_hint("mystery")

    def test_format_with_and_without_hint(self) -> None:
        """Test the formatted message and optional hint line."""
        with_hint = format_validation_error(
            "companies.1.name", "Field required", "missing"
        )
        without_hint = format_validation_error(
            "companies.1.name", "Field required", "missing", include_hint=False
        )

        assert with_hint.startswith("companies.1.name: Field required\n    Hint: ")
        assert without_hint == "companies.1.name: Field required"
