"""Company catalog loader with validation."""

import hashlib
import time
from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from corptrends.config.schemas.companies import CompanyCatalog


logger = structlog.get_logger()


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: List of validation error details (loc, msg, type).
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


class CompanyCatalogLoader:
    """Loads and validates ``companies.yaml``.

    Missing files and YAML syntax errors propagate unchanged; schema
    violations are raised as ``ConfigValidationError``.
    """

    def __init__(self, run_id: str = "") -> None:
        """Initialize the loader.

        Args:
            run_id: Unique identifier for the current run.
        """
        self._run_id = run_id
        self._file_checksum: str | None = None
        self._validation_duration_ms: float = 0

    @property
    def file_checksum(self) -> str | None:
        """Get the SHA-256 checksum of the last loaded file."""
        return self._file_checksum

    @property
    def validation_duration_ms(self) -> float:
        """Get validation duration in milliseconds."""
        return self._validation_duration_ms

    def _load_yaml_file(self, file_path: Path) -> tuple[object, str]:
        """Load a YAML file and compute its checksum.

        Raises:
            FileNotFoundError: If file does not exist.
            yaml.YAMLError: If YAML parsing fails.
        """
        content_bytes = file_path.read_bytes()
        checksum = hashlib.sha256(content_bytes).hexdigest()
        parsed = yaml.safe_load(content_bytes.decode("utf-8")) or {}
        return parsed, checksum

    def load(self, path: Path | str) -> CompanyCatalog:
        """Load and validate a company catalog.

        Args:
            path: Path to companies.yaml.

        Returns:
            Validated CompanyCatalog.

        Raises:
            ConfigValidationError: If the document violates the schema.
            FileNotFoundError: If the file does not exist.
            yaml.YAMLError: If the file is not valid YAML.
        """
        file_path = Path(path)
        log = logger.bind(component="config", run_id=self._run_id)
        start_time = time.perf_counter()

        log.info("loading_config_file", file_path=str(file_path), file_type="companies")
        data, checksum = self._load_yaml_file(file_path)
        self._file_checksum = checksum

        try:
            catalog = CompanyCatalog.model_validate(data)
        except ValidationError as e:
            errors = [
                {
                    "loc": ".".join(str(loc) for loc in err["loc"]),
                    "msg": err["msg"],
                    "type": err["type"],
                }
                for err in e.errors()
            ]
            log.error(
                "config_validation_failed",
                file_path=str(file_path),
                validation_error_count=len(errors),
                errors=errors,
            )
            raise ConfigValidationError(errors, str(file_path)) from e

        self._validation_duration_ms = (time.perf_counter() - start_time) * 1000
        log.info(
            "config_file_loaded",
            file_path=str(file_path),
            file_sha256=checksum,
            company_count=len(catalog.companies),
            config_validation_duration_ms=round(self._validation_duration_ms, 2),
        )
        return catalog
