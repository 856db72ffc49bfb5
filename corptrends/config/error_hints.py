"""Error hints for company catalog validation errors.

Turns pydantic error types into short, actionable remediation text for
the ``seed-companies`` command output.
"""

from typing import Final


ERROR_HINTS: Final[dict[str, str]] = {
    "missing": "This field is required. Please add it to the catalog entry.",
    "extra_forbidden": "Unknown field. Check the spelling of the key.",
    "string_type": "This field must be a text string.",
    "bool_type": "This field must be true or false.",
    "list_type": "This field must be a list.",
    "string_too_short": "The text is too short. Check minimum length requirement.",
    "string_too_long": "The text is too long. Check maximum length requirement.",
    "string_pattern_mismatch": "The format is invalid (expected e.g. '1.0').",
    "value_error": "Check the value format and uniqueness of domains.",
    "file_not_found": "The file does not exist. Check the file path.",
    "yaml_parse_error": "Invalid YAML syntax. Check indentation and quoting.",
}

FIELD_HINTS: Final[dict[str, str]] = {
    "domain": "Use a bare host such as 'example.com' (no scheme, no path).",
    "keywords": "Must be a list of non-empty title keywords.",
    "url_patterns": "Must be a list of URL substrings such as 'tech.example.com'.",
    "zenn_organizations": "Must be a list of Zenn publication slugs.",
    "version": "Use a 'MAJOR.MINOR' string such as '1.0'.",
}


def get_error_hint(error_type: str, field_name: str | None = None) -> str:
    """Get a user-friendly hint for a validation error.

    Args:
        error_type: The pydantic error type (e.g. 'missing').
        field_name: Optional dotted location (e.g. 'companies.0.domain').

    Returns:
        A hint string.
    """
    if field_name:
        simple_field = field_name.split(".")[-1]
        if simple_field in FIELD_HINTS:
            return FIELD_HINTS[simple_field]

    return ERROR_HINTS.get(
        error_type, "Check the catalog documentation for valid values."
    )


def format_validation_error(
    location: str,
    message: str,
    error_type: str,
    *,
    include_hint: bool = True,
) -> str:
    """Format a validation error with an optional hint line."""
    base = f"{location}: {message}"
    if include_hint:
        return f"{base}\n    Hint: {get_error_hint(error_type, location)}"
    return base
