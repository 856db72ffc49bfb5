"""Domain exceptions for the state store.

Infrastructure errors (database not reachable, failed migration) and
domain errors (unknown company) share the ``StateStoreError`` base so
callers can isolate per-record persistence failures.
"""


class StateStoreError(Exception):
    """Base exception for all state store errors."""


class ConnectionError(StateStoreError):
    """Raised when the database connection is not established."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


class CompanyNotFoundError(StateStoreError):
    """Raised when a referenced company id does not exist."""

    def __init__(self, company_id: int) -> None:
        """Initialize the error with the missing company id.

        Args:
            company_id: The company id that was not found.
        """
        self.company_id = company_id
        super().__init__(f"Company not found: {company_id}")


class ArticleWriteError(StateStoreError):
    """Raised when an article row cannot be written."""

    def __init__(self, url: str, message: str) -> None:
        """Initialize the error.

        Args:
            url: URL of the article being written.
            message: Underlying database error message.
        """
        self.url = url
        super().__init__(f"Failed to write article {url}: {message}")


class MigrationError(StateStoreError):
    """Raised when a schema migration fails."""

    def __init__(self, version: int, message: str) -> None:
        """Initialize the migration error.

        Args:
            version: The migration version that failed.
            message: Human-readable error message.
        """
        self.version = version
        super().__init__(f"Migration {version} failed: {message}")
