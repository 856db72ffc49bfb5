"""Exceptions raised by the scraping engine."""


class ScrapeError(Exception):
    """Raised when a page could not be fetched after every attempt.

    Carries the HTTP status of the last attempt (None for transport
    failures) so callers can decide whether to skip the platform.
    """

    def __init__(
        self,
        url: str,
        message: str,
        status_code: int | None = None,
        attempts: int = 0,
    ) -> None:
        """Initialize the scrape error.

        Args:
            url: URL that failed.
            message: Message of the last failed attempt.
            status_code: HTTP status of the last attempt, if any.
            attempts: Number of attempts made.
        """
        self.url = url
        self.message = message
        self.status_code = status_code
        self.attempts = attempts
        super().__init__(f"Scrape failed after {attempts} attempt(s): {message}")


class ResponseSizeExceededError(Exception):
    """Raised when response size exceeds the configured limit."""
