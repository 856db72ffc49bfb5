"""Exceptions raised by the ranking services."""


class UnknownPeriodError(ValueError):
    """Raised when a ranking period string is not recognized."""

    def __init__(self, value: str) -> None:
        """Initialize the error.

        Args:
            value: The rejected period string.
        """
        self.value = value
        super().__init__(f"Unknown ranking period: {value!r}")
