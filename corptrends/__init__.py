"""Company influence rankings built from developer-platform trending articles."""

__version__ = "1.0.0"
