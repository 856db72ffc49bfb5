"""HTTP constants for the scraping engine."""

# HTTP status code ranges
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_TOO_MANY_REQUESTS = 429
HTTP_STATUS_SERVER_ERROR_MIN = 500
HTTP_STATUS_SERVER_ERROR_MAX = 600

# Listing pages are small; anything larger is not a trending page
DEFAULT_MAX_RESPONSE_SIZE_BYTES = 5 * 1024 * 1024

DEFAULT_CHUNK_SIZE = 8192

# Length of the rolling rate-limit window in seconds
RATE_LIMIT_WINDOW_SECONDS = 60.0

DEFAULT_REQUEST_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "ja,en-US;q=0.7,en;q=0.3",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}
