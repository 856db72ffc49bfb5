"""Scraping engine with retries, rate limiting, and an attempt error log."""

import time
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from io import BytesIO
from typing import TypeVar

import httpx
import structlog

from corptrends.fetch.config import ScrapeConfig
from corptrends.fetch.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_REQUEST_HEADERS,
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    HTTP_STATUS_SERVER_ERROR_MAX,
    HTTP_STATUS_SERVER_ERROR_MIN,
    HTTP_STATUS_TOO_MANY_REQUESTS,
)
from corptrends.fetch.errors import ResponseSizeExceededError, ScrapeError
from corptrends.fetch.metrics import FetchMetrics
from corptrends.fetch.models import (
    ErrorLogEntry,
    FetchError,
    FetchErrorClass,
    FetchResult,
    LastResponse,
    RequestOptions,
)
from corptrends.fetch.rate_limiter import RateLimiterProtocol, WindowRateLimiter


logger = structlog.get_logger()

T = TypeVar("T")


class ScrapeEngine:
    """HTTP engine shared by the platform collectors.

    Each collector owns one engine. The engine keeps per-instance state:
    the rate-limit counter, the error log of failed attempts, and the
    metadata of the last response. The error log and last response are
    reset at the start of every ``scrape`` call.
    """

    def __init__(  # noqa: PLR0913
        self,
        name: str,
        config: ScrapeConfig | None = None,
        rate_limiter: RateLimiterProtocol | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
        run_id: str | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            name: Owner name used in logs and the error log (e.g. 'qiita').
            config: Engine configuration (defaults apply when omitted).
            rate_limiter: Limiter consulted before every request. A
                ``WindowRateLimiter`` for the configured budget is created
                when omitted.
            transport: Optional httpx transport, e.g. ``httpx.MockTransport``.
            sleep: Sleep function used between retry attempts.
            run_id: Optional run ID for logging context.
        """
        self._name = name
        self._config = config or ScrapeConfig()
        self._rate_limiter: RateLimiterProtocol = rate_limiter or WindowRateLimiter(
            requests_per_minute=self._config.requests_per_minute
        )
        self._transport = transport
        self._sleep = sleep
        self._run_id = run_id or str(uuid.uuid4())
        self._metrics = FetchMetrics.get_instance()
        self._error_log: list[ErrorLogEntry] = []
        self._last_response: LastResponse | None = None
        self._log = logger.bind(component="fetch", scraper=name, run_id=self._run_id)

    @property
    def name(self) -> str:
        """Get the engine owner name."""
        return self._name

    @property
    def config(self) -> ScrapeConfig:
        """Get the current configuration."""
        return self._config

    @property
    def rate_limiter(self) -> RateLimiterProtocol:
        """Get the rate limiter."""
        return self._rate_limiter

    def scrape(
        self,
        url: str,
        parse: Callable[[FetchResult], T],
        options: RequestOptions | None = None,
    ) -> T:
        """Fetch a URL and hand the successful response to ``parse``.

        Args:
            url: URL to fetch.
            parse: Function turning the successful response into a result.
            options: Per-call timeout and header overrides.

        Returns:
            Whatever ``parse`` returns.

        Raises:
            ScrapeError: If every attempt failed.
        """
        self._error_log = []
        self._last_response = None

        options = options or RequestOptions()
        headers = self._build_headers(options.headers)
        timeout = options.timeout_seconds or self._config.timeout_seconds
        log = self._log.bind(url=url)

        start_ns = time.perf_counter_ns()
        result = self._execute_with_retry(url, headers, timeout, log)
        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000

        log.info(
            "scrape_complete",
            status_code=result.status_code,
            bytes=result.body_size,
            attempts=len(self._error_log) + 1,
            duration_ms=round(duration_ms, 2),
        )
        return parse(result)

    def _build_headers(self, extra_headers: dict[str, str]) -> dict[str, str]:
        """Build request headers.

        Args:
            extra_headers: Per-call headers, applied last.

        Returns:
            Complete headers dictionary.
        """
        headers = dict(DEFAULT_REQUEST_HEADERS)
        headers["User-Agent"] = self._config.user_agent
        headers.update(self._config.headers)
        headers.update(extra_headers)
        return headers

    def _execute_with_retry(
        self,
        url: str,
        headers: dict[str, str],
        timeout: float,
        log: structlog.stdlib.BoundLogger,
    ) -> FetchResult:
        """Run attempts until one succeeds or the attempt budget is spent.

        Args:
            url: URL to fetch.
            headers: Request headers.
            timeout: Request timeout in seconds.
            log: Bound logger.

        Returns:
            The first successful FetchResult.

        Raises:
            ScrapeError: If every attempt failed.
        """
        max_attempts = self._config.max_retry_count
        last_result: FetchResult | None = None

        for attempt in range(1, max_attempts + 1):
            waited = self._rate_limiter.acquire()
            if waited > 0:
                self._metrics.record_rate_limit_wait(self._name, waited)
                log.info("rate_limit_wait", waited_seconds=round(waited, 3))

            result = self._execute_single(url, headers, timeout)
            if result.status_code > 0:
                self._last_response = LastResponse(
                    status_code=result.status_code,
                    headers=result.headers,
                    body=result.text,
                )

            if result.is_success:
                return result

            last_result = result
            error = result.error or self._classify_status(result.status_code)
            self._metrics.record_attempt_failure(self._name, error.error_class)
            self._error_log.append(
                ErrorLogEntry(
                    scraper=self._name,
                    url=url,
                    error=error.message,
                    attempt=attempt,
                    status_code=result.status_code or None,
                    error_class=error.error_class,
                    timestamp=datetime.now(UTC),
                )
            )
            log.warning(
                "scrape_attempt_failed",
                attempt=attempt,
                max_attempts=max_attempts,
                status_code=result.status_code or None,
                error_class=error.error_class.value,
                error=error.message,
            )

            if attempt < max_attempts:
                self._metrics.record_retry(self._name)
                self._sleep(self._config.retry_delay_seconds)

        self._metrics.record_scrape_failure(self._name)
        last_status = last_result.status_code if last_result else 0
        last_message = self._error_log[-1].error if self._error_log else "no attempts"
        log.error(
            "scrape_failed",
            attempts=max_attempts,
            status_code=last_status or None,
            error=last_message,
        )
        raise ScrapeError(
            url=url,
            message=last_message,
            status_code=last_status or None,
            attempts=max_attempts,
        )

    def _execute_single(
        self,
        url: str,
        headers: dict[str, str],
        timeout: float,
    ) -> FetchResult:
        """Execute a single HTTP GET.

        Transport failures are returned as a FetchResult with status 0.

        Args:
            url: URL to fetch.
            headers: Request headers.
            timeout: Request timeout in seconds.

        Returns:
            FetchResult from the attempt.
        """
        start_ns = time.perf_counter_ns()
        try:
            with (
                httpx.Client(
                    timeout=timeout,
                    follow_redirects=True,
                    transport=self._transport,
                ) as client,
                client.stream("GET", url, headers=headers) as response,
            ):
                body = self._read_body_with_limit(response)
                duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
                self._metrics.record_request(
                    self._name, response.status_code, len(body), duration_ms
                )
                return FetchResult(
                    status_code=response.status_code,
                    final_url=str(response.url),
                    headers=dict(response.headers),
                    body_bytes=body,
                    error=self._classify_http_error(response.status_code),
                )

        except httpx.TimeoutException as e:
            return self._transport_failure(
                url, FetchErrorClass.NETWORK_TIMEOUT, f"Request timed out: {e}"
            )

        except httpx.ConnectError as e:
            return self._transport_failure(
                url, FetchErrorClass.CONNECTION_ERROR, f"Connection failed: {e}"
            )

        except ResponseSizeExceededError as e:
            return self._transport_failure(
                url, FetchErrorClass.RESPONSE_SIZE_EXCEEDED, str(e)
            )

        except httpx.HTTPError as e:
            return self._transport_failure(
                url, FetchErrorClass.UNKNOWN, f"Transport error: {e}"
            )

    def _transport_failure(
        self, url: str, error_class: FetchErrorClass, message: str
    ) -> FetchResult:
        """Build the FetchResult for an attempt that produced no response."""
        return FetchResult(
            status_code=0,
            final_url=url,
            error=FetchError(error_class=error_class, message=message),
        )

    def _read_body_with_limit(self, response: httpx.Response) -> bytes:
        """Read response body with size limit.

        Args:
            response: Streaming HTTP response.

        Returns:
            Response body bytes.

        Raises:
            ResponseSizeExceededError: If the body exceeds the limit.
        """
        buffer = BytesIO()
        total_read = 0
        max_size = self._config.max_response_size_bytes

        for chunk in response.iter_bytes(chunk_size=DEFAULT_CHUNK_SIZE):
            total_read += len(chunk)
            if total_read > max_size:
                msg = f"Response size exceeded limit of {max_size} bytes"
                raise ResponseSizeExceededError(msg)
            buffer.write(chunk)

        return buffer.getvalue()

    def _classify_http_error(self, status_code: int) -> FetchError | None:
        """Classify an HTTP status, returning None for 2xx."""
        if HTTP_STATUS_OK_MIN <= status_code < HTTP_STATUS_OK_MAX:
            return None
        return self._classify_status(status_code)

    def _classify_status(self, status_code: int) -> FetchError:
        """Build the FetchError for a non-2xx status."""
        message = f"HTTP Error: {status_code}"
        if status_code == HTTP_STATUS_TOO_MANY_REQUESTS:
            error_class = FetchErrorClass.RATE_LIMITED
        elif HTTP_STATUS_BAD_REQUEST <= status_code < HTTP_STATUS_SERVER_ERROR_MIN:
            error_class = FetchErrorClass.HTTP_4XX
        elif HTTP_STATUS_SERVER_ERROR_MIN <= status_code < HTTP_STATUS_SERVER_ERROR_MAX:
            error_class = FetchErrorClass.HTTP_5XX
        else:
            error_class = FetchErrorClass.UNKNOWN
        return FetchError(
            error_class=error_class, message=message, status_code=status_code
        )

    # ===== Runtime configuration =====

    def set_rate_limit(self, requests_per_minute: int) -> None:
        """Change the request budget per 60-second window."""
        self._config = ScrapeConfig.model_validate(
            {**self._config.model_dump(), "requests_per_minute": requests_per_minute}
        )
        self._rate_limiter.set_limit(requests_per_minute)

    def set_retry_options(
        self, max_retry_count: int, retry_delay_seconds: float | None = None
    ) -> None:
        """Change the attempt budget and optionally the delay between attempts.

        Args:
            max_retry_count: Total attempts per scrape (>= 1).
            retry_delay_seconds: Delay between attempts.
        """
        update: dict[str, float | int] = {"max_retry_count": max_retry_count}
        if retry_delay_seconds is not None:
            update["retry_delay_seconds"] = retry_delay_seconds
        self._config = ScrapeConfig.model_validate(
            {**self._config.model_dump(), **update}
        )

    def set_headers(self, headers: dict[str, str]) -> None:
        """Merge headers into the configured request headers."""
        self._config = ScrapeConfig.model_validate(
            {
                **self._config.model_dump(),
                "headers": {**self._config.headers, **headers},
            }
        )

    def set_timeout(self, timeout_seconds: float) -> None:
        """Change the default request timeout."""
        self._config = ScrapeConfig.model_validate(
            {**self._config.model_dump(), "timeout_seconds": timeout_seconds}
        )

    # ===== Inspection =====

    def get_error_log(self) -> list[ErrorLogEntry]:
        """Get the failed attempts of the last scrape call."""
        return list(self._error_log)

    def get_last_response(self) -> LastResponse | None:
        """Get the metadata of the last HTTP response, if any."""
        return self._last_response
