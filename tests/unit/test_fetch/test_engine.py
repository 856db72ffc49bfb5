"""Unit tests for the scraping engine."""

from collections.abc import Callable

import httpx
import pytest

from corptrends.fetch.client import ScrapeEngine
from corptrends.fetch.config import ScrapeConfig
from corptrends.fetch.errors import ScrapeError
from corptrends.fetch.metrics import FetchMetrics
from corptrends.fetch.models import FetchErrorClass, FetchResult, RequestOptions


URL = "https://example.com/list"


class CountingLimiter:
    """Rate limiter stub that never waits."""

    def __init__(self) -> None:
        self.calls = 0
        self.requests_per_minute = 30

    def acquire(self) -> float:
        self.calls += 1
        return 0.0

    def set_limit(self, requests_per_minute: int) -> None:
        self.requests_per_minute = requests_per_minute

    @property
    def was_rate_limited(self) -> bool:
        return False


def make_engine(
    handler: Callable[[httpx.Request], httpx.Response],
    config: ScrapeConfig | None = None,
    sleeps: list[float] | None = None,
    limiter: CountingLimiter | None = None,
) -> ScrapeEngine:
    """Create an engine over a mock transport with a recording sleep."""
    recorded = sleeps if sleeps is not None else []
    return ScrapeEngine(
        "test",
        config=config or ScrapeConfig(max_retry_count=3, retry_delay_seconds=0.5),
        rate_limiter=limiter or CountingLimiter(),
        transport=httpx.MockTransport(handler),
        sleep=recorded.append,
        run_id="test-run",
    )


def body_text(result: FetchResult) -> str:
    """Parse callback returning the decoded body."""
    return result.text


@pytest.fixture(autouse=True)
def reset_metrics() -> None:
    """Reset fetch metrics between tests."""
    FetchMetrics.reset()


class TestScrapeSuccess:
    """Tests for successful scrapes."""

    def test_returns_parse_result(self) -> None:
        """Test the parse callback receives the successful response."""
        engine = make_engine(lambda _: httpx.Response(200, text="<html>ok</html>"))

        assert engine.scrape(URL, body_text) == "<html>ok</html>"
        assert engine.get_error_log() == []

    def test_records_last_response(self) -> None:
        """Test last response metadata is kept."""
        engine = make_engine(
            lambda _: httpx.Response(200, text="body", headers={"X-Test": "1"})
        )

        engine.scrape(URL, body_text)
        last = engine.get_last_response()

        assert last is not None
        assert last.status_code == 200
        assert last.body == "body"
        assert last.headers["x-test"] == "1"

    def test_sends_user_agent_and_custom_headers(self) -> None:
        """Test configured, merged and per-call headers are sent."""
        seen: dict[str, str] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.headers)
            return httpx.Response(200, text="ok")

        engine = make_engine(handler, config=ScrapeConfig(user_agent="TestAgent/1.0"))
        engine.set_headers({"Cache-Control": "no-cache"})
        engine.scrape(URL, body_text, RequestOptions(headers={"X-Extra": "yes"}))

        assert seen["user-agent"] == "TestAgent/1.0"
        assert seen["cache-control"] == "no-cache"
        assert seen["x-extra"] == "yes"
        assert "ja" in seen["accept-language"]

    def test_consults_rate_limiter_per_attempt(self) -> None:
        """Test every attempt goes through the limiter."""
        responses = iter([httpx.Response(500), httpx.Response(200, text="ok")])
        limiter = CountingLimiter()
        engine = make_engine(lambda _: next(responses), limiter=limiter)

        engine.scrape(URL, body_text)

        assert limiter.calls == 2


class TestScrapeRetries:
    """Tests for the retry loop and error log."""

    def test_retries_then_succeeds(self) -> None:
        """Test a transient failure is retried and logged."""
        responses = iter([httpx.Response(503), httpx.Response(200, text="ok")])
        sleeps: list[float] = []
        engine = make_engine(lambda _: next(responses), sleeps=sleeps)

        assert engine.scrape(URL, body_text) == "ok"

        log = engine.get_error_log()
        assert len(log) == 1
        assert log[0].attempt == 1
        assert log[0].status_code == 503
        assert log[0].error_class == FetchErrorClass.HTTP_5XX
        assert log[0].scraper == "test"
        assert sleeps == [0.5]

    def test_exhausts_exact_attempt_budget(self) -> None:
        """Test the engine makes exactly max_retry_count attempts."""
        calls: list[httpx.Request] = []
        sleeps: list[float] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        engine = make_engine(handler, sleeps=sleeps)

        with pytest.raises(ScrapeError) as exc_info:
            engine.scrape(URL, body_text)

        assert len(calls) == 3
        # No sleep after the final attempt
        assert sleeps == [0.5, 0.5]
        assert exc_info.value.attempts == 3
        assert exc_info.value.status_code == 500
        assert exc_info.value.url == URL
        assert [e.attempt for e in engine.get_error_log()] == [1, 2, 3]

    def test_client_errors_are_retried(self) -> None:
        """Test 4xx responses also consume attempts."""
        calls: list[int] = []

        def handler(_: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(404)

        engine = make_engine(handler)

        with pytest.raises(ScrapeError):
            engine.scrape(URL, body_text)

        assert len(calls) == 3
        assert engine.get_error_log()[0].error_class == FetchErrorClass.HTTP_4XX

    def test_rate_limited_status_classified(self) -> None:
        """Test 429 is classified as RATE_LIMITED."""
        engine = make_engine(lambda _: httpx.Response(429))

        with pytest.raises(ScrapeError):
            engine.scrape(URL, body_text)

        assert engine.get_error_log()[-1].error_class == FetchErrorClass.RATE_LIMITED

    def test_transport_error_has_no_status(self) -> None:
        """Test connection failures are logged without a status code."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        engine = make_engine(handler)

        with pytest.raises(ScrapeError) as exc_info:
            engine.scrape(URL, body_text)

        assert exc_info.value.status_code is None
        assert engine.get_last_response() is None
        assert engine.get_error_log()[0].error_class == (
            FetchErrorClass.CONNECTION_ERROR
        )

    def test_timeout_classified(self) -> None:
        """Test timeouts are classified as NETWORK_TIMEOUT."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        engine = make_engine(handler, config=ScrapeConfig(max_retry_count=1))

        with pytest.raises(ScrapeError):
            engine.scrape(URL, body_text)

        assert engine.get_error_log()[0].error_class == FetchErrorClass.NETWORK_TIMEOUT

    def test_oversized_response_rejected(self) -> None:
        """Test bodies over the size limit fail the attempt."""
        engine = make_engine(
            lambda _: httpx.Response(200, content=b"x" * 4096),
            config=ScrapeConfig(max_retry_count=1, max_response_size_bytes=1024),
        )

        with pytest.raises(ScrapeError):
            engine.scrape(URL, body_text)

        assert engine.get_error_log()[0].error_class == (
            FetchErrorClass.RESPONSE_SIZE_EXCEEDED
        )

    def test_error_log_reset_per_scrape(self) -> None:
        """Test each scrape call starts with an empty error log."""
        responses = iter(
            [
                httpx.Response(500),
                httpx.Response(200, text="a"),
                httpx.Response(200, text="b"),
            ]
        )
        engine = make_engine(lambda _: next(responses))

        engine.scrape(URL, body_text)
        assert len(engine.get_error_log()) == 1

        engine.scrape(URL, body_text)
        assert engine.get_error_log() == []

    def test_metrics_recorded(self) -> None:
        """Test retries and failures are counted."""
        engine = make_engine(lambda _: httpx.Response(500))

        with pytest.raises(ScrapeError):
            engine.scrape(URL, body_text)

        metrics = FetchMetrics.get_instance()
        stats = metrics.get_engine_stats("test")
        assert (stats.requests, stats.failed_attempts) == (3, 3)
        assert stats.retries == 2
        assert stats.scrapes_failed == 1
        assert metrics.status_codes == {500: 3}
        assert metrics.to_dict()["failure_classes"] == {"HTTP_5XX": 3}
        assert metrics.get_engine_stats("other").requests == 0


class TestRuntimeConfiguration:
    """Tests for the runtime setters."""

    def test_set_retry_options(self) -> None:
        """Test the attempt budget can be changed."""
        calls: list[int] = []

        def handler(_: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(500)

        engine = make_engine(handler)
        engine.set_retry_options(max_retry_count=1, retry_delay_seconds=0)

        with pytest.raises(ScrapeError):
            engine.scrape(URL, body_text)

        assert len(calls) == 1
        assert engine.config.retry_delay_seconds == 0

    def test_set_rate_limit_updates_limiter(self) -> None:
        """Test the limiter budget follows the config."""
        limiter = CountingLimiter()
        engine = make_engine(lambda _: httpx.Response(200), limiter=limiter)

        engine.set_rate_limit(90)

        assert engine.config.requests_per_minute == 90
        assert limiter.requests_per_minute == 90

    def test_set_timeout(self) -> None:
        """Test the default timeout can be changed."""
        engine = make_engine(lambda _: httpx.Response(200))
        engine.set_timeout(5)

        assert engine.config.timeout_seconds == 5

    def test_credential_headers_rejected(self) -> None:
        """Test credentials cannot be configured as scraping headers."""
        engine = make_engine(lambda _: httpx.Response(200))

        with pytest.raises(ValueError, match="Authorization"):
            engine.set_headers({"Authorization": "Bearer x"})
