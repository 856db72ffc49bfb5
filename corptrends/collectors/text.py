"""Pure text normalization helpers for listing-page fields."""

import re
from datetime import UTC, datetime, timedelta
from urllib.parse import urlparse
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser


# Platform pages show local times without an offset
PLATFORM_TIMEZONE = ZoneInfo("Asia/Tokyo")

_UNIT_PATTERN = r"(秒|分|時間|日|週間|週|か月|ヶ月|ヵ月|年)"

_RELATIVE_TIME_RE = re.compile(r"(\d+)\s*" + _UNIT_PATTERN + r"前")

_UNIT_DELTAS: dict[str, timedelta] = {
    "秒": timedelta(seconds=1),
    "分": timedelta(minutes=1),
    "時間": timedelta(hours=1),
    "日": timedelta(days=1),
    "週間": timedelta(weeks=1),
    "週": timedelta(weeks=1),
    "か月": timedelta(days=30),
    "ヶ月": timedelta(days=30),
    "ヵ月": timedelta(days=30),
    "年": timedelta(days=365),
}

_ABSOLUTE_FORMATS = (
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%Y年%m月%d日",
)

# Author text nodes sometimes carry "<company>3日前 172" glued to the handle
_AUTHOR_RELATIVE_TAIL_RE = re.compile(r"\d+\s*" + _UNIT_PATTERN + r"前.*$")
_AUTHOR_TRAILING_COUNT_RE = re.compile(r"\s+\d+$")
_AUTHOR_SPACED_IN_RE = re.compile(r"^(.+?)\s+in\s*\S")
_AUTHOR_GLUED_IN_RE = re.compile(
    r"^(.+)in\S*?(?:株式会社|合同会社|有限会社)"
)


def parse_relative_time(text: str, now: datetime) -> datetime | None:
    """Convert a "N時間前"-style token into an absolute timestamp.

    Months count as 30 days and years as 365 days.

    Args:
        text: Text containing the token.
        now: Anchor time (scrape time).

    Returns:
        ``now`` minus the offset, or None if no token is present.
    """
    match = _RELATIVE_TIME_RE.search(text)
    if match is None:
        return None
    amount = int(match.group(1))
    return now - _UNIT_DELTAS[match.group(2)] * amount


def parse_published_at(text: str | None, now: datetime) -> datetime | None:
    """Parse a listing date in any of the observed formats.

    Relative tokens are tried first, then ISO 8601, then the slash, dash and
    kanji date forms. Naive values are read as Asia/Tokyo time. The result
    is always UTC.

    Args:
        text: Raw date text or attribute value.
        now: Anchor for relative tokens.

    Returns:
        UTC datetime, or None if nothing parses.
    """
    if not text:
        return None
    text = text.strip()

    relative = parse_relative_time(text, now)
    if relative is not None:
        return relative.astimezone(UTC)

    parsed: datetime | None = None
    try:
        parsed = date_parser.isoparse(text)
    except ValueError:
        for fmt in _ABSOLUTE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)  # noqa: DTZ007
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=PLATFORM_TIMEZONE)
    return parsed.astimezone(UTC)


def clean_author_name(raw: str | None) -> str | None:
    """Reduce a scraped author text node to the author handle.

    Strips surrounding whitespace and leading ``@``/``/``, drops a relative
    time token and everything after it (plus a count left before it), then cuts
    an organization suffix introduced by ``in``: either a spaced ``in`` or
    an ``in`` glued to a name ending in a company marker (株式会社 etc.).

    Examples:
        >>> clean_author_name("@test_user")
        'test_user'
        >>> clean_author_name("test_user in株式会社テスト")
        'test_user'
        >>> clean_author_name("haruotsuinGMOペパボ株式会社3日前 172")
        'haruotsu'
        >>> clean_author_name("user 2024")
        'user 2024'

    Args:
        raw: Raw author text.

    Returns:
        Cleaned handle, or None if nothing remains.
    """
    if raw is None:
        return None
    name = raw.strip().lstrip("@/").strip()
    name, tails = _AUTHOR_RELATIVE_TAIL_RE.subn("", name)
    name = name.strip()
    if tails:
        name = _AUTHOR_TRAILING_COUNT_RE.sub("", name).strip()

    for pattern in (_AUTHOR_SPACED_IN_RE, _AUTHOR_GLUED_IN_RE):
        match = pattern.match(name)
        if match:
            name = match.group(1).strip()
            break

    return name or None


def extract_domain(url: str | None) -> str | None:
    """Return the lowercase host of ``url`` without a leading ``www.``."""
    if not url:
        return None
    host = urlparse(url).hostname
    if not host:
        return None
    return host.removeprefix("www.")
