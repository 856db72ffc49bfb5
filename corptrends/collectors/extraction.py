"""DOM-node-to-value extraction helpers shared by the platform collectors.

Platform markup drifts, so every field is read through an ordered list of
CSS selectors: ``first_match`` tries them in turn and returns the first
non-empty value. The single-node helpers are pure functions of a bs4 ``Tag``.
"""

import re
from collections.abc import Callable, Sequence
from typing import TypeVar
from urllib.parse import urljoin

from bs4 import Tag


T = TypeVar("T")

# Text longer than this is rejected (not truncated)
MAX_TEXT_LENGTH = 500

_DIGITS_RE = re.compile(r"\d[\d,]*")

# A data-* value counts only when it is a bare number
_NUMERIC_VALUE_RE = re.compile(r"^\d[\d,]*$")

_IGNORED_LINK_PREFIXES = ("#", "javascript:", "mailto:", "tel:")


def select_including_self(node: Tag, selector: str) -> list[Tag]:
    """Select descendants matching ``selector``, the node itself first.

    Args:
        node: Element to search.
        selector: CSS selector.

    Returns:
        Matching elements in document order.
    """
    matches: list[Tag] = list(node.select(selector))
    if node.css.match(selector):
        return [node, *matches]
    return matches


def first_match(
    node: Tag,
    selectors: Sequence[str],
    extractor: Callable[[Tag], T | None],
) -> T | None:
    """Apply ``extractor`` to selector matches until one yields a value.

    Args:
        node: Element to search.
        selectors: Selectors tried in order.
        extractor: Pure function reading a value from one element.

    Returns:
        The first value that is neither None nor an empty string.
    """
    for selector in selectors:
        for candidate in select_including_self(node, selector):
            value = extractor(candidate)
            if value is not None and value != "":
                return value
    return None


def extract_text(node: Tag) -> str | None:
    """Read whitespace-normalized text, rejecting empty or oversized text."""
    text = " ".join(node.get_text(" ", strip=True).split())
    if not text or len(text) > MAX_TEXT_LENGTH:
        return None
    return text


def extract_attribute(node: Tag, name: str) -> str | None:
    """Read a named attribute, treating blank values as missing.

    Multi-valued attributes such as ``class`` are joined with spaces.
    """
    value = node.get(name)
    if value is None:
        return None
    if isinstance(value, list):
        value = " ".join(value)
    value = value.strip()
    return value or None


def extract_link(node: Tag, base_url: str) -> str | None:
    """Read ``href`` and resolve it against ``base_url``.

    Fragment-only, ``javascript:``, ``mailto:`` and ``tel:`` links are
    ignored.
    """
    href = extract_attribute(node, "href")
    if href is None or href.lower().startswith(_IGNORED_LINK_PREFIXES):
        return None
    return urljoin(base_url, href)


def parse_number(text: str | None) -> int | None:
    """Parse the first digit run (commas allowed) out of ``text``."""
    if not text:
        return None
    match = _DIGITS_RE.search(text)
    if match is None:
        return None
    return int(match.group().replace(",", ""))


def _numeric_data_attributes(node: Tag) -> list[str]:
    values = []
    for name in node.attrs:
        if not name.startswith("data-"):
            continue
        value = extract_attribute(node, name)
        if value is not None and _NUMERIC_VALUE_RE.match(value):
            values.append(value)
    return values


def _read_number(node: Tag) -> int | None:
    candidates = [
        extract_attribute(node, "aria-label"),
        *_numeric_data_attributes(node),
    ]
    for candidate in candidates:
        parsed = parse_number(candidate)
        if parsed is not None:
            return parsed
    return parse_number(node.get_text(" ", strip=True))


def extract_number(node: Tag) -> int:
    """Read a count from an element.

    A number inside ``aria-label``, then any ``data-*`` attribute whose value
    is a bare number (in attribute order), wins over the element text.
    Returns 0 when nothing parses.
    """
    parsed = _read_number(node)
    return parsed if parsed is not None else 0


def extract_text_by_selectors(node: Tag, selectors: Sequence[str]) -> str | None:
    """Return the first acceptable text among the selector matches."""
    return first_match(node, selectors, extract_text)


def extract_attribute_by_selectors(
    node: Tag, selectors: Sequence[str], name: str
) -> str | None:
    """Return the first non-blank ``name`` attribute among the selector matches."""
    return first_match(node, selectors, lambda el: extract_attribute(el, name))


def extract_link_by_selectors(
    node: Tag,
    selectors: Sequence[str],
    base_url: str,
    contains: str | None = None,
) -> str | None:
    """Return the first resolvable link among the selector matches.

    Args:
        node: Element to search.
        selectors: Selectors tried in order.
        base_url: Base for relative hrefs.
        contains: When set, links not containing this substring are skipped.

    Returns:
        Absolute URL or None.
    """

    def read(el: Tag) -> str | None:
        link = extract_link(el, base_url)
        if link is not None and contains is not None and contains not in link:
            return None
        return link

    return first_match(node, selectors, read)


def extract_number_by_selectors(node: Tag, selectors: Sequence[str]) -> int:
    """Return the first parseable count among the selector matches, else 0."""
    parsed = first_match(node, selectors, _read_number)
    return parsed if parsed is not None else 0
