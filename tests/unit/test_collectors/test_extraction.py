"""Unit tests for the DOM extraction helpers."""

from bs4 import BeautifulSoup, Tag

from corptrends.collectors.extraction import (
    MAX_TEXT_LENGTH,
    extract_attribute,
    extract_link,
    extract_link_by_selectors,
    extract_number,
    extract_number_by_selectors,
    extract_text,
    extract_text_by_selectors,
    first_match,
    parse_number,
    select_including_self,
)


BASE_URL = "https://example.com"


def node(html: str) -> Tag:
    """Parse a fragment and return its first element."""
    soup = BeautifulSoup(html, "lxml")
    element = soup.body.find() if soup.body else None
    assert isinstance(element, Tag)
    return element


class TestSelectorFallback:
    """Tests for first_match and select_including_self."""

    def test_first_selector_with_value_wins(self) -> None:
        """Test selectors are tried in order."""
        item = node('<div><h3>Third</h3><h2>Second</h2></div>')

        assert extract_text_by_selectors(item, ("h1", "h2", "h3")) == "Second"

    def test_empty_matches_fall_through(self) -> None:
        """Test an empty match does not stop the fallback chain."""
        item = node("<div><h2>  </h2><span class='title'>Fallback</span></div>")

        assert extract_text_by_selectors(item, ("h2", ".title")) == "Fallback"

    def test_no_match_returns_none(self) -> None:
        """Test None is returned when nothing matches."""
        item = node("<div><p>text</p></div>")

        assert extract_text_by_selectors(item, ("h1", "h2")) is None

    def test_node_itself_is_candidate(self) -> None:
        """Test the container itself can match a selector."""
        item = node('<a href="/x" class="card"><span>inner</span></a>')

        matches = select_including_self(item, "a")
        assert matches[0] is item

    def test_first_match_with_custom_extractor(self) -> None:
        """Test any pure extractor can be plugged in."""
        item = node('<div><time datetime="2024-01-01">Jan 1</time></div>')

        value = first_match(
            item, ("time",), lambda el: extract_attribute(el, "datetime")
        )
        assert value == "2024-01-01"


class TestExtractText:
    """Tests for extract_text."""

    def test_normalizes_whitespace(self) -> None:
        """Test nested whitespace collapses to single spaces."""
        item = node("<h2>  Hello\n   <b>world</b>  </h2>")

        assert extract_text(item) == "Hello world"

    def test_rejects_oversized_text(self) -> None:
        """Test text over the limit is rejected rather than truncated."""
        item = node(f"<p>{'a' * (MAX_TEXT_LENGTH + 1)}</p>")

        assert extract_text(item) is None

    def test_accepts_text_at_limit(self) -> None:
        """Test text exactly at the limit is kept."""
        item = node(f"<p>{'a' * MAX_TEXT_LENGTH}</p>")

        assert extract_text(item) == "a" * MAX_TEXT_LENGTH


class TestExtractLink:
    """Tests for link extraction."""

    def test_resolves_relative_href(self) -> None:
        """Test relative links are resolved against the base URL."""
        assert extract_link(node('<a href="/items/1">x</a>'), BASE_URL) == (
            "https://example.com/items/1"
        )

    def test_keeps_absolute_href(self) -> None:
        """Test absolute links are kept."""
        assert extract_link(node('<a href="https://other.dev/a">x</a>'), BASE_URL) == (
            "https://other.dev/a"
        )

    def test_ignores_pseudo_links(self) -> None:
        """Test fragment, javascript, mailto and tel links are ignored."""
        for href in ("#top", "javascript:void(0)", "mailto:a@b.c", "tel:123"):
            assert extract_link(node(f'<a href="{href}">x</a>'), BASE_URL) is None

    def test_missing_href(self) -> None:
        """Test anchors without href yield None."""
        assert extract_link(node("<a>x</a>"), BASE_URL) is None

    def test_contains_filter(self) -> None:
        """Test links without the required substring are skipped."""
        item = node('<div><a href="/tags/python">tag</a><a href="/items/9">a</a></div>')

        link = extract_link_by_selectors(item, ("a",), BASE_URL, contains="/items/")
        assert link == "https://example.com/items/9"


class TestNumbers:
    """Tests for count parsing."""

    def test_parse_number_with_commas(self) -> None:
        """Test thousands separators are accepted."""
        assert parse_number("1,234 users") == 1234

    def test_parse_number_without_digits(self) -> None:
        """Test non-numeric text yields None."""
        assert parse_number("no likes") is None
        assert parse_number(None) is None

    def test_attribute_wins_over_text(self) -> None:
        """Test a numeric aria-label beats the element text."""
        item = node('<span aria-label="いいね 42">4</span>')

        assert extract_number(item) == 42

    def test_falls_back_to_text(self) -> None:
        """Test the text is used when no attribute is numeric."""
        item = node('<span aria-label="likes">17</span>')

        assert extract_number(item) == 17

    def test_any_numeric_data_attribute(self) -> None:
        """Test any data-* attribute holding a bare number is read."""
        item = node('<span data-bookmark-count="1,042">users</span>')

        assert extract_number(item) == 1042

    def test_non_numeric_data_attribute_ignored(self) -> None:
        """Test data-* values that are not bare numbers fall back to the text."""
        item = node('<span data-testid="like-2" data-kind="x">9</span>')

        assert extract_number(item) == 9

    def test_defaults_to_zero(self) -> None:
        """Test unparseable counts default to 0."""
        assert extract_number(node("<span>none</span>")) == 0

    def test_number_by_selectors(self) -> None:
        """Test the first parseable candidate wins."""
        item = node(
            '<div><span class="like">n/a</span><span data-count="8">x</span></div>'
        )

        assert extract_number_by_selectors(item, (".like", "span[data-count]")) == 8
        assert extract_number_by_selectors(item, (".missing",)) == 0
