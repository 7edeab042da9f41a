"""텍스트 정리/길이 제한 유틸리티 테스트."""

from __future__ import annotations

import pytest
from teamcity_bridge.text import (
    DISCORD_LIMITS,
    escape_markup,
    format_field_value,
    format_title,
    sanitize,
    truncate,
    validate_url,
)


class TestTruncate:
    def test_short_text_unchanged(self) -> None:
        assert truncate("hello", 10) == "hello"

    def test_exact_length_unchanged(self) -> None:
        assert truncate("abcde", 5) == "abcde"

    def test_long_text_gets_suffix(self) -> None:
        result = truncate("abcdefghij", 8)
        assert result == "abcde..."
        assert len(result) == 8

    def test_custom_suffix(self) -> None:
        assert truncate("abcdefghij", 5, suffix="~") == "abcd~"

    def test_limit_shorter_than_suffix(self) -> None:
        assert truncate("abcdef", 2) == ".."
        assert truncate("abcdef", 0) == ""

    @pytest.mark.parametrize("text", ["a", "abc", "hello world", "x" * 40])
    def test_never_longer_than_limit(self, text: str) -> None:
        for limit in range(12):
            assert len(truncate(text, limit)) <= limit

    @pytest.mark.parametrize("value", [None, "", 123, ["a"]])
    def test_non_string_returns_empty(self, value) -> None:
        assert truncate(value, 10) == ""


class TestSanitize:
    def test_control_chars_and_whitespace(self) -> None:
        assert sanitize("  a\x00b\n\n  c\t ") == "a b c"

    def test_non_string(self) -> None:
        assert sanitize(None) == ""
        assert sanitize(42) == ""

    @pytest.mark.parametrize("text", ["  a\x00b\n\n  c\t ", "plain", "\x7f\x01", " tab\tand\r\nnewline "])
    def test_idempotent(self, text: str) -> None:
        once = sanitize(text)
        assert sanitize(once) == once


class TestFieldFormatters:
    def test_title_limit(self) -> None:
        result = format_title("x" * 300)
        assert len(result) == DISCORD_LIMITS["title"]
        assert result.endswith("...")

    def test_field_value_limit(self) -> None:
        result = format_field_value("y" * 2000)
        assert len(result) == DISCORD_LIMITS["field_value"]

    def test_sanitizes_before_truncating(self) -> None:
        assert format_field_value("line1\nline2") == "line1 line2"


class TestValidateUrl:
    def test_valid_https(self) -> None:
        url = "https://tc.example.com/viewLog.html?buildId=1"
        assert validate_url(url) == url

    def test_trims_whitespace(self) -> None:
        assert validate_url("  https://tc.example.com  ") == "https://tc.example.com"

    def test_relative_passthrough(self) -> None:
        assert validate_url("/app/rest/builds/id:1") == "/app/rest/builds/id:1"

    @pytest.mark.parametrize("url", [
        "https://tc example.com",
        "https://tc.example.com:99999/",
        "http://",
    ])
    def test_malformed_absolute(self, url: str) -> None:
        assert validate_url(url) == ""

    def test_non_string(self) -> None:
        assert validate_url(None) == ""


class TestEscapeMarkup:
    def test_escapes_markdown(self) -> None:
        assert escape_markup("*bold* _it_") == "\\*bold\\* \\_it\\_"

    def test_non_string(self) -> None:
        assert escape_markup(None) == ""
