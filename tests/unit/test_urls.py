"""Unit tests for URL helpers."""

import pytest

from messaging.utils.urls import (
    absolute_url,
    conversation_from_query,
    conversation_query,
)

ORIGIN = "https://care.example.com"


class TestAbsoluteUrl:
    """Image path normalization."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/uploads/a.png", f"{ORIGIN}/uploads/a.png"),
            ("uploads/a.png", f"{ORIGIN}/uploads/a.png"),
            ("https://cdn.example.com/a.png", "https://cdn.example.com/a.png"),
            (None, None),
            ("", ""),
        ],
    )
    def test_normalizes(self, path: str | None, expected: str | None) -> None:
        assert absolute_url(path, ORIGIN) == expected


class TestConversationQuery:
    """Active conversation mirrored in the query string."""

    def test_build(self) -> None:
        assert conversation_query("u1") == "?conversation=u1"

    def test_build_escapes(self) -> None:
        assert conversation_query("a b&c") == "?conversation=a+b%26c"

    def test_build_none(self) -> None:
        assert conversation_query(None) == ""

    def test_parse_with_and_without_question_mark(self) -> None:
        assert conversation_from_query("?conversation=u1") == "u1"
        assert conversation_from_query("tab=x&conversation=u2") == "u2"

    def test_parse_missing(self) -> None:
        assert conversation_from_query(None) is None
        assert conversation_from_query("?tab=x") is None
        assert conversation_from_query("?conversation=") is None

    def test_round_trip_special_characters(self) -> None:
        assert conversation_from_query(conversation_query("a b&c")) == "a b&c"
