"""Tests for the post-login redirect relay."""

import pytest

from caption_gallery.services.redirects import (
    DEFAULT_NEXT_PATH,
    RELAY_COOKIE_MAX_AGE,
    RELAY_COOKIE_NAME,
    clear_relay_cookie,
    read_relay_cookie,
    relay_cookie,
    resolve_next,
    safe_next,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, DEFAULT_NEXT_PATH),
        ("", DEFAULT_NEXT_PATH),
        ("https://evil.example.com", DEFAULT_NEXT_PATH),
        ("gallery", DEFAULT_NEXT_PATH),
        ("/gallery", "/gallery"),
        ("/gallery?q=cat", "/gallery?q=cat"),
        ("//evil.example.com", "//evil.example.com"),
    ],
)
def test_safe_next(value: str | None, expected: str) -> None:
    assert safe_next(value) == expected


def test_safe_next_custom_default() -> None:
    assert safe_next(None, "/") == "/"


def test_query_value_wins_over_cookie() -> None:
    assert resolve_next("/protected", "/gallery") == "/protected"


def test_empty_query_value_still_wins() -> None:
    assert resolve_next("", "/gallery") == DEFAULT_NEXT_PATH


def test_cookie_used_without_query() -> None:
    assert resolve_next(None, "/gallery") == "/gallery"


def test_relay_cookie_attributes() -> None:
    cookie = relay_cookie("/gallery?q=a b", secure=True)

    assert cookie.name == RELAY_COOKIE_NAME
    assert cookie.value == "%2Fgallery%3Fq%3Da%20b"
    assert cookie.max_age == RELAY_COOKIE_MAX_AGE
    assert cookie.path == "/"
    assert cookie.samesite == "lax"
    assert cookie.secure is True
    assert read_relay_cookie(cookie.value) == "/gallery?q=a b"


def test_read_missing_relay_cookie() -> None:
    assert read_relay_cookie(None) is None


def test_clear_relay_cookie_expires_immediately() -> None:
    cookie = clear_relay_cookie()

    assert cookie.name == RELAY_COOKIE_NAME
    assert cookie.value == ""
    assert cookie.is_removal
