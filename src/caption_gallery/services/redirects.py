"""Post-login redirect target relay.

The target a user asked for (``/login?next=/gallery``) has to survive the
round trip through the identity provider. It is parked in a short-lived cookie
before the provider redirect and read back, once, by the auth callback.
"""

from urllib.parse import quote, unquote

from caption_gallery.domain.cookies import CookieWrite

DEFAULT_NEXT_PATH = "/protected"
RELAY_COOKIE_NAME = "sb-next"
RELAY_COOKIE_MAX_AGE = 600


def safe_next(value: str | None, default: str = DEFAULT_NEXT_PATH) -> str:
    """Return the value if it is a same-origin path, else the default."""
    if not value:
        return default
    return value if value.startswith("/") else default


def resolve_next(
    query_value: str | None,
    cookie_value: str | None,
    default: str = DEFAULT_NEXT_PATH,
) -> str:
    """Pick the redirect target, preferring the explicit query parameter."""
    candidate = query_value if query_value is not None else cookie_value
    return safe_next(candidate, default)


def relay_cookie(target: str, secure: bool) -> CookieWrite:
    """Build the cookie that carries the target across the OAuth round trip."""
    return CookieWrite(
        name=RELAY_COOKIE_NAME,
        value=quote(target, safe=""),
        max_age=RELAY_COOKIE_MAX_AGE,
        secure=secure,
    )


def read_relay_cookie(raw: str | None) -> str | None:
    """Decode a relay cookie value as sent back by the browser."""
    if raw is None:
        return None
    return unquote(raw)


def clear_relay_cookie(secure: bool = False) -> CookieWrite:
    """Build the write that expires the relay cookie."""
    return CookieWrite(name=RELAY_COOKIE_NAME, value="", max_age=0, secure=secure)
