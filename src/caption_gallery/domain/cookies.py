"""Request-scoped cookie bookkeeping."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from starlette.responses import Response

SESSION_COOKIE_MAX_AGE = 400 * 24 * 60 * 60


@dataclass(frozen=True)
class CookieWrite:
    """A single Set-Cookie instruction."""

    name: str
    value: str
    max_age: int | None = None
    path: str = "/"
    samesite: str = "lax"
    secure: bool = False
    httponly: bool = False

    @property
    def is_removal(self) -> bool:
        return self.max_age == 0


@dataclass
class CookieJar:
    """Cookies read from a request plus the writes destined for its response.

    Reads see pending writes first, so a value rotated earlier in the request
    is what later readers get. Writes to the same name collapse to the last
    one, and `apply` drains the jar so nothing is emitted twice.
    """

    request_cookies: Mapping[str, str] = field(default_factory=dict)
    secure: bool = False
    _pending: dict[str, CookieWrite] = field(default_factory=dict)

    def get(self, name: str) -> str | None:
        """Return the effective cookie value for this request."""
        pending = self._pending.get(name)
        if pending is not None:
            return None if pending.is_removal else pending.value
        return self.request_cookies.get(name)

    def set(
        self, name: str, value: str, max_age: int | None = SESSION_COOKIE_MAX_AGE
    ) -> None:
        """Queue a cookie write with the jar's default attributes."""
        self.write(
            CookieWrite(name=name, value=value, max_age=max_age, secure=self.secure)
        )

    def delete(self, name: str) -> None:
        """Queue a cookie removal."""
        self.write(CookieWrite(name=name, value="", max_age=0, secure=self.secure))

    def write(self, cookie: CookieWrite) -> None:
        """Queue an explicit cookie write, replacing any earlier one."""
        self._pending[cookie.name] = cookie

    def names(self) -> set[str]:
        """Names of every cookie currently visible to readers."""
        visible = set(self.request_cookies)
        for cookie in self._pending.values():
            if cookie.is_removal:
                visible.discard(cookie.name)
            else:
                visible.add(cookie.name)
        return visible

    @property
    def pending(self) -> list[CookieWrite]:
        return list(self._pending.values())

    def apply(self, response: Response) -> None:
        """Copy queued writes onto the response and clear the queue."""
        for cookie in self._pending.values():
            response.set_cookie(
                key=cookie.name,
                value=cookie.value,
                max_age=cookie.max_age,
                path=cookie.path,
                samesite=cookie.samesite,
                secure=cookie.secure,
                httponly=cookie.httponly,
            )
        self._pending.clear()
