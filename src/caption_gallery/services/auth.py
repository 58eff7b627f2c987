"""Session handoff: sign-in initiation, OAuth callback, sign-out."""

import logging
from dataclasses import dataclass
from typing import Protocol

from caption_gallery.domain.cookies import CookieJar
from caption_gallery.domain.errors import AuthExchangeError, SessionStoreError
from caption_gallery.domain.models import AuthSession, AuthUser
from caption_gallery.services.redirects import (
    DEFAULT_NEXT_PATH,
    RELAY_COOKIE_NAME,
    clear_relay_cookie,
    read_relay_cookie,
    relay_cookie,
    resolve_next,
    safe_next,
)

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/auth/callback"
LOGIN_PATH = "/login"


class SessionStore(Protocol):
    """Request-scoped view of the hosted auth provider."""

    async def get_session(self) -> AuthSession | None:
        """Return the current session, if any."""

    async def get_user(self) -> AuthUser | None:
        """Validate the session with the provider and return its user."""

    async def exchange_code_for_session(self, code: str) -> AuthSession:
        """Exchange an OAuth authorization code for a session."""

    async def sign_in_with_oauth(self, provider: str, redirect_to: str) -> str:
        """Start an OAuth sign-in and return the provider URL."""

    async def sign_out(self) -> None:
        """End the current session."""


@dataclass
class AuthGateway:
    """Orchestrates the OAuth round trip and session refresh."""

    provider: str = "google"
    login_path: str = LOGIN_PATH
    default_next: str = DEFAULT_NEXT_PATH

    async def begin_sign_in(
        self,
        store: SessionStore,
        cookies: CookieJar,
        next_value: str | None,
        origin: str,
    ) -> str:
        """Park the redirect target in the relay cookie and return the provider URL."""
        target = safe_next(next_value, self.default_next)
        cookies.write(relay_cookie(target, secure=cookies.secure))
        redirect_to = f"{origin.rstrip('/')}{CALLBACK_PATH}"
        return await store.sign_in_with_oauth(self.provider, redirect_to)

    async def complete_sign_in(
        self,
        store: SessionStore,
        cookies: CookieJar,
        code: str | None,
        next_query: str | None,
    ) -> str:
        """Handle the provider callback and return the redirect location.

        The relay cookie is cleared on every branch.
        """
        relayed = read_relay_cookie(cookies.get(RELAY_COOKIE_NAME))
        cookies.write(clear_relay_cookie(secure=cookies.secure))
        if code:
            try:
                await store.exchange_code_for_session(code)
            except AuthExchangeError as exc:
                logger.warning("Auth code exchange failed: %s", exc)
                return self.login_path
        return resolve_next(next_query, relayed, self.default_next)

    async def sign_out(self, store: SessionStore) -> bool:
        """Sign out, returning False when the provider reported an error."""
        try:
            await store.sign_out()
        except SessionStoreError:
            logger.exception("Sign-out failed")
            return False
        return True

    async def refresh(self, store: SessionStore) -> AuthUser | None:
        """Refresh the session from cookies; failures leave the user signed out."""
        try:
            return await store.get_user()
        except SessionStoreError as exc:
            logger.info("Session validation failed: %s", exc)
            return None
