"""Supabase-backed session store."""

from dataclasses import dataclass

from supabase import AsyncClient

from caption_gallery.adapters.supabase_errors import AUTH_API_ERRORS, error_message
from caption_gallery.domain.errors import AuthExchangeError, SessionStoreError
from caption_gallery.domain.models import AuthSession, AuthUser
from caption_gallery.services.auth import SessionStore


@dataclass
class SupabaseSessionStore(SessionStore):
    """Supabase implementation of the session store for one request."""

    client: AsyncClient

    async def get_session(self) -> AuthSession | None:
        """Return the cookie-backed session, refreshing it when expired."""
        try:
            session = await self.client.auth.get_session()
        except AUTH_API_ERRORS as exc:
            raise SessionStoreError(error_message(exc)) from exc
        if session is None:
            return None
        return AuthSession(user=_to_user(session.user), expires_at=session.expires_at)

    async def get_user(self) -> AuthUser | None:
        """Validate the session against the auth server."""
        try:
            response = await self.client.auth.get_user()
        except AUTH_API_ERRORS as exc:
            raise SessionStoreError(error_message(exc)) from exc
        if response is None or response.user is None:
            return None
        return _to_user(response.user)

    async def exchange_code_for_session(self, code: str) -> AuthSession:
        """Exchange an OAuth code; the PKCE verifier is read from cookies."""
        try:
            response = await self.client.auth.exchange_code_for_session(
                {"auth_code": code}
            )
        except AUTH_API_ERRORS as exc:
            raise AuthExchangeError(error_message(exc)) from exc
        if response.session is None:
            raise AuthExchangeError("Code exchange returned no session")
        return AuthSession(
            user=_to_user(response.session.user),
            expires_at=response.session.expires_at,
        )

    async def sign_in_with_oauth(self, provider: str, redirect_to: str) -> str:
        """Start an OAuth sign-in and return the provider authorize URL."""
        try:
            response = await self.client.auth.sign_in_with_oauth(
                {"provider": provider, "options": {"redirect_to": redirect_to}}
            )
        except AUTH_API_ERRORS as exc:
            raise SessionStoreError(error_message(exc)) from exc
        return response.url

    async def sign_out(self) -> None:
        """Sign out and drop the session cookies."""
        try:
            await self.client.auth.sign_out()
        except AUTH_API_ERRORS as exc:
            raise SessionStoreError(error_message(exc)) from exc


def _to_user(user: object) -> AuthUser:
    return AuthUser(id=str(getattr(user, "id", "")), email=getattr(user, "email", None))
