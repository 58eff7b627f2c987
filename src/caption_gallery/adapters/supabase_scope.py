"""Per-request Supabase clients bound to request cookies."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from http.cookiejar import CookieJar as HttpCookieJar
from http.cookiejar import DefaultCookiePolicy

import httpx
from supabase import AsyncClientOptions, acreate_client

from caption_gallery.adapters.cookie_storage import CookieStorage
from caption_gallery.adapters.supabase_caption_repository import (
    SupabaseCaptionRepository,
)
from caption_gallery.adapters.supabase_image_repository import SupabaseImageRepository
from caption_gallery.adapters.supabase_session_store import SupabaseSessionStore
from caption_gallery.adapters.supabase_vote_repository import SupabaseVoteRepository
from caption_gallery.config import SupabaseEnv
from caption_gallery.domain.cookies import CookieJar
from caption_gallery.services.scope import RequestScope

logger = logging.getLogger(__name__)

HTTP_TIMEOUT_SECONDS = 30.0


def _shared_http_client() -> httpx.AsyncClient:
    # Shared across users: never keep cookies set by backend responses.
    no_cookies = HttpCookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))
    return httpx.AsyncClient(
        cookies=no_cookies,
        follow_redirects=True,
        timeout=HTTP_TIMEOUT_SECONDS,
    )


@dataclass(frozen=True)
class SupabaseScopeFactory:
    """Opens a Supabase client per request.

    The factory itself is built once per process and owns the connection pool
    every request's client sends through. Clients cannot be shared across
    requests because each one reads and writes that request's cookies.
    """

    env: SupabaseEnv
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, env: SupabaseEnv) -> "SupabaseScopeFactory":
        """Create a factory with a managed httpx session."""
        return cls(env=env, http_client=_shared_http_client())

    async def open(self, cookies: Mapping[str, str], secure: bool) -> RequestScope:
        """Create a cookie-bound client and the repositories that use it."""
        jar = CookieJar(request_cookies=dict(cookies), secure=secure)
        client = await acreate_client(
            self.env.url,
            self.env.anon_key,
            options=AsyncClientOptions(
                storage=CookieStorage(jar),
                flow_type="pkce",
                auto_refresh_token=False,
                persist_session=True,
                httpx_client=self.http_client,
            ),
        )
        client.auth.on_auth_state_change(_log_auth_event)
        return RequestScope(
            session_store=SupabaseSessionStore(client),
            images=SupabaseImageRepository(client),
            captions=SupabaseCaptionRepository(client),
            votes=SupabaseVoteRepository(client),
            cookies=jar,
        )

    async def close(self) -> None:
        """Close the shared connection pool."""
        await self.http_client.aclose()


def _log_auth_event(event: str, session: object | None) -> None:
    logger.debug("Auth state changed: %s (session=%s)", event, session is not None)
