"""Shared test fixtures."""

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from urllib.parse import quote

import pytest

from caption_gallery.config import Settings
from caption_gallery.containers import AppContainer
from caption_gallery.domain.cookies import CookieJar
from caption_gallery.domain.errors import (
    AuthExchangeError,
    DataAccessError,
    SessionStoreError,
)
from caption_gallery.domain.models import (
    AuthSession,
    AuthUser,
    CaptionRecord,
    ImageRecord,
    VoteRecord,
    VoteValue,
)
from caption_gallery.services.auth import AuthGateway, SessionStore
from caption_gallery.services.gallery import ImageRepository
from caption_gallery.services.scope import RequestScope
from caption_gallery.services.voting import (
    CaptionRepository,
    InFlightGuard,
    VoteRepository,
)

AUTH_COOKIE = "sb-test-auth-token"
VERIFIER_COOKIE = "sb-test-auth-token-code-verifier"


@dataclass
class FakeClock:
    """Manually advanced clock."""

    now: datetime = field(
        default_factory=lambda: datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    )

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@dataclass
class InMemoryImageRepository(ImageRepository):
    """In-memory image repository for tests, stored newest first."""

    images: list[ImageRecord] = field(default_factory=list)
    fail: bool = False
    calls: list[tuple[int, int]] = field(default_factory=list)

    async def list_images(self, offset: int, limit: int) -> list[ImageRecord]:
        self.calls.append((offset, limit))
        if self.fail:
            raise DataAccessError("images unavailable")
        return self.images[offset : offset + limit]

    async def list_all_images(self) -> list[ImageRecord]:
        if self.fail:
            raise DataAccessError("images unavailable")
        return list(self.images)


@dataclass
class InMemoryCaptionRepository(CaptionRepository):
    """In-memory caption repository for tests."""

    captions: list[CaptionRecord] = field(default_factory=list)
    missing_columns: set[str] = field(default_factory=set)
    fail: bool = False
    orders: list[str] = field(default_factory=list)

    async def list_captions(self, order_by: str) -> list[CaptionRecord]:
        self.orders.append(order_by)
        if self.fail:
            raise DataAccessError("captions unavailable")
        if order_by in self.missing_columns:
            raise DataAccessError(f"column captions.{order_by} does not exist")
        return list(self.captions)


@dataclass
class InMemoryVoteRepository(VoteRepository):
    """In-memory vote table keyed like the unique (profile_id, caption_id)."""

    rows: dict[tuple[str, str], VoteRecord] = field(default_factory=dict)
    fail: bool = False
    upserts: list[dict[str, object]] = field(default_factory=list)
    gate: asyncio.Event | None = None

    async def list_votes(self, profile_id: str) -> list[VoteRecord]:
        if self.fail:
            raise DataAccessError("votes unavailable")
        return [row for key, row in self.rows.items() if key[0] == profile_id]

    async def upsert_vote(
        self,
        profile_id: str,
        caption_id: str,
        value: VoteValue,
        now: datetime,
        overwrite: bool,
    ) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise DataAccessError("insert failed")
        self.upserts.append(
            {"caption_id": caption_id, "value": value, "overwrite": overwrite}
        )
        existing = self.rows.get((profile_id, caption_id))
        self.rows[(profile_id, caption_id)] = VoteRecord(
            profile_id=profile_id,
            caption_id=caption_id,
            vote_value=value,
            created_at=existing.created_at if existing else now,
            modified_at=now if overwrite else None,
        )


@dataclass
class FakeAuthBackend:
    """Shared auth state standing in for the hosted identity provider."""

    sessions: dict[str, AuthUser] = field(default_factory=dict)
    codes: dict[str, AuthUser] = field(default_factory=dict)
    rotate_tokens: bool = False
    oauth_error: str | None = None
    sign_out_error: str | None = None
    oauth_requests: list[tuple[str, str]] = field(default_factory=list)
    _counter: int = 0

    def issue_token(self, user: AuthUser) -> str:
        self._counter += 1
        token = f"token-{user.id}-{self._counter}"
        self.sessions[token] = user
        return token


@dataclass
class FakeSessionStore(SessionStore):
    """Session store that keeps its token in the request's cookie jar."""

    backend: FakeAuthBackend
    jar: CookieJar

    def _current(self) -> AuthUser | None:
        token = self.jar.get(AUTH_COOKIE)
        if token is None:
            return None
        user = self.backend.sessions.get(token)
        if user is None:
            raise SessionStoreError("Invalid JWT")
        return user

    async def get_session(self) -> AuthSession | None:
        user = self._current()
        return AuthSession(user=user) if user else None

    async def get_user(self) -> AuthUser | None:
        user = self._current()
        if user is not None and self.backend.rotate_tokens:
            self.jar.set(AUTH_COOKIE, self.backend.issue_token(user))
        return user

    async def exchange_code_for_session(self, code: str) -> AuthSession:
        user = self.backend.codes.pop(code, None)
        if user is None or self.jar.get(VERIFIER_COOKIE) is None:
            raise AuthExchangeError("invalid flow state, no valid flow state found")
        self.jar.delete(VERIFIER_COOKIE)
        self.jar.set(AUTH_COOKIE, self.backend.issue_token(user))
        return AuthSession(user=user)

    async def sign_in_with_oauth(self, provider: str, redirect_to: str) -> str:
        if self.backend.oauth_error:
            raise SessionStoreError(self.backend.oauth_error)
        self.backend.oauth_requests.append((provider, redirect_to))
        self.jar.set(VERIFIER_COOKIE, "verifier")
        return (
            f"https://auth.example.com/authorize?provider={provider}"
            f"&redirect_to={quote(redirect_to, safe='')}"
        )

    async def sign_out(self) -> None:
        if self.backend.sign_out_error:
            raise SessionStoreError(self.backend.sign_out_error)
        token = self.jar.get(AUTH_COOKIE)
        if token is not None:
            self.backend.sessions.pop(token, None)
        self.jar.delete(AUTH_COOKIE)


@dataclass
class FakeScopeFactory:
    """Builds request scopes over shared in-memory state."""

    backend: FakeAuthBackend
    images: InMemoryImageRepository
    captions: InMemoryCaptionRepository
    votes: InMemoryVoteRepository
    error: Exception | None = None
    opened: list[bool] = field(default_factory=list)
    closed: bool = False

    async def __call__(self, cookies: Mapping[str, str], secure: bool) -> RequestScope:
        if self.error is not None:
            raise self.error
        self.opened.append(secure)
        jar = CookieJar(request_cookies=dict(cookies), secure=secure)
        return RequestScope(
            session_store=FakeSessionStore(self.backend, jar),
            images=self.images,
            captions=self.captions,
            votes=self.votes,
            cookies=jar,
        )

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_anon_key="anon-key",
    )


@pytest.fixture
def user() -> AuthUser:
    return AuthUser(id="user-1", email="ada@example.com")


@pytest.fixture
def auth_backend() -> FakeAuthBackend:
    return FakeAuthBackend()


@pytest.fixture
def image_repository() -> InMemoryImageRepository:
    return InMemoryImageRepository()


@pytest.fixture
def caption_repository() -> InMemoryCaptionRepository:
    return InMemoryCaptionRepository()


@pytest.fixture
def vote_repository() -> InMemoryVoteRepository:
    return InMemoryVoteRepository()


@pytest.fixture
def scope_factory(
    auth_backend: FakeAuthBackend,
    image_repository: InMemoryImageRepository,
    caption_repository: InMemoryCaptionRepository,
    vote_repository: InMemoryVoteRepository,
) -> FakeScopeFactory:
    return FakeScopeFactory(
        backend=auth_backend,
        images=image_repository,
        captions=caption_repository,
        votes=vote_repository,
    )


@pytest.fixture
def container(settings: Settings, scope_factory: FakeScopeFactory) -> AppContainer:
    return AppContainer(
        settings=settings,
        open_scope=scope_factory,
        auth_gateway=AuthGateway(),
        vote_guard=InFlightGuard(),
        close_resources=scope_factory.close,
    )
