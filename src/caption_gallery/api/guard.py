"""Route guard middleware and request-scope dependencies."""

from fastapi import FastAPI, Request
from starlette.middleware.base import RequestResponseEndpoint
from starlette.responses import Response

from caption_gallery.containers import AppContainer
from caption_gallery.domain.models import AuthUser
from caption_gallery.services.scope import RequestScope

_UNGUARDED_PREFIXES = ("/static/",)
_UNGUARDED_PATHS = {"/favicon.ico"}


def is_guarded(path: str) -> bool:
    """Every path except static assets and the favicon."""
    return path not in _UNGUARDED_PATHS and not path.startswith(_UNGUARDED_PREFIXES)


def is_secure_request(request: Request) -> bool:
    """True when the client reached us over HTTPS, proxies included."""
    forwarded = request.headers.get("x-forwarded-proto")
    scheme = forwarded.split(",")[0].strip() if forwarded else request.url.scheme
    return scheme == "https"


def install_route_guard(app: FastAPI) -> None:
    """Refresh the session on every guarded request and write back cookies.

    A missing or invalid session never blocks the request; pages decide. A
    failure to build the backend client does, and propagates.
    """

    @app.middleware("http")
    async def route_guard(
        request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not is_guarded(request.url.path):
            return await call_next(request)
        container: AppContainer = request.app.state.container
        scope = await container.open_scope(
            request.cookies, is_secure_request(request)
        )
        request.state.scope = scope
        request.state.user = await container.auth_gateway.refresh(
            scope.session_store
        )
        response = await call_next(request)
        scope.cookies.apply(response)
        return response


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def get_scope(request: Request) -> RequestScope:
    return request.state.scope


def current_user(request: Request) -> AuthUser | None:
    return getattr(request.state, "user", None)
