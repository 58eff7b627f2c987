"""Sign-in, OAuth callback, sign-out and the protected landing page."""

import logging

from fastapi import APIRouter, Depends, Form, Query, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.responses import Response

from caption_gallery.api.guard import current_user, get_container, get_scope
from caption_gallery.api.templating import templates
from caption_gallery.containers import AppContainer
from caption_gallery.domain.errors import SessionStoreError
from caption_gallery.domain.models import AuthUser
from caption_gallery.services.auth import LOGIN_PATH
from caption_gallery.services.redirects import safe_next
from caption_gallery.services.scope import RequestScope

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/login", response_class=HTMLResponse)
async def login_page(
    request: Request,
    next_path: str | None = Query(default=None, alias="next"),
    user: AuthUser | None = Depends(current_user),
) -> Response:
    """Render the sign-in card."""
    return _render_login(request, safe_next(next_path), user, error=None)


@router.post("/login")
async def start_login(
    request: Request,
    next_path: str = Form(default="", alias="next"),
    container: AppContainer = Depends(get_container),
    scope: RequestScope = Depends(get_scope),
    user: AuthUser | None = Depends(current_user),
) -> Response:
    """Relay the target through a cookie and hand off to the OAuth provider."""
    origin = container.settings.site_url or str(request.base_url)
    try:
        provider_url = await container.auth_gateway.begin_sign_in(
            scope.session_store, scope.cookies, next_path, origin
        )
    except SessionStoreError as exc:
        logger.warning("OAuth sign-in could not start: %s", exc)
        response = _render_login(request, safe_next(next_path), user, error=str(exc))
    else:
        response = RedirectResponse(provider_url, status_code=status.HTTP_303_SEE_OTHER)
    scope.cookies.apply(response)
    return response


@router.post("/logout")
async def logout(
    container: AppContainer = Depends(get_container),
    scope: RequestScope = Depends(get_scope),
) -> Response:
    """Sign out and return to the home page."""
    await container.auth_gateway.sign_out(scope.session_store)
    response = RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
    scope.cookies.apply(response)
    return response


@router.get("/auth/callback")
async def auth_callback(
    code: str | None = None,
    next_path: str | None = Query(default=None, alias="next"),
    container: AppContainer = Depends(get_container),
    scope: RequestScope = Depends(get_scope),
) -> Response:
    """Exchange the OAuth code and redirect to the relayed target."""
    location = await container.auth_gateway.complete_sign_in(
        scope.session_store, scope.cookies, code, next_path
    )
    response = RedirectResponse(location, status_code=status.HTTP_302_FOUND)
    scope.cookies.apply(response)
    return response


@router.get("/protected", response_class=HTMLResponse)
async def protected_page(
    request: Request, user: AuthUser | None = Depends(current_user)
) -> Response:
    """Landing page for signed-in users."""
    if user is None:
        return RedirectResponse(f"{LOGIN_PATH}?next=/protected")
    return templates.TemplateResponse(request, "protected.html", {"user": user})


def _render_login(
    request: Request, next_path: str, user: AuthUser | None, error: str | None
) -> Response:
    return templates.TemplateResponse(
        request,
        "login.html",
        {"next_path": next_path, "signed_in": user is not None, "error": error},
    )
