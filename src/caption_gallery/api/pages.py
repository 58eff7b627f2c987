"""Caption voting and gallery pages."""

from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.responses import Response

from caption_gallery.api.guard import current_user, get_container, get_scope
from caption_gallery.api.templating import templates
from caption_gallery.containers import AppContainer
from caption_gallery.domain.models import AuthUser
from caption_gallery.services.auth import LOGIN_PATH
from caption_gallery.services.cancellation import CancellationToken
from caption_gallery.services.gallery import (
    NEW_ITEM_HIGHLIGHT,
    GalleryView,
    parse_sort,
)
from caption_gallery.services.scope import RequestScope
from caption_gallery.services.voting import FEEDBACK_BY_CODE, CaptionVotingView

router = APIRouter(tags=["pages"])

MAX_GALLERY_PAGES = 50


def _voting_view(container: AppContainer, scope: RequestScope) -> CaptionVotingView:
    return CaptionVotingView(
        session_store=scope.session_store,
        captions_repository=scope.captions,
        images_repository=scope.images,
        votes_repository=scope.votes,
        in_flight=container.vote_guard,
    )


def _home(index: int, feedback: str | None = None) -> RedirectResponse:
    params: dict[str, object] = {"index": index}
    if feedback:
        params["feedback"] = feedback
    return RedirectResponse(
        f"/?{urlencode(params)}", status_code=status.HTTP_303_SEE_OTHER
    )


def clamp_pages(pages: int) -> int:
    return max(1, min(pages, MAX_GALLERY_PAGES))


async def cancel_if_disconnected(request: Request, cancel: CancellationToken) -> bool:
    """Cancel pending loads once the client has gone away."""
    if await request.is_disconnected():
        cancel.cancel()
    return cancel.cancelled


def _feedback_code(view: CaptionVotingView) -> str | None:
    for code, feedback in FEEDBACK_BY_CODE.items():
        if view.feedback == feedback:
            return code
    return None


@router.get("/", response_class=HTMLResponse)
async def voting_page(
    request: Request,
    index: int | None = None,
    feedback: str | None = None,
    container: AppContainer = Depends(get_container),
    scope: RequestScope = Depends(get_scope),
) -> Response:
    """One caption at a time with its image and vote buttons."""
    view = _voting_view(container, scope)
    await view.load()
    if index is not None:
        view.go_to(index)
    view.feedback = FEEDBACK_BY_CODE.get(feedback or "")
    return templates.TemplateResponse(request, "voting.html", {"view": view})


@router.post("/votes")
async def submit_vote(
    caption_id: str = Form(...),
    value: int = Form(...),
    index: int = Form(default=0),
    container: AppContainer = Depends(get_container),
    scope: RequestScope = Depends(get_scope),
) -> Response:
    """Record an up/down vote and return to the same caption."""
    if value not in (1, -1):
        raise HTTPException(
            status_code=422,
            detail="value must be 1 or -1",
        )
    view = _voting_view(container, scope)
    await view.load()
    await view.submit_vote(caption_id, value)
    return _home(index, _feedback_code(view))


@router.get("/captions/prev")
async def previous_caption(
    index: int = 0,
    container: AppContainer = Depends(get_container),
    scope: RequestScope = Depends(get_scope),
) -> Response:
    view = _voting_view(container, scope)
    await view.load()
    view.go_to(index)
    view.prev()
    return _home(view.index)


@router.get("/captions/next")
async def next_caption(
    index: int = 0,
    container: AppContainer = Depends(get_container),
    scope: RequestScope = Depends(get_scope),
) -> Response:
    """Advance only when the current caption already has a vote."""
    view = _voting_view(container, scope)
    await view.load()
    view.go_to(index)
    view.next()
    return _home(view.index)


@router.get("/captions/key")
async def caption_key(
    key: str,
    index: int = 0,
    container: AppContainer = Depends(get_container),
    scope: RequestScope = Depends(get_scope),
) -> Response:
    """Arrow-key navigation; moves even without a vote on the current caption."""
    view = _voting_view(container, scope)
    await view.load()
    view.go_to(index)
    view.handle_key(key)
    return _home(view.index)


@router.get("/gallery", response_class=HTMLResponse)
async def gallery_page(  # noqa: PLR0913
    request: Request,
    q: str = "",
    sort: str | None = None,
    pages: int = 1,
    selected: str | None = None,
    user: AuthUser | None = Depends(current_user),
    scope: RequestScope = Depends(get_scope),
) -> Response:
    """Paginated, searchable image grid with a detail overlay."""
    if user is None:
        return RedirectResponse(f"{LOGIN_PATH}?next=/gallery")
    requested_pages = clamp_pages(pages)
    cancel = CancellationToken()
    view = GalleryView(scope.images)
    await view.load(cancel)
    loaded_pages = 1
    while loaded_pages < requested_pages and view.can_load_more:
        if await cancel_if_disconnected(request, cancel):
            break
        await view.load_more(cancel)
        loaded_pages += 1
    view.search = q
    view.sort = parse_sort(sort)
    if selected:
        view.select(selected)
    return templates.TemplateResponse(
        request,
        "gallery.html",
        {
            "view": view,
            "user": user,
            "pages": loaded_pages,
            "new_ids": view.new_item_ids,
            "highlight_ms": int(NEW_ITEM_HIGHLIGHT.total_seconds() * 1000),
        },
    )
