"""Per-request bundle of session store, repositories and cookies."""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass

from caption_gallery.domain.cookies import CookieJar
from caption_gallery.services.auth import SessionStore
from caption_gallery.services.gallery import ImageRepository
from caption_gallery.services.voting import CaptionRepository, VoteRepository


@dataclass
class RequestScope:
    """Everything a handler needs to talk to the hosted backend as its user."""

    session_store: SessionStore
    images: ImageRepository
    captions: CaptionRepository
    votes: VoteRepository
    cookies: CookieJar


ScopeFactory = Callable[[Mapping[str, str], bool], Awaitable[RequestScope]]
