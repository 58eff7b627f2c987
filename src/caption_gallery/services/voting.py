"""Caption voting view-model: one caption at a time, one vote per user."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Literal, Protocol

from caption_gallery.domain.errors import DataAccessError, SessionStoreError
from caption_gallery.domain.models import (
    AuthUser,
    CaptionRecord,
    VoteRecord,
    VoteValue,
)
from caption_gallery.services.auth import SessionStore
from caption_gallery.services.cancellation import CancellationToken, is_cancelled
from caption_gallery.services.gallery import ImageRepository

logger = logging.getLogger(__name__)

CREATED_ORDER_COLUMN = "created_datetime_utc"
FALLBACK_ORDER_COLUMN = "id"


class CaptionRepository(Protocol):
    """Read access to caption rows."""

    async def list_captions(self, order_by: str) -> list[CaptionRecord]:
        """Return captions ordered by the given column, descending."""


class VoteRepository(Protocol):
    """Read/upsert access to caption votes."""

    async def list_votes(self, profile_id: str) -> list[VoteRecord]:
        """Return every vote cast by a user."""

    async def upsert_vote(
        self,
        profile_id: str,
        caption_id: str,
        value: VoteValue,
        now: datetime,
        overwrite: bool,
    ) -> None:
        """Insert or overwrite the vote for (profile_id, caption_id)."""


class VotingStatus(StrEnum):
    LOADING = "loading"
    SIGNED_OUT = "signed_out"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class VoteFeedback:
    """User-facing outcome of a vote attempt."""

    kind: Literal["success", "error"]
    message: str


SIGN_IN_REQUIRED = VoteFeedback("error", "Please sign in to vote.")
VOTE_FAILED = VoteFeedback("error", "Unable to record vote. Please try again.")
VOTE_RECORDED = VoteFeedback("success", "Vote recorded.")

FEEDBACK_BY_CODE = {
    "recorded": VOTE_RECORDED,
    "failed": VOTE_FAILED,
    "signin": SIGN_IN_REQUIRED,
}


@dataclass
class InFlightGuard:
    """Set of (user, caption) pairs with a vote write in progress."""

    _keys: set[tuple[str, str]] = field(default_factory=set)

    def acquire(self, key: tuple[str, str]) -> bool:
        if key in self._keys:
            return False
        self._keys.add(key)
        return True

    def release(self, key: tuple[str, str]) -> None:
        self._keys.discard(key)

    def is_held(self, key: tuple[str, str]) -> bool:
        return key in self._keys


def initial_index(captions: list[CaptionRecord], votes: dict[str, int | None]) -> int:
    """Index of the first caption without a vote, or 0."""
    for index, caption in enumerate(captions):
        if not votes.get(caption.id):
            return index
    return 0


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class CaptionVotingView:
    """Loads captions, images and the user's votes, and records new votes."""

    session_store: SessionStore
    captions_repository: CaptionRepository
    images_repository: ImageRepository
    votes_repository: VoteRepository
    in_flight: InFlightGuard = field(default_factory=InFlightGuard)
    clock: Callable[[], datetime] = _utcnow
    status: VotingStatus = VotingStatus.LOADING
    user: AuthUser | None = None
    captions: list[CaptionRecord] = field(default_factory=list)
    image_urls: dict[str, str] = field(default_factory=dict)
    votes: dict[str, int | None] = field(default_factory=dict)
    error: str | None = None
    feedback: VoteFeedback | None = None
    index: int = 0

    async def load(self, cancel: CancellationToken | None = None) -> None:
        """Run the load sequence; the first failing step ends it."""
        self.status = VotingStatus.LOADING
        self.error = None
        try:
            session = await self.session_store.get_session()
        except SessionStoreError as exc:
            self._fail(str(exc))
            return
        if is_cancelled(cancel):
            return
        if session is None:
            self.user = None
            self._clear()
            self.status = VotingStatus.SIGNED_OUT
            return
        self.user = session.user

        try:
            captions = await self._fetch_captions()
        except DataAccessError as exc:
            self._fail(str(exc))
            return
        if is_cancelled(cancel):
            return

        try:
            images = await self.images_repository.list_all_images()
        except DataAccessError as exc:
            self._fail(str(exc))
            return
        if is_cancelled(cancel):
            return

        try:
            votes = await self.votes_repository.list_votes(session.user.id)
        except DataAccessError as exc:
            self._fail(str(exc))
            return
        if is_cancelled(cancel):
            return

        self.captions = captions
        self.image_urls = {
            image.id: image.url for image in images if image.id and image.url
        }
        self.votes = {
            vote.caption_id: vote.vote_value for vote in votes if vote.caption_id
        }
        self.index = initial_index(self.captions, self.votes)
        self.status = VotingStatus.READY

    async def _fetch_captions(self) -> list[CaptionRecord]:
        try:
            return await self.captions_repository.list_captions(CREATED_ORDER_COLUMN)
        except DataAccessError as exc:
            logger.info(
                "Caption ordering by %s unavailable: %s", CREATED_ORDER_COLUMN, exc
            )
        return await self.captions_repository.list_captions(FALLBACK_ORDER_COLUMN)

    def _fail(self, message: str) -> None:
        logger.warning("Caption voting load failed: %s", message)
        self.error = message
        self._clear()
        self.status = VotingStatus.ERROR

    def _clear(self) -> None:
        self.captions = []
        self.image_urls = {}
        self.votes = {}
        self.index = 0

    def is_voting(self, caption_id: str) -> bool:
        if self.user is None:
            return False
        return self.in_flight.is_held((self.user.id, caption_id))

    async def submit_vote(self, caption_id: str, value: VoteValue) -> bool:
        """Upsert the user's vote; local state changes only on success."""
        if value not in (1, -1):
            raise ValueError(f"Vote value must be 1 or -1, got {value!r}")
        if self.user is None:
            self.feedback = SIGN_IN_REQUIRED
            return False
        key = (self.user.id, caption_id)
        if not self.in_flight.acquire(key):
            return False
        self.feedback = None
        overwrite = self.votes.get(caption_id) is not None
        try:
            await self.votes_repository.upsert_vote(
                profile_id=self.user.id,
                caption_id=caption_id,
                value=value,
                now=self.clock(),
                overwrite=overwrite,
            )
        except DataAccessError:
            logger.exception("Vote error", extra={"caption_id": caption_id})
            self.feedback = VOTE_FAILED
            return False
        finally:
            self.in_flight.release(key)
        self.votes[caption_id] = value
        self.feedback = VOTE_RECORDED
        return True

    @property
    def total(self) -> int:
        return len(self.captions)

    @property
    def current_caption(self) -> CaptionRecord | None:
        if 0 <= self.index < self.total:
            return self.captions[self.index]
        return None

    @property
    def current_vote(self) -> int | None:
        caption = self.current_caption
        return self.votes.get(caption.id) if caption else None

    @property
    def current_image_url(self) -> str | None:
        caption = self.current_caption
        if caption is None or not caption.image_id:
            return None
        return self.image_urls.get(caption.image_id)

    @property
    def has_vote_for_current(self) -> bool:
        return self.current_vote is not None

    @property
    def can_go_prev(self) -> bool:
        return self.index > 0

    @property
    def can_go_next(self) -> bool:
        return self.has_vote_for_current and self.index < self.total - 1

    def go_to(self, index: int) -> None:
        self.index = max(0, min(index, self.total - 1))

    def prev(self) -> None:
        if self.can_go_prev:
            self.index -= 1

    def next(self) -> None:
        """Advance; requires a vote on the current caption."""
        if self.can_go_next:
            self.index += 1

    def handle_key(self, key: str) -> None:
        """Arrow-key shortcut. Not gated on having voted, unlike `next`."""
        if key == "ArrowLeft":
            self.go_to(self.index - 1)
        elif key == "ArrowRight":
            self.go_to(self.index + 1)

    @property
    def voted_count(self) -> int:
        return sum(
            1 for caption in self.captions if self.votes.get(caption.id) is not None
        )

    @property
    def remaining(self) -> int:
        return max(0, self.total - self.voted_count)

    @property
    def progress_label(self) -> str:
        if self.total == 0:
            return "CAPTION 0 / 0"
        return f"CAPTION {self.index + 1} / {self.total}"

    @property
    def display_email(self) -> str | None:
        if self.user is None:
            return None
        return self.user.email or "Logged in"
