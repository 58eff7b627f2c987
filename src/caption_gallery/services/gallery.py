"""Paginated image gallery view-model."""

import logging
import unicodedata
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Protocol

from caption_gallery.domain.errors import DataAccessError
from caption_gallery.domain.models import ImageRecord
from caption_gallery.services.cancellation import CancellationToken, is_cancelled

logger = logging.getLogger(__name__)

PAGE_SIZE = 20
NEW_ITEM_HIGHLIGHT = timedelta(milliseconds=650)


class ImageRepository(Protocol):
    """Read access to image rows."""

    async def list_images(self, offset: int, limit: int) -> list[ImageRecord]:
        """Return a page of images ordered by id descending."""

    async def list_all_images(self) -> list[ImageRecord]:
        """Return every image row."""


class SortOption(StrEnum):
    NEWEST = "newest"
    AZ = "az"
    ZA = "za"


class LoadStatus(StrEnum):
    LOADING = "loading"
    ERROR = "error"
    READY = "ready"


def collation_key(text: str) -> tuple[str, str, str]:
    """Sort key approximating locale-aware comparison.

    Base letters decide first, then accents, then case with lowercase first.
    """
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(char for char in decomposed if not unicodedata.combining(char))
    return base.casefold(), decomposed.casefold(), text.swapcase()


def filter_images(items: list[ImageRecord], query: str) -> list[ImageRecord]:
    """Case-insensitive substring match on the description."""
    needle = query.strip().lower()
    if not needle:
        return list(items)
    return [item for item in items if needle in item.display_description.lower()]


def sort_images(items: list[ImageRecord], sort: SortOption) -> list[ImageRecord]:
    """Order by description; `newest` keeps fetch order."""
    if sort == SortOption.NEWEST:
        return list(items)
    return sorted(
        items,
        key=lambda item: collation_key(item.display_description),
        reverse=sort == SortOption.ZA,
    )


def parse_sort(raw: str | None) -> SortOption:
    try:
        return SortOption(raw or SortOption.NEWEST)
    except ValueError:
        return SortOption.NEWEST


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class GalleryView:
    """Holds gallery state across initial load, pagination and filtering."""

    repository: ImageRepository
    page_size: int = PAGE_SIZE
    clock: Callable[[], datetime] = _utcnow
    status: LoadStatus = LoadStatus.LOADING
    loading_more: bool = False
    items: list[ImageRecord] = field(default_factory=list)
    has_more: bool = False
    error: str | None = None
    search: str = ""
    sort: SortOption = SortOption.NEWEST
    selected: ImageRecord | None = None
    _new_ids: set[str] = field(default_factory=set)
    _new_until: datetime | None = None

    async def load(self, cancel: CancellationToken | None = None) -> None:
        """Fetch the first page."""
        self.status = LoadStatus.LOADING
        self.error = None
        try:
            page = await self.repository.list_images(0, self.page_size)
        except DataAccessError as exc:
            if is_cancelled(cancel):
                return
            logger.warning("Failed to load images: %s", exc)
            self.error = str(exc)
            self.status = LoadStatus.ERROR
            return
        if is_cancelled(cancel):
            return
        self.items = page
        self.has_more = len(page) == self.page_size
        self.status = LoadStatus.READY

    @property
    def can_load_more(self) -> bool:
        return (
            self.status is LoadStatus.READY
            and self.has_more
            and not self.loading_more
        )

    async def load_more(
        self, cancel: CancellationToken | None = None
    ) -> list[ImageRecord]:
        """Fetch the next contiguous page; no-op while busy or at end of data."""
        if not self.can_load_more:
            return []
        self.loading_more = True
        offset = len(self.items)
        try:
            page = await self.repository.list_images(offset, self.page_size)
        except DataAccessError as exc:
            self.loading_more = False
            if is_cancelled(cancel):
                return []
            logger.warning("Failed to load more images at offset %s: %s", offset, exc)
            self.error = str(exc)
            self.status = LoadStatus.ERROR
            return []
        self.loading_more = False
        if is_cancelled(cancel):
            return []
        self.items = [*self.items, *page]
        self.has_more = len(page) == self.page_size
        if page:
            self._new_ids = {item.id for item in page}
            self._new_until = self.clock() + NEW_ITEM_HIGHLIGHT
        return page

    @property
    def new_item_ids(self) -> set[str]:
        """Ids appended by the last `load_more`, until the highlight expires."""
        if self._new_until is None or self.clock() >= self._new_until:
            self._new_ids = set()
            self._new_until = None
        return set(self._new_ids)

    @property
    def visible(self) -> list[ImageRecord]:
        return sort_images(filter_images(self.items, self.search), self.sort)

    @property
    def results_count(self) -> int:
        return len(self.visible)

    def reset_filters(self) -> None:
        self.search = ""
        self.sort = SortOption.NEWEST

    def select(self, image_id: str) -> ImageRecord | None:
        """Open the detail overlay for a loaded image."""
        self.selected = next(
            (item for item in self.items if item.id == image_id), None
        )
        return self.selected

    def close_detail(self) -> None:
        self.selected = None
