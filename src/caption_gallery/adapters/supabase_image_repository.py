"""Supabase-backed image repository."""

from dataclasses import dataclass

from supabase import AsyncClient

from caption_gallery.adapters.supabase_errors import DATA_API_ERRORS, data_access_error
from caption_gallery.domain.models import ImageRecord
from caption_gallery.services.gallery import ImageRepository

_COLUMNS = "id, url, image_description"


@dataclass
class SupabaseImageRepository(ImageRepository):
    """Supabase implementation for image reads."""

    client: AsyncClient

    async def list_images(self, offset: int, limit: int) -> list[ImageRecord]:
        """Return images newest-first within [offset, offset + limit)."""
        try:
            response = await (
                self.client.table("images")
                .select(_COLUMNS)
                .order("id", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except DATA_API_ERRORS as exc:
            raise data_access_error(exc) from exc
        return [_parse_image(row) for row in response.data or []]

    async def list_all_images(self) -> list[ImageRecord]:
        """Return every image row."""
        try:
            response = await self.client.table("images").select(_COLUMNS).execute()
        except DATA_API_ERRORS as exc:
            raise data_access_error(exc) from exc
        return [_parse_image(row) for row in response.data or []]


def _parse_image(row: dict[str, object]) -> ImageRecord:
    url = row.get("url")
    description = row.get("image_description")
    return ImageRecord(
        id=str(row["id"]),
        url=str(url) if url else None,
        description=str(description) if description is not None else None,
    )
