"""Supabase-backed caption repository."""

from dataclasses import dataclass

from supabase import AsyncClient

from caption_gallery.adapters.supabase_errors import DATA_API_ERRORS, data_access_error
from caption_gallery.domain.models import CaptionRecord
from caption_gallery.services.voting import CaptionRepository


@dataclass
class SupabaseCaptionRepository(CaptionRepository):
    """Supabase implementation for caption reads."""

    client: AsyncClient

    async def list_captions(self, order_by: str) -> list[CaptionRecord]:
        """Return captions ordered by `order_by`, descending."""
        try:
            response = await (
                self.client.table("captions")
                .select("id, content, image_id")
                .order(order_by, desc=True)
                .execute()
            )
        except DATA_API_ERRORS as exc:
            raise data_access_error(exc) from exc
        return [
            CaptionRecord(
                id=str(row["id"]),
                content=row.get("content"),
                image_id=str(row["image_id"]) if row.get("image_id") else None,
            )
            for row in response.data or []
        ]
