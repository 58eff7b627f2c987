"""Supabase-backed caption vote repository."""

from dataclasses import dataclass
from datetime import datetime

from supabase import AsyncClient

from caption_gallery.adapters.supabase_errors import DATA_API_ERRORS, data_access_error
from caption_gallery.domain.models import VoteRecord, VoteValue
from caption_gallery.services.voting import VoteRepository

VOTE_CONFLICT_TARGET = "profile_id,caption_id"


@dataclass
class SupabaseVoteRepository(VoteRepository):
    """Supabase implementation for caption votes."""

    client: AsyncClient

    async def list_votes(self, profile_id: str) -> list[VoteRecord]:
        """Return the user's votes."""
        try:
            response = await (
                self.client.table("caption_votes")
                .select("caption_id, vote_value")
                .eq("profile_id", profile_id)
                .execute()
            )
        except DATA_API_ERRORS as exc:
            raise data_access_error(exc) from exc
        return [
            VoteRecord(
                profile_id=profile_id,
                caption_id=str(row["caption_id"]),
                vote_value=row.get("vote_value"),
            )
            for row in response.data or []
            if row.get("caption_id")
        ]

    async def upsert_vote(
        self,
        profile_id: str,
        caption_id: str,
        value: VoteValue,
        now: datetime,
        overwrite: bool,
    ) -> None:
        """Upsert on (profile_id, caption_id).

        A first vote carries the creation time; an overwrite only carries the
        modification time so the first creation time survives the merge.
        """
        payload: dict[str, object] = {
            "profile_id": profile_id,
            "caption_id": caption_id,
            "vote_value": value,
        }
        if overwrite:
            payload["modified_datetime_utc"] = now.isoformat()
        else:
            payload["created_datetime_utc"] = now.isoformat()
        try:
            await (
                self.client.table("caption_votes")
                .upsert(payload, on_conflict=VOTE_CONFLICT_TARGET)
                .execute()
            )
        except DATA_API_ERRORS as exc:
            raise data_access_error(exc) from exc
