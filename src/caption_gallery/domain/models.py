"""Domain models for the gallery and caption voting."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

VoteValue = Literal[1, -1]


@dataclass(frozen=True)
class AuthUser:
    """Identity cached for display and vote ownership."""

    id: str
    email: str | None


@dataclass(frozen=True)
class AuthSession:
    """Reference to a session owned by the session store."""

    user: AuthUser
    expires_at: int | None = None


@dataclass(frozen=True)
class ImageRecord:
    """Image row as shown in the gallery."""

    id: str
    url: str | None
    description: str | None = None

    @property
    def display_description(self) -> str:
        """Trimmed description, empty when missing."""
        return (self.description or "").strip()


@dataclass(frozen=True)
class CaptionRecord:
    """Caption row, optionally tied to an image."""

    id: str
    content: str | None
    image_id: str | None


@dataclass(frozen=True)
class VoteRecord:
    """A user's vote on a caption."""

    profile_id: str
    caption_id: str
    vote_value: int | None
    created_at: datetime | None = None
    modified_at: datetime | None = None
