"""Supabase auth storage backed by request/response cookies."""

import base64
import binascii
import logging
import re
from dataclasses import dataclass

from supabase_auth import AsyncSupportedStorage

from caption_gallery.domain.cookies import CookieJar

logger = logging.getLogger(__name__)

MAX_CHUNK_SIZE = 3180
BASE64_PREFIX = "base64-"


def encode_cookie_value(value: str) -> str:
    """Encode a stored value into cookie-safe characters."""
    encoded = base64.urlsafe_b64encode(value.encode()).decode().rstrip("=")
    return f"{BASE64_PREFIX}{encoded}"


def decode_cookie_value(raw: str) -> str:
    """Reverse `encode_cookie_value`; values without the prefix pass through.

    Raises ValueError when an encoded value is corrupt.
    """
    if not raw.startswith(BASE64_PREFIX):
        return raw
    encoded = raw[len(BASE64_PREFIX) :]
    padding = "=" * (-len(encoded) % 4)
    return base64.urlsafe_b64decode(encoded + padding).decode()


def split_chunks(value: str, size: int = MAX_CHUNK_SIZE) -> list[str]:
    if not value:
        return [""]
    return [value[start : start + size] for start in range(0, len(value), size)]


@dataclass
class CookieStorage(AsyncSupportedStorage):
    """Async storage the Supabase auth client uses to persist its session.

    Each key is a cookie name, so the session token and the PKCE code verifier
    both travel as cookies. Values longer than one chunk are split across
    `<key>.0`, `<key>.1`, ... so no single cookie exceeds browser limits.
    """

    jar: CookieJar
    chunk_size: int = MAX_CHUNK_SIZE

    async def get_item(self, key: str) -> str | None:
        raw = self.jar.get(key)
        if raw is None:
            chunks = []
            while (chunk := self.jar.get(f"{key}.{len(chunks)}")) is not None:
                chunks.append(chunk)
            if not chunks:
                return None
            raw = "".join(chunks)
        try:
            return decode_cookie_value(raw)
        except (binascii.Error, UnicodeDecodeError):
            logger.warning("Discarding undecodable auth cookie %s", key)
            return None

    async def set_item(self, key: str, value: str) -> None:
        chunks = split_chunks(encode_cookie_value(value), self.chunk_size)
        if len(chunks) == 1:
            self.jar.set(key, chunks[0])
            self._delete_chunks(key)
            return
        if self.jar.get(key) is not None:
            self.jar.delete(key)
        for index, chunk in enumerate(chunks):
            self.jar.set(f"{key}.{index}", chunk)
        self._delete_chunks(key, keep=len(chunks))

    async def remove_item(self, key: str) -> None:
        self.jar.delete(key)
        self._delete_chunks(key)

    def _delete_chunks(self, key: str, keep: int = 0) -> None:
        pattern = re.compile(rf"{re.escape(key)}\.(\d+)")
        for name in self.jar.names():
            match = pattern.fullmatch(name)
            if match and int(match.group(1)) >= keep:
                self.jar.delete(name)
