"""Translation of Supabase data and auth API failures."""

import httpx
from supabase import AuthError, PostgrestAPIError

from caption_gallery.domain.errors import DataAccessError

DATA_API_ERRORS = (PostgrestAPIError, httpx.HTTPError)
AUTH_API_ERRORS = (AuthError, httpx.HTTPError)


def error_message(exc: Exception) -> str:
    """The provider's message, falling back to the exception type."""
    return getattr(exc, "message", None) or str(exc) or type(exc).__name__


def data_access_error(exc: Exception) -> DataAccessError:
    """Wrap a PostgREST or transport error, keeping the provider's message."""
    return DataAccessError(error_message(exc))
