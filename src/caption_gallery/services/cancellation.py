"""Cooperative cancellation for view loads."""

from dataclasses import dataclass


@dataclass
class CancellationToken:
    """Flag checked by views after each await before applying results."""

    _cancelled: bool = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


def is_cancelled(token: CancellationToken | None) -> bool:
    """Return true when a token was given and has been cancelled."""
    return token is not None and token.cancelled
