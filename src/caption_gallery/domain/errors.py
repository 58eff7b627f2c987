"""Domain-level exceptions raised by adapters."""


class SessionStoreError(RuntimeError):
    """The session store rejected or failed an auth operation."""


class AuthExchangeError(SessionStoreError):
    """An OAuth authorization code could not be exchanged for a session."""


class DataAccessError(RuntimeError):
    """A table read or write failed."""
