"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from caption_gallery.adapters.supabase_scope import SupabaseScopeFactory
from caption_gallery.config import Settings, require_supabase_env
from caption_gallery.services.auth import AuthGateway
from caption_gallery.services.scope import ScopeFactory
from caption_gallery.services.voting import InFlightGuard


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    open_scope: ScopeFactory
    auth_gateway: AuthGateway
    vote_guard: InFlightGuard
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container.

    Raises ConfigurationError when the Supabase URL or anon key is missing.
    """
    resolved_settings = settings or Settings()
    scope_factory = SupabaseScopeFactory.create(
        require_supabase_env(resolved_settings)
    )
    auth_gateway = AuthGateway(provider=resolved_settings.oauth_provider)

    async def close_resources() -> None:
        await scope_factory.close()

    return AppContainer(
        settings=resolved_settings,
        open_scope=scope_factory.open,
        auth_gateway=auth_gateway,
        vote_guard=InFlightGuard(),
        close_resources=close_resources,
    )
