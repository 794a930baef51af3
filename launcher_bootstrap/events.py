"""Handlers the launcher UI can call.

Handlers register themselves when this module is imported, which the
startup sequence does before the main loop starts.
"""

from typing import Any, Awaitable, Callable, Dict

from launcher_bootstrap.database import keys
from launcher_bootstrap.database.store import KeyValueStore

EventHandler = Callable[..., Awaitable[Any]]

handlers: Dict[str, EventHandler] = {}


def register_event(name: str) -> Callable[[EventHandler], EventHandler]:
    """Decorator adding a coroutine function to the handler table."""
    def decorator(func: EventHandler) -> EventHandler:
        handlers[name] = func
        return func
    return decorator


async def dispatch(name: str, *args, **kwargs) -> Any:
    """Call a registered handler by name.

    Raises:
        KeyError: If no handler has that name
    """
    return await handlers[name](*args, **kwargs)


@register_event("getUserPreferences")
async def get_user_preferences(store: KeyValueStore) -> Any:
    return await store.get(keys.USER_PREFERENCES, value_encoding="json")


@register_event("getLibrary")
async def get_library(store: KeyValueStore) -> Any:
    games = await store.sublevel(keys.GAMES).values_all()
    return [game for game in games if not game.get("isDeleted")]


@register_event("getDownloads")
async def get_downloads(store: KeyValueStore) -> Any:
    return await store.sublevel(keys.DOWNLOADS).values_all()


@register_event("getMigrationReport")
async def get_migration_report(store: KeyValueStore) -> Any:
    return await store.get(keys.SQLITE_MIGRATION_REPORT, value_encoding="json")
