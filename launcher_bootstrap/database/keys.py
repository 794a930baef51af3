"""Key layout of the launcher key-value store."""

# Singleton keys
USER_PREFERENCES = "userPreferences"
USER = "user"
AUTH = "auth"
LANGUAGE = "language"
SQLITE_MIGRATION_DONE = "sqliteMigrationDone"
SQLITE_MIGRATION_REPORT = "sqliteMigrationReport"

# Sublevels
GAMES = "games"
GAME_ACHIEVEMENTS = "gameAchievements"
DOWNLOADS = "downloads"

SUBLEVEL_SEPARATOR = "!"


def game_key(shop: str, object_id: str) -> str:
    """Build the key of a game inside a per-game sublevel.

    Args:
        shop: Store the game comes from (e.g. "steam")
        object_id: Identifier of the game inside that store

    Returns:
        Key in the form "shop:objectId"
    """
    return f"{shop}:{object_id}"


def sublevel_key(sublevel: str, key: str) -> str:
    """Prefix a key with its sublevel name ("!games!steam:123")."""
    return f"{SUBLEVEL_SEPARATOR}{sublevel}{SUBLEVEL_SEPARATOR}{key}"


def sublevel_prefix(sublevel: str) -> str:
    return f"{SUBLEVEL_SEPARATOR}{sublevel}{SUBLEVEL_SEPARATOR}"
