"""Row to document transforms for the SQLite -> key-value migration.

Every function here is pure: it takes one row as returned by the source
database (a dict keyed by column name) and returns the document(s) to store.
"""

import json
from typing import Any, Callable, Dict, Optional, Tuple

from launcher_bootstrap.database import keys


# Integer 0/1 columns in user_preferences that are stored as booleans
PREFERENCE_TOGGLES = (
    "preferQuitInsteadOfHiding",
    "runAtStartup",
    "startMinimized",
    "disableNsfwAlert",
    "seedAfterDownloadComplete",
    "showHiddenAchievementsDescription",
    "downloadNotificationsEnabled",
    "repackUpdatesNotificationsEnabled",
    "achievementNotificationsEnabled",
)

PREFERENCE_CREDENTIALS = ("realDebridApiToken", "allDebridApiKey")


def to_bool(value: Any) -> bool:
    """Convert a SQLite integer truth value to a boolean.

    Only the integer 1 is true; NULL, 0 and anything else are false.
    """
    return value == 1


def transform_game(row: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """Transform a `game` row.

    Args:
        row: Source row

    Returns:
        Tuple of (sublevel key, library entry document)
    """
    key = keys.game_key(row["shop"], row["objectID"])
    value = {
        "objectId": row["objectID"],
        "shop": row["shop"],
        "title": row.get("title"),
        "iconUrl": row.get("iconUrl"),
        "playTimeInMilliseconds": row.get("playTimeInMilliseconds"),
        "lastTimePlayed": row.get("lastTimePlayed"),
        "remoteId": row.get("remoteId"),
        "winePrefixPath": row.get("winePrefixPath"),
        "launchOptions": row.get("launchOptions"),
        "executablePath": row.get("executablePath"),
        "isDeleted": to_bool(row.get("isDeleted")),
    }
    return key, value


def transform_user_preferences(
    row: Dict[str, Any],
    encrypt: Callable[[str], str],
) -> Dict[str, Any]:
    """Transform the `user_preferences` row.

    All columns are carried over. Credentials are encrypted when present and
    stored as None otherwise; toggle columns become booleans.

    Args:
        row: Source row
        encrypt: Function turning a plaintext secret into its stored form

    Returns:
        User preferences document
    """
    document = dict(row)

    for field_name in PREFERENCE_CREDENTIALS:
        secret = row.get(field_name)
        document[field_name] = encrypt(secret) if secret else None

    for field_name in PREFERENCE_TOGGLES:
        document[field_name] = to_bool(row.get(field_name))

    return document


def transform_achievement(row: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """Transform a `game_achievement` row, decoding its JSON text columns.

    Raises:
        json.JSONDecodeError: If either column is not valid JSON
    """
    key = keys.game_key(row["shop"], row["objectId"])
    value = {
        "achievements": _decode_json(row.get("achievements")),
        "unlockedAchievements": _decode_json(row.get("unlockedAchievements")),
    }
    return key, value


def transform_user(
    row: Dict[str, Any],
    encrypt: Callable[[str], str],
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split a `user_auth` row into the profile and auth documents.

    Args:
        row: Source row
        encrypt: Function turning a plaintext token into its stored form

    Returns:
        Tuple of (user document, auth document)
    """
    user = {
        "id": row["userId"],
        "displayName": row.get("displayName"),
        "profileImageUrl": row.get("profileImageUrl"),
        "backgroundImageUrl": row.get("backgroundImageUrl"),
        "subscription": row.get("subscription"),
    }
    auth = {
        "accessToken": encrypt(row["accessToken"]),
        "refreshToken": encrypt(row["refreshToken"]),
        "tokenExpirationTimestamp": row.get("tokenExpirationTimestamp"),
    }
    return user, auth


def _decode_json(data: Optional[str]) -> Any:
    # NULL columns stay None instead of failing the whole batch
    if data is None:
        return None
    return json.loads(data)
