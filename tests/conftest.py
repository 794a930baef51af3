"""Shared fixtures: a legacy SQLite database and a bootstrap context."""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Iterable, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from launcher_bootstrap.config.schema import (
    BootstrapConfig,
    LoggingConfig,
    LudusaviConfig,
    PathsConfig,
    RemoteApiConfig,
    StartupConfig,
)
from launcher_bootstrap.core.context import BootstrapContext

ALL_TABLES = ("game", "user_preferences", "game_achievement", "user_auth")

SCHEMA = {
    "game": """
        CREATE TABLE game (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            objectID TEXT NOT NULL,
            shop TEXT NOT NULL,
            title TEXT,
            iconUrl TEXT,
            playTimeInMilliseconds INTEGER DEFAULT 0,
            lastTimePlayed TEXT,
            remoteId TEXT,
            winePrefixPath TEXT,
            launchOptions TEXT,
            executablePath TEXT,
            isDeleted INTEGER DEFAULT 0
        )
    """,
    "user_preferences": """
        CREATE TABLE user_preferences (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            downloadsPath TEXT,
            language TEXT,
            realDebridApiToken TEXT,
            allDebridApiKey TEXT,
            preferQuitInsteadOfHiding INTEGER DEFAULT 0,
            runAtStartup INTEGER DEFAULT 0,
            startMinimized INTEGER DEFAULT 0,
            disableNsfwAlert INTEGER DEFAULT 0,
            seedAfterDownloadComplete INTEGER DEFAULT 1,
            showHiddenAchievementsDescription INTEGER DEFAULT 0,
            downloadNotificationsEnabled INTEGER DEFAULT 1,
            repackUpdatesNotificationsEnabled INTEGER DEFAULT 1,
            achievementNotificationsEnabled INTEGER DEFAULT 1
        )
    """,
    "game_achievement": """
        CREATE TABLE game_achievement (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            objectId TEXT NOT NULL,
            shop TEXT NOT NULL,
            achievements TEXT,
            unlockedAchievements TEXT
        )
    """,
    "user_auth": """
        CREATE TABLE user_auth (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            userId TEXT NOT NULL,
            displayName TEXT,
            profileImageUrl TEXT,
            backgroundImageUrl TEXT,
            subscription TEXT,
            accessToken TEXT NOT NULL,
            refreshToken TEXT NOT NULL,
            tokenExpirationTimestamp INTEGER
        )
    """,
}


def create_legacy_db(
    path: Path,
    tables: Iterable[str] = ALL_TABLES,
    with_preferences: bool = True,
    with_user: bool = True,
) -> Path:
    """Create a legacy launcher database with a few rows in each table."""
    con = sqlite3.connect(path)
    tables = set(tables)
    try:
        for table in tables:
            con.execute(SCHEMA[table])

        if "game" in tables:
            con.executemany(
                "INSERT INTO game (objectID, shop, title, playTimeInMilliseconds, isDeleted) "
                "VALUES (?, ?, ?, ?, ?)",
                [
                    ("1091500", "steam", "Cyberpunk 2077", 3600000, 0),
                    ("292030", "steam", "The Witcher 3", 0, 1),
                ],
            )

        if "user_preferences" in tables and with_preferences:
            con.execute(
                "INSERT INTO user_preferences "
                "(downloadsPath, language, realDebridApiToken, allDebridApiKey, runAtStartup) "
                "VALUES (?, ?, ?, ?, ?)",
                ("/games", "pt-BR", "rd-secret", None, 1),
            )

        if "game_achievement" in tables:
            con.execute(
                "INSERT INTO game_achievement (objectId, shop, achievements, unlockedAchievements) "
                "VALUES (?, ?, ?, ?)",
                (
                    "1091500",
                    "steam",
                    json.dumps([{"name": "THE_FOOL", "displayName": "The Fool"}]),
                    json.dumps([{"name": "THE_FOOL", "unlockTime": 1700000000}]),
                ),
            )

        if "user_auth" in tables and with_user:
            con.execute(
                "INSERT INTO user_auth (userId, displayName, accessToken, refreshToken, "
                "tokenExpirationTimestamp) VALUES (?, ?, ?, ?, ?)",
                ("u-1", "Player One", "access-123", "refresh-456", 1900000000000),
            )

        con.commit()
    finally:
        con.close()
    return path


def make_config(tmp_path: Path, source_db: Optional[Path] = None) -> BootstrapConfig:
    return BootstrapConfig(
        logging=LoggingConfig(file=tmp_path / "launcher.log"),
        paths=PathsConfig(
            source_db=source_db or tmp_path / "legacy.db",
            target_db=tmp_path / "state.sqlite",
            key_file=tmp_path / "secret.key",
            downloads_dir=tmp_path / "downloads",
        ),
        remote_api=RemoteApiConfig(base_url="https://api.test"),
        ludusavi=LudusaviConfig(
            config_file=tmp_path / "ludusavi" / "config.yaml",
            manifest_url="https://manifest.test/manifest.yaml",
        ),
        startup=StartupConfig(event_modules=[], main_loop_interval=0.01),
    )


@pytest.fixture
def legacy_db(tmp_path: Path) -> Path:
    """Legacy database with all four tables populated."""
    return create_legacy_db(tmp_path / "legacy.db")


@pytest.fixture
def config(tmp_path: Path) -> BootstrapConfig:
    return make_config(tmp_path)


@pytest_asyncio.fixture
async def ctx(config: BootstrapConfig):
    """Context with an open store and real (offline) collaborators."""
    context = BootstrapContext.from_config(config, logging.getLogger("launcher_bootstrap"))
    await context.open()
    yield context
    await context.close()


def mock_collaborators(context: BootstrapContext) -> BootstrapContext:
    """Replace the network and process collaborators with mocks."""
    context.aria2 = MagicMock(spawn=AsyncMock(), kill=AsyncMock())
    context.download_manager = MagicMock(start_rpc=AsyncMock(), close=AsyncMock())
    context.main_loop = MagicMock(start=AsyncMock(), stop=MagicMock())
    context.remote_api = MagicMock(setup_api=AsyncMock(), close=AsyncMock())
    context.ludusavi = MagicMock()
    return context
