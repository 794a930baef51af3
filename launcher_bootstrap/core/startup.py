"""Startup sequence run once per process after the SQLite migration."""

import importlib
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from launcher_bootstrap.core.context import BootstrapContext
from launcher_bootstrap.core.exceptions import (
    DatabaseError,
    DownloadsUnavailableError,
    PreferencesUnavailableError,
)
from launcher_bootstrap.core.migrator import run_migration
from launcher_bootstrap.core.state import MigrationReport
from launcher_bootstrap.database import keys
from launcher_bootstrap.services.download_manager import Downloader
from launcher_bootstrap.services.remote_api import upload_games_batch
from launcher_bootstrap.utils.logging import get_logger


@dataclass(frozen=True)
class ReadyPreferences:
    """User preferences read back from the store after migration.

    Holding one of these means the migration step has settled, which is
    what provider authorization depends on.
    """
    values: Mapping[str, Any] = field(default_factory=dict)

    def credential(self, name: str) -> Optional[str]:
        """Encrypted credential stored under name, or None when unset."""
        return self.values.get(name) or None


# (provider attribute on ProviderClients, preferences field)
PROVIDER_CREDENTIALS = (
    ("real_debrid", "realDebridApiToken"),
    ("all_debrid", "allDebridApiKey"),
    ("torbox", "torBoxApiToken"),
)


@dataclass
class StartupReport:
    """What happened during load_state()."""
    migration: MigrationReport
    next_download: Optional[Dict[str, Any]] = None
    seeds: List[Dict[str, Any]] = field(default_factory=list)
    authorized_providers: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)


async def load_state(ctx: BootstrapContext) -> StartupReport:
    """Migrate if needed, bring every collaborator up and run the main loop.

    Side-effect steps (event modules, provider authorization, manifest
    registration) are isolated from each other: a failure is logged and
    recorded in the report and startup continues. The aria2 spawn and the
    remote library sync run as detached tasks.

    Returns only once the main loop has stopped.

    Raises:
        PreferencesUnavailableError: If preferences can't be read from the store
        DownloadsUnavailableError: If the download queue can't be read
    """
    logger = get_logger(__name__)

    migration = await run_migration(ctx)
    report = StartupReport(migration=migration)

    preferences = await read_preferences(ctx)

    for module in ctx.config.startup.event_modules:
        _run_isolated(report, f"events:{module}", importlib.import_module, module)

    ctx.tasks.spawn("aria2", ctx.aria2.spawn())

    authorize_providers(ctx, preferences, report)

    _run_isolated(report, "ludusavi", ctx.ludusavi.add_manifest_to_config)

    ctx.tasks.spawn("remote-api", _sync_library(ctx))

    downloads = await read_downloads(ctx)
    report.next_download = select_next_download(downloads)
    report.seeds = select_downloads_to_seed(downloads)

    try:
        await ctx.download_manager.start_rpc(report.next_download, report.seeds)
    except Exception as e:
        logger.error(f"Download engine failed to start: {e}")
        report.failures["download_manager"] = str(e)

    if report.failures:
        logger.warning(f"Startup finished with failures in: {', '.join(report.failures)}")

    await ctx.main_loop.start()
    return report


async def read_preferences(ctx: BootstrapContext) -> ReadyPreferences:
    """Load user preferences, defaulting to empty ones when none are stored."""
    try:
        values = await ctx.store.get(keys.USER_PREFERENCES, value_encoding="json")
    except DatabaseError as e:
        raise PreferencesUnavailableError(str(e)) from e
    return ReadyPreferences(values=values or {})


async def read_downloads(ctx: BootstrapContext) -> List[Dict[str, Any]]:
    try:
        return await ctx.store.sublevel(keys.DOWNLOADS).values_all()
    except DatabaseError as e:
        raise DownloadsUnavailableError(str(e)) from e


def authorize_providers(
    ctx: BootstrapContext,
    preferences: ReadyPreferences,
    report: StartupReport,
) -> None:
    """Authorize each provider that has a stored credential.

    Providers are handled independently; a missing credential or a failure
    for one never affects the others.
    """
    for attribute, field_name in PROVIDER_CREDENTIALS:
        encrypted = preferences.credential(field_name)
        if encrypted is None:
            continue

        client = getattr(ctx.providers, attribute)

        def authorize(client=client, encrypted=encrypted):
            client.authorize(ctx.crypto.decrypt(encrypted))

        if _run_isolated(report, f"authorize:{attribute}", authorize):
            report.authorized_providers.append(attribute)


def sort_download_queue(downloads: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Queued downloads, most recent first."""
    queued = [d for d in downloads if d.get("queued")]
    return sorted(queued, key=lambda d: d.get("timestamp") or 0, reverse=True)


def select_next_download(downloads: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """The download to resume first, or None when nothing is queued."""
    queue = sort_download_queue(downloads)
    return queue[0] if queue else None


def select_downloads_to_seed(downloads: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Finished torrents that should go back to seeding.

    Taken from every download, queued or not.
    """
    return [
        d for d in downloads
        if d.get("shouldSeed")
        and d.get("downloader") == Downloader.TORRENT
        and d.get("progress") == 1
        and d.get("uri") is not None
    ]


async def _sync_library(ctx: BootstrapContext) -> None:
    await ctx.remote_api.setup_api()
    ctx.tasks.spawn("upload-games-batch", upload_games_batch(ctx.remote_api))


def _run_isolated(
    report: StartupReport,
    name: str,
    func: Callable[..., Any],
    *args,
) -> bool:
    """Call func, logging and recording any exception instead of raising it.

    Returns:
        True if func completed
    """
    logger = get_logger(__name__)

    try:
        func(*args)
    except Exception as e:
        logger.error(f"Startup step '{name}' failed: {e}", exc_info=True)
        report.failures[name] = str(e)
        return False
    return True
