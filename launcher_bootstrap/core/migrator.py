"""One-time migration of the legacy SQLite database into the key-value store."""

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional

from tqdm import tqdm

from launcher_bootstrap.core.context import BootstrapContext
from launcher_bootstrap.core.exceptions import DatabaseError
from launcher_bootstrap.core.state import (
    MigrationDomain,
    MigrationPhase,
    MigrationReport,
    read_migration_report,
)
from launcher_bootstrap.database import keys
from launcher_bootstrap.database.store import BatchOperation
from launcher_bootstrap.transform.records import (
    transform_achievement,
    transform_game,
    transform_user,
    transform_user_preferences,
)
from launcher_bootstrap.utils.logging import get_logger


async def run_migration(
    ctx: BootstrapContext,
    force: bool = False,
    domains: Optional[List[MigrationDomain]] = None,
    show_progress: bool = False,
) -> MigrationReport:
    """Move the four data domains from SQLite into the key-value store.

    Runs at most once per installation: the completion flag is written
    before the domains are migrated, and every later call returns without
    touching the source. Domains run concurrently and a failing domain
    never stops the others. Failures are recorded in the returned report
    (and persisted with it) but are not retried automatically.

    Args:
        ctx: Bootstrap context with an open store
        force: Migrate again even if the completion flag is set
        domains: Restrict a run to these domains (defaults to all four). On a
            forced run the stored outcomes of the other domains are kept.
        show_progress: Whether to show progress bars

    Returns:
        MigrationReport with the outcome of each domain
    """
    logger = get_logger(__name__)

    done = await ctx.store.get(keys.SQLITE_MIGRATION_DONE, value_encoding="json")
    if done and not force:
        logger.debug("SQLite migration already done. Skipping.")
        return MigrationReport(phase=MigrationPhase.DONE, skipped=True)

    selected = list(domains or MigrationDomain)
    report = MigrationReport()
    report.start(selected)
    if force and domains:
        previous = await read_migration_report(ctx.store)
        if previous is not None:
            report.carry_over(previous)

    await ctx.store.put(keys.SQLITE_MIGRATION_DONE, True, value_encoding="json")
    await report.save(ctx.store)

    if not ctx.source.db_path.exists():
        logger.info(f"No legacy database at {ctx.source.db_path}, nothing to migrate")
        for domain in selected:
            report.record_skipped(domain)
        report.finish()
        await report.save(ctx.store)
        return report

    logger.info(f">>> Migrating {', '.join(d.value for d in selected)} from {ctx.source.db_path}")

    try:
        await ctx.source.open()
    except DatabaseError as e:
        logger.error(f"Could not open legacy database: {e}")
        for domain in selected:
            report.record_failure(domain, e)
    else:
        try:
            results = await asyncio.gather(
                *(MIGRATIONS[domain](ctx, show_progress) for domain in selected),
                return_exceptions=True,
            )
        finally:
            await ctx.source.close()

        for domain, result in zip(selected, results):
            if isinstance(result, BaseException):
                logger.error(f"Migration of {domain.value} failed: {result}")
                report.record_failure(domain, result)
            else:
                report.record_success(domain)

    report.finish()
    await report.save(ctx.store)

    if report.failed_domains:
        names = [d.value for d in report.failed_domains]
        domain_args = " ".join(f"--domain {name}" for name in names)
        logger.warning(
            f"SQLite migration finished with failures: {', '.join(names)}. "
            f"Re-run them with: migrate --force {domain_args}"
        )
    else:
        logger.info("SQLite migration complete.")

    return report


async def _migrate_games(ctx: BootstrapContext, show_progress: bool) -> None:
    logger = get_logger(__name__)

    rows = await ctx.source.select("game")
    operations = []
    for row in tqdm(rows, desc="Migrating games", disable=not show_progress):
        key, value = transform_game(row)
        operations.append(BatchOperation(key=key, value=value))

    await ctx.store.sublevel(keys.GAMES).batch(operations)
    logger.info(f"Games migrated successfully ({len(operations)} entries)")


async def _migrate_user_preferences(ctx: BootstrapContext, show_progress: bool) -> None:
    logger = get_logger(__name__)

    rows = await ctx.source.select("user_preferences")
    if not rows:
        logger.debug("No user preferences to migrate")
        return

    row = rows[0]
    document = transform_user_preferences(row, ctx.crypto.encrypt)
    await ctx.store.put(keys.USER_PREFERENCES, document, value_encoding="json")

    if row.get("language"):
        await ctx.store.put(keys.LANGUAGE, row["language"])

    logger.info("User preferences migrated successfully")


async def _migrate_achievements(ctx: BootstrapContext, show_progress: bool) -> None:
    logger = get_logger(__name__)

    rows = await ctx.source.select("game_achievement")
    operations = []
    for row in tqdm(rows, desc="Migrating achievements", disable=not show_progress):
        key, value = transform_achievement(row)
        operations.append(BatchOperation(key=key, value=value))

    await ctx.store.sublevel(keys.GAME_ACHIEVEMENTS).batch(operations)
    logger.info(f"Achievements migrated successfully ({len(operations)} games)")


async def _migrate_user(ctx: BootstrapContext, show_progress: bool) -> None:
    logger = get_logger(__name__)

    rows = await ctx.source.select("user_auth")
    if not rows:
        logger.debug("No signed-in user to migrate")
        return

    user, auth = transform_user(rows[0], ctx.crypto.encrypt)
    await ctx.store.put(keys.USER, user, value_encoding="json")
    await ctx.store.put(keys.AUTH, auth, value_encoding="json")
    logger.info("User data migrated successfully")


MIGRATIONS: Dict[MigrationDomain, Callable[[BootstrapContext, bool], Awaitable[None]]] = {
    MigrationDomain.GAMES: _migrate_games,
    MigrationDomain.USER_PREFERENCES: _migrate_user_preferences,
    MigrationDomain.ACHIEVEMENTS: _migrate_achievements,
    MigrationDomain.USER: _migrate_user,
}
