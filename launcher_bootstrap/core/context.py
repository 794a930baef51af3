"""Bootstrap context - owns the stores, clients and services of one run."""

import logging
from dataclasses import dataclass, field

from launcher_bootstrap.config.schema import BootstrapConfig
from launcher_bootstrap.core.main_loop import MainLoop
from launcher_bootstrap.database import keys
from launcher_bootstrap.database.source import SqliteSource
from launcher_bootstrap.database.store import KeyValueStore
from launcher_bootstrap.services.aria2 import Aria2
from launcher_bootstrap.services.download_manager import DownloadManager
from launcher_bootstrap.services.ludusavi import Ludusavi
from launcher_bootstrap.services.providers import ProviderClients
from launcher_bootstrap.services.remote_api import RemoteApi
from launcher_bootstrap.utils.crypto import Crypto
from launcher_bootstrap.utils.tasks import BackgroundTasks


@dataclass
class BootstrapContext:
    """Everything the migration and startup sequence work with.

    Passed explicitly through the call chain instead of module globals.
    """
    config: BootstrapConfig
    logger: logging.Logger
    store: KeyValueStore
    source: SqliteSource
    crypto: Crypto
    providers: ProviderClients
    aria2: Aria2
    ludusavi: Ludusavi
    remote_api: RemoteApi
    download_manager: DownloadManager
    main_loop: MainLoop
    tasks: BackgroundTasks = field(default_factory=BackgroundTasks)

    @classmethod
    def from_config(cls, config: BootstrapConfig, logger: logging.Logger) -> "BootstrapContext":
        """Build a context. Stores are opened later with open()."""
        store = KeyValueStore(config.paths.target_db)
        crypto = Crypto.from_key_file(config.paths.key_file)
        providers = ProviderClients.from_config(config.providers)
        main_loop = MainLoop(interval=config.startup.main_loop_interval)
        download_manager = DownloadManager(
            config=config.aria2,
            downloads=store.sublevel(keys.DOWNLOADS),
            providers=providers,
            default_dir=config.paths.downloads_dir,
        )
        main_loop.add_tick("watch_downloads", download_manager.watch_downloads)

        return cls(
            config=config,
            logger=logger,
            store=store,
            source=SqliteSource(config.paths.source_db),
            crypto=crypto,
            providers=providers,
            aria2=Aria2(config.aria2),
            ludusavi=Ludusavi(config.ludusavi),
            remote_api=RemoteApi(config.remote_api, store, crypto),
            download_manager=download_manager,
            main_loop=main_loop,
        )

    async def open(self) -> None:
        await self.store.open()

    async def close(self) -> None:
        """Stop background work and release every connection."""
        self.main_loop.stop()
        await self.tasks.cancel_all()
        await self.aria2.kill()
        await self.download_manager.close()
        await self.remote_api.close()
        await self.providers.close()
        await self.source.close()
        await self.store.close()

    def info(self, message: str, *args) -> None:
        """Log an info message."""
        self.logger.info(message, *args)
