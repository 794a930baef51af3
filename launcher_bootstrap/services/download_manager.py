"""Download engine entry point backed by aria2's JSON-RPC interface."""

import asyncio
import itertools
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiohttp

from launcher_bootstrap.config.schema import Aria2Config
from launcher_bootstrap.core.exceptions import LauncherBootstrapError, ProviderError
from launcher_bootstrap.database import keys
from launcher_bootstrap.database.store import Sublevel
from launcher_bootstrap.services.providers import ProviderClients
from launcher_bootstrap.utils.logging import get_logger


class Downloader(IntEnum):
    """How a download is fetched. Values are stored in download documents."""
    REAL_DEBRID = 0
    TORRENT = 1
    GOFILE = 2
    PIXELDRAIN = 3
    QIWI = 4
    DATANODES = 5
    MEDIAFIRE = 6
    TORBOX = 7
    HTTP = 8


class Aria2RpcError(LauncherBootstrapError):
    """aria2 answered a call with an error."""

    def __init__(self, method: str, message: str):
        self.method = method
        super().__init__(f"aria2 {method} failed: {message}")


class DownloadManager:
    """Hands downloads to aria2 and mirrors their progress into the store."""

    def __init__(
        self,
        config: Aria2Config,
        downloads: Sublevel,
        providers: ProviderClients,
        default_dir: Path,
    ):
        self.config = config
        self.downloads = downloads
        self.providers = providers
        self.default_dir = default_dir
        self.active: Dict[str, str] = {}  # download key -> aria2 gid
        self.seeding: Dict[str, str] = {}
        self.failed: Dict[str, str] = {}  # download key -> error
        self._ids = itertools.count(1)
        self._session: Optional[aiohttp.ClientSession] = None

    async def call(self, method: str, *params: Any) -> Any:
        """Invoke an aria2 RPC method.

        Raises:
            Aria2RpcError: If aria2 returns an error object
        """
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=10))

        args: List[Any] = list(params)
        if self.config.rpc_secret:
            args.insert(0, f"token:{self.config.rpc_secret}")

        payload = {
            "jsonrpc": "2.0",
            "id": str(next(self._ids)),
            "method": method,
            "params": args,
        }
        async with self._session.post(self.config.rpc_url, json=payload) as response:
            body = await response.json(content_type=None)

        if "error" in body:
            raise Aria2RpcError(method, body["error"].get("message", "unknown error"))
        return body.get("result")

    async def wait_until_ready(self, attempts: int = 10, delay: float = 0.5) -> None:
        """Wait for the aria2 RPC port to answer.

        Raises:
            Aria2RpcError: If aria2 is still unreachable after all attempts
        """
        for _ in range(attempts):
            try:
                await self.call("aria2.getVersion")
                return
            except aiohttp.ClientConnectionError:
                await asyncio.sleep(delay)
        raise Aria2RpcError("aria2.getVersion", f"no answer after {attempts} attempts")

    async def start_rpc(
        self,
        next_item: Optional[Dict[str, Any]],
        seeds: List[Dict[str, Any]],
    ) -> None:
        """Resume the next queued download and restart seeding.

        Args:
            next_item: Download to resume, or None when the queue is empty
            seeds: Completed torrents that should be seeded again
        """
        logger = get_logger(__name__)

        if next_item is not None or seeds:
            await self.wait_until_ready()

        if next_item is not None:
            try:
                await self.resume(next_item)
            except (LauncherBootstrapError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                key = keys.game_key(next_item["shop"], next_item["objectId"])
                logger.error(f"Could not resume download {key}: {e}")
                self.failed[key] = str(e)
        else:
            logger.info("Download queue is empty, nothing to resume")

        for download in seeds:
            key = keys.game_key(download["shop"], download["objectId"])
            try:
                await self.seed(download)
            except (LauncherBootstrapError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.error(f"Could not seed {key}: {e}")
                self.failed[key] = str(e)

        logger.info(
            f"Download engine started ({len(self.seeding)} of {len(seeds)} torrents seeding)"
        )

    async def seed(self, download: Dict[str, Any]) -> None:
        """Hand a completed torrent back to aria2 for seeding."""
        key = keys.game_key(download["shop"], download["objectId"])
        options = {
            "dir": download.get("downloadPath") or str(self.default_dir),
            "check-integrity": "true",
            "bt-seed-unverified": "true",
            "seed-ratio": "0.0",
        }
        self.seeding[key] = await self.call("aria2.addUri", [download["uri"]], options)
        await self._update(key, {"status": "seeding"})

    async def resume(self, download: Dict[str, Any]) -> None:
        """Add one download to aria2 and mark it active."""
        logger = get_logger(__name__)

        key = keys.game_key(download["shop"], download["objectId"])
        uri = await self._resolve_uri(download)
        options = {"dir": download.get("downloadPath") or str(self.default_dir)}
        if download.get("folderName"):
            options["out"] = download["folderName"]

        self.active[key] = await self.call("aria2.addUri", [uri], options)
        await self._update(key, {"status": "active"})
        logger.info(f"Resumed download {key}")

    async def _resolve_uri(self, download: Dict[str, Any]) -> str:
        """Turn a hoster link into a direct link where a provider is needed."""
        if download.get("downloader") == Downloader.REAL_DEBRID:
            client = self.providers.real_debrid
            if not client.is_authorized:
                raise ProviderError(client.name, "Download needs an authorized client")
            result = await client.request(
                "POST", "/unrestrict/link", data={"link": download["uri"]}
            )
            return result["download"]
        return download["uri"]

    async def watch_downloads(self) -> None:
        """Copy the progress of active downloads into their documents."""
        logger = get_logger(__name__)

        for key, gid in list(self.active.items()):
            status = await self.call(
                "aria2.tellStatus", gid, ["status", "totalLength", "completedLength"]
            )
            total = int(status.get("totalLength", 0))
            completed = int(status.get("completedLength", 0))
            progress = completed / total if total else 0.0

            update: Dict[str, Any] = {
                "progress": progress,
                "bytesDownloaded": completed,
                "fileSize": total,
            }
            if status.get("status") == "complete":
                update.update({"progress": 1, "status": "complete", "queued": False})
                del self.active[key]
                logger.info(f"Download complete: {key}")
            elif status.get("status") == "error":
                update["status"] = "error"
                del self.active[key]
                logger.warning(f"Download failed in aria2: {key}")

            await self._update(key, update)

    async def _update(self, key: str, changes: Dict[str, Any]) -> None:
        document = await self.downloads.get(key)
        if document is None:
            return
        document.update(changes)
        await self.downloads.put(key, document)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
