"""Remote library sync API.

Handles the user session restored from the key-value store and uploads the
local library so it is available on other machines.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp
from tqdm import tqdm

from launcher_bootstrap.config.schema import RemoteApiConfig
from launcher_bootstrap.core.exceptions import RemoteApiError
from launcher_bootstrap.database import keys
from launcher_bootstrap.database.store import KeyValueStore
from launcher_bootstrap.utils.crypto import Crypto
from launcher_bootstrap.utils.logging import get_logger


@dataclass
class UserSession:
    """Decrypted tokens of the signed-in user."""
    access_token: str
    refresh_token: str
    expiration_timestamp: int  # ms since epoch

    def is_expired(self, now_ms: Optional[int] = None) -> bool:
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return now_ms >= self.expiration_timestamp


class RemoteApi:
    """Client for the remote library service."""

    def __init__(self, config: RemoteApiConfig, store: KeyValueStore, crypto: Crypto):
        self.config = config
        self.store = store
        self.crypto = crypto
        self.session: Optional[UserSession] = None
        self._http: Optional[aiohttp.ClientSession] = None

    @property
    def is_logged_in(self) -> bool:
        return self.session is not None

    async def setup_api(self) -> None:
        """Restore the user session from the stored auth document.

        Refreshes the access token when it has expired. Without a stored
        session the client stays logged out.
        """
        logger = get_logger(__name__)

        auth = await self.store.get(keys.AUTH, value_encoding="json")
        if not auth:
            logger.info("No stored session, remote API stays logged out")
            return

        self.session = UserSession(
            access_token=self.crypto.decrypt(auth["accessToken"]),
            refresh_token=self.crypto.decrypt(auth["refreshToken"]),
            expiration_timestamp=auth.get("tokenExpirationTimestamp") or 0,
        )

        if self.session.is_expired():
            await self.refresh_token()

        logger.info("Remote API session restored")

    async def refresh_token(self) -> None:
        """Exchange the refresh token for a new access token and store it."""
        logger = get_logger(__name__)

        data = await self.request(
            "POST",
            "/auth/refresh",
            json={"refreshToken": self.session.refresh_token},
            authorized=False,
        )
        self.session.access_token = data["accessToken"]
        self.session.expiration_timestamp = int(time.time() * 1000) + int(data["expiresIn"]) * 1000

        await self.store.put(
            keys.AUTH,
            {
                "accessToken": self.crypto.encrypt(self.session.access_token),
                "refreshToken": self.crypto.encrypt(self.session.refresh_token),
                "tokenExpirationTimestamp": self.session.expiration_timestamp,
            },
            value_encoding="json",
        )
        logger.debug("Access token refreshed")

    async def request(
        self, method: str, path: str, authorized: bool = True, **kwargs
    ) -> Any:
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout)
            )

        headers = {}
        if authorized:
            headers["Authorization"] = f"Bearer {self.session.access_token}"

        url = f"{self.config.base_url}{path}"
        async with self._http.request(method, url, headers=headers, **kwargs) as response:
            if response.status >= 400:
                raise RemoteApiError(response.status, url)
            return await response.json(content_type=None)

    async def close(self) -> None:
        if self._http is not None:
            await self._http.close()
            self._http = None


async def upload_games_batch(api: RemoteApi, show_progress: bool = False) -> int:
    """Upload every non-deleted library entry to the remote library.

    Args:
        api: Remote API client (set up beforehand)
        show_progress: Whether to show progress bar

    Returns:
        Number of games uploaded
    """
    logger = get_logger(__name__)

    if not api.is_logged_in:
        logger.info("Not logged in, skipping library upload")
        return 0

    games = await api.store.sublevel(keys.GAMES).values_all()
    payload: List[Dict[str, Any]] = [
        {
            "objectId": game["objectId"],
            "shop": game["shop"],
            "playTimeInMilliseconds": game.get("playTimeInMilliseconds") or 0,
            "lastTimePlayed": game.get("lastTimePlayed"),
        }
        for game in games
        if not game.get("isDeleted")
    ]

    size = api.config.upload_batch_size
    chunks = [payload[i:i + size] for i in range(0, len(payload), size)]

    for chunk in tqdm(chunks, desc="Uploading library", disable=not show_progress):
        await api.request("POST", "/profile/games/batch", json=chunk)

    logger.info(f"Uploaded {len(payload)} games to remote library")
    return len(payload)
