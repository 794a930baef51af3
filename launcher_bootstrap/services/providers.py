"""Debrid provider clients.

Each provider gets its own client object. Clients are owned by the bootstrap
context rather than living as module globals, so several independent sets
can coexist (e.g. in tests).
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from launcher_bootstrap.config.schema import ProvidersConfig
from launcher_bootstrap.core.exceptions import ProviderError
from launcher_bootstrap.utils.logging import get_logger


class DebridClient:
    """Base client for a token-authenticated debrid API."""

    name = "debrid"
    user_path = "/user"

    def __init__(self, base_url: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token: Optional[str] = None
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def is_authorized(self) -> bool:
        return self._token is not None

    def authorize(self, token: str) -> None:
        """Set the API token used for every following request.

        Calling it again with a new token replaces the old one.
        """
        logger = get_logger(__name__)

        if not token:
            raise ProviderError(self.name, "Empty API token")
        self._token = token
        logger.info(f"{self.name} client authorized")

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"}

    async def request(self, method: str, path: str, **kwargs) -> Any:
        """Perform an authorized request and return the decoded JSON body.

        Raises:
            ProviderError: If the client isn't authorized or the request fails
        """
        if not self.is_authorized:
            raise ProviderError(self.name, "Client is not authorized")

        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )

        url = f"{self.base_url}{path}"
        try:
            async with self._session.request(
                method, url, headers=self._auth_headers(), **kwargs
            ) as response:
                if response.status >= 400:
                    raise ProviderError(self.name, f"HTTP {response.status} for {path}")
                return await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise ProviderError(self.name, str(e)) from e

    async def get_user(self) -> Any:
        """Fetch the account the token belongs to."""
        return await self.request("GET", self.user_path)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None


class RealDebridClient(DebridClient):
    name = "Real-Debrid"


class AllDebridClient(DebridClient):
    name = "AllDebrid"

    def _auth_headers(self) -> Dict[str, str]:
        headers = super()._auth_headers()
        headers["User-Agent"] = "launcher-bootstrap"
        return headers


class TorBoxClient(DebridClient):
    name = "TorBox"
    user_path = "/user/me"


@dataclass
class ProviderClients:
    """The three provider clients of one launcher session."""
    real_debrid: RealDebridClient
    all_debrid: AllDebridClient
    torbox: TorBoxClient

    @classmethod
    def from_config(cls, config: ProvidersConfig) -> "ProviderClients":
        return cls(
            real_debrid=RealDebridClient(config.real_debrid_url),
            all_debrid=AllDebridClient(config.all_debrid_url),
            torbox=TorBoxClient(config.torbox_url),
        )

    def authorized(self) -> Dict[str, DebridClient]:
        """Clients that currently hold a token, keyed by provider name."""
        clients = (self.real_debrid, self.all_debrid, self.torbox)
        return {c.name: c for c in clients if c.is_authorized}

    async def close(self) -> None:
        for client in (self.real_debrid, self.all_debrid, self.torbox):
            await client.close()
