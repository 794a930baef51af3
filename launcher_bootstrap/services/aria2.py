"""aria2 download agent process."""

import asyncio
import shutil
from typing import List, Optional

from launcher_bootstrap.config.schema import Aria2Config
from launcher_bootstrap.core.exceptions import LauncherBootstrapError
from launcher_bootstrap.utils.logging import get_logger


class Aria2:
    """Starts and stops the aria2c RPC daemon."""

    def __init__(self, config: Aria2Config):
        self.config = config
        self.process: Optional[asyncio.subprocess.Process] = None

    def build_command(self) -> List[str]:
        command = [
            self.config.binary,
            "--enable-rpc",
            "--rpc-listen-all=false",
            f"--rpc-listen-port={self.config.rpc_port}",
            "--file-allocation=none",
            "--allow-overwrite=true",
        ]
        if self.config.rpc_secret:
            command.append(f"--rpc-secret={self.config.rpc_secret}")
        return command

    async def spawn(self) -> None:
        """Start aria2c in the background.

        Raises:
            LauncherBootstrapError: If the binary can't be found
        """
        logger = get_logger(__name__)

        if self.process is not None and self.process.returncode is None:
            logger.debug("aria2c already running")
            return

        if shutil.which(self.config.binary) is None:
            raise LauncherBootstrapError(f"aria2 binary not found: {self.config.binary}")

        command = self.build_command()
        logger.debug(f"Spawning: {' '.join(command)}")
        self.process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        logger.info(f"Started aria2c (pid {self.process.pid}) on port {self.config.rpc_port}")

    async def kill(self) -> None:
        logger = get_logger(__name__)

        if self.process is None or self.process.returncode is not None:
            return

        self.process.terminate()
        try:
            await asyncio.wait_for(self.process.wait(), timeout=5)
        except asyncio.TimeoutError:
            self.process.kill()
            await self.process.wait()
        logger.info("aria2c stopped")
