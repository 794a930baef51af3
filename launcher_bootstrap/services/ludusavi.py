"""Ludusavi (save backup tool) configuration."""

from pathlib import Path
from typing import Any, Dict

import yaml

from launcher_bootstrap.config.schema import LudusaviConfig
from launcher_bootstrap.core.exceptions import ConfigError
from launcher_bootstrap.utils.logging import get_logger


class Ludusavi:
    """Keeps the launcher's manifest registered in Ludusavi's config.yaml."""

    def __init__(self, config: LudusaviConfig):
        self.config_file: Path = config.config_file
        self.manifest_url = config.manifest_url

    def read_config(self) -> Dict[str, Any]:
        if not self.config_file.exists():
            return {}

        with open(self.config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigError(f"Unexpected Ludusavi config format in {self.config_file}")
        return data

    def add_manifest_to_config(self) -> None:
        """Register the launcher's manifest as the only enabled secondary one.

        The primary Ludusavi manifest is disabled. Other keys in the file are
        left untouched.
        """
        logger = get_logger(__name__)

        data = self.read_config()
        manifest = data.setdefault("manifest", {})
        manifest["enable"] = False
        manifest["secondary"] = [{"url": self.manifest_url, "enable": True}]

        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False)

        logger.info(f"Registered Ludusavi manifest {self.manifest_url}")
