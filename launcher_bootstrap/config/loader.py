"""YAML configuration loader for Launcher Bootstrap."""

from pathlib import Path
from typing import Any, Dict, List

import yaml

from launcher_bootstrap.config.schema import (
    Aria2Config,
    BootstrapConfig,
    LoggingConfig,
    LudusaviConfig,
    PathsConfig,
    ProvidersConfig,
    RemoteApiConfig,
    StartupConfig,
)
from launcher_bootstrap.core.exceptions import ConfigFileNotFoundError, ConfigValidationError


def load_config(config_path: Path) -> BootstrapConfig:
    """Load and parse a YAML configuration file.

    Args:
        config_path: Path to the YAML config file

    Returns:
        Parsed BootstrapConfig object

    Raises:
        ConfigFileNotFoundError: If config file doesn't exist
        ConfigValidationError: If config is invalid
    """
    if not config_path.exists():
        raise ConfigFileNotFoundError(config_path)

    with open(config_path, "r", encoding="utf-8") as f:
        raw_config = yaml.safe_load(f) or {}

    if not isinstance(raw_config, dict):
        raise ConfigValidationError(["Top level of the config must be a mapping"])

    return _parse_config(raw_config, config_path.parent)


def _parse_config(raw: Dict[str, Any], base_path: Path) -> BootstrapConfig:
    """Parse raw YAML dict into BootstrapConfig."""
    errors: List[str] = []

    # Logging
    logging_config = _parse_logging(_section(raw, "logging", errors), base_path)

    # Paths
    if "paths" not in raw:
        errors.append("Missing 'paths' section")
        paths = PathsConfig(
            source_db=Path("."), target_db=Path("."),
            key_file=Path("."), downloads_dir=Path("."),
        )
    else:
        paths = _parse_paths(_section(raw, "paths", errors), base_path, errors)

    # Remote API
    remote_api_raw = _section(raw, "remote_api", errors)
    if not remote_api_raw.get("base_url"):
        errors.append("Missing 'remote_api.base_url'")
        remote_api = RemoteApiConfig(base_url="")
    else:
        remote_api = _parse_remote_api(remote_api_raw)

    # Ludusavi
    if "ludusavi" not in raw:
        errors.append("Missing 'ludusavi' section")
        ludusavi = LudusaviConfig(config_file=Path("."), manifest_url="")
    else:
        ludusavi = _parse_ludusavi(_section(raw, "ludusavi", errors), base_path, errors)

    aria2 = _parse_aria2(_section(raw, "aria2", errors))
    providers = _parse_providers(_section(raw, "providers", errors))
    startup = _parse_startup(_section(raw, "startup", errors))

    if errors:
        raise ConfigValidationError(errors)

    return BootstrapConfig(
        logging=logging_config,
        paths=paths,
        remote_api=remote_api,
        ludusavi=ludusavi,
        aria2=aria2,
        providers=providers,
        startup=startup,
    )


def _section(raw: Dict[str, Any], name: str, errors: List[str]) -> Dict[str, Any]:
    """Return a config section, treating an empty section as an empty mapping."""
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        errors.append(f"'{name}' must be a mapping")
        return {}
    return value


def _resolve(value: str, base_path: Path) -> Path:
    """Make relative paths relative to the config file's folder."""
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base_path / path
    return path


def _parse_logging(raw: Dict[str, Any], base_path: Path) -> LoggingConfig:
    """Parse logging section."""
    return LoggingConfig(
        file=_resolve(raw.get("file", "launcher.log"), base_path),
        backup_count=raw.get("backup_count", 5),
        level=raw.get("level", "INFO"),
    )


def _parse_paths(raw: Dict[str, Any], base_path: Path, errors: List[str]) -> PathsConfig:
    """Parse paths section."""
    for required in ("source_db", "target_db"):
        if required not in raw:
            errors.append(f"Missing 'paths.{required}'")

    return PathsConfig(
        source_db=_resolve(raw.get("source_db", "."), base_path),
        target_db=_resolve(raw.get("target_db", "."), base_path),
        key_file=_resolve(raw.get("key_file", "secret.key"), base_path),
        downloads_dir=_resolve(raw.get("downloads_dir", "downloads"), base_path),
    )


def _parse_remote_api(raw: Dict[str, Any]) -> RemoteApiConfig:
    """Parse remote_api section."""
    return RemoteApiConfig(
        base_url=str(raw["base_url"]).rstrip("/"),
        upload_batch_size=raw.get("upload_batch_size", 200),
        timeout=raw.get("timeout", 30.0),
    )


def _parse_ludusavi(raw: Dict[str, Any], base_path: Path, errors: List[str]) -> LudusaviConfig:
    """Parse ludusavi section."""
    if "manifest_url" not in raw:
        errors.append("Missing 'ludusavi.manifest_url'")

    return LudusaviConfig(
        config_file=_resolve(raw.get("config_file", "ludusavi/config.yaml"), base_path),
        manifest_url=raw.get("manifest_url", ""),
    )


def _parse_aria2(raw: Dict[str, Any]) -> Aria2Config:
    """Parse aria2 section."""
    return Aria2Config(
        binary=raw.get("binary", "aria2c"),
        rpc_port=raw.get("rpc_port", 6800),
        rpc_secret=raw.get("rpc_secret"),
    )


def _parse_providers(raw: Dict[str, Any]) -> ProvidersConfig:
    """Parse providers section, keeping defaults for missing URLs."""
    defaults = ProvidersConfig()
    return ProvidersConfig(
        real_debrid_url=raw.get("real_debrid_url", defaults.real_debrid_url),
        all_debrid_url=raw.get("all_debrid_url", defaults.all_debrid_url),
        torbox_url=raw.get("torbox_url", defaults.torbox_url),
    )


def _parse_startup(raw: Dict[str, Any]) -> StartupConfig:
    """Parse startup section."""
    defaults = StartupConfig()
    return StartupConfig(
        event_modules=raw.get("event_modules", defaults.event_modules),
        main_loop_interval=raw.get("main_loop_interval", defaults.main_loop_interval),
    )
