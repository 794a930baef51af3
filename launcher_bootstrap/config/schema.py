"""Configuration dataclasses for Launcher Bootstrap."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass
class LoggingConfig:
    """Logging configuration."""
    file: Path
    backup_count: int = 5
    level: str = "INFO"

    def __post_init__(self):
        if isinstance(self.file, str):
            self.file = Path(self.file)


@dataclass
class PathsConfig:
    """Locations of the launcher's local data."""
    source_db: Path       # Legacy SQLite database
    target_db: Path       # Key-value store file
    key_file: Path        # Encryption key for stored credentials
    downloads_dir: Path   # Default folder for resumed downloads

    def __post_init__(self):
        for name in ("source_db", "target_db", "key_file", "downloads_dir"):
            value = getattr(self, name)
            if isinstance(value, str):
                setattr(self, name, Path(value))


@dataclass
class Aria2Config:
    """Download agent process settings."""
    binary: str = "aria2c"
    rpc_port: int = 6800
    rpc_secret: Optional[str] = None

    @property
    def rpc_url(self) -> str:
        return f"http://127.0.0.1:{self.rpc_port}/jsonrpc"


@dataclass
class RemoteApiConfig:
    """Remote library sync API."""
    base_url: str
    upload_batch_size: int = 200
    timeout: float = 30.0


@dataclass
class ProvidersConfig:
    """Base URLs of the debrid providers."""
    real_debrid_url: str = "https://api.real-debrid.com/rest/1.0"
    all_debrid_url: str = "https://api.alldebrid.com/v4"
    torbox_url: str = "https://api.torbox.app/v1/api"


@dataclass
class LudusaviConfig:
    """Save-backup tool integration."""
    config_file: Path
    manifest_url: str

    def __post_init__(self):
        if isinstance(self.config_file, str):
            self.config_file = Path(self.config_file)


@dataclass
class StartupConfig:
    """Startup sequence settings."""
    event_modules: List[str] = field(default_factory=lambda: ["launcher_bootstrap.events"])
    main_loop_interval: float = 1.5


@dataclass
class BootstrapConfig:
    """Complete bootstrap configuration."""
    logging: LoggingConfig
    paths: PathsConfig
    remote_api: RemoteApiConfig
    ludusavi: LudusaviConfig
    aria2: Aria2Config = field(default_factory=Aria2Config)
    providers: ProvidersConfig = field(default_factory=ProvidersConfig)
    startup: StartupConfig = field(default_factory=StartupConfig)
