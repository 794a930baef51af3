"""Custom exceptions for Launcher Bootstrap."""

from pathlib import Path
from typing import List


class LauncherBootstrapError(Exception):
    """Base exception for all bootstrap errors."""
    pass


# Configuration Errors

class ConfigError(LauncherBootstrapError):
    """Configuration-related errors."""
    pass


class ConfigFileNotFoundError(ConfigError):
    """Configuration file does not exist."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Configuration file not found: {path}")


class ConfigValidationError(ConfigError):
    """Configuration validation failed."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Configuration validation failed: {'; '.join(errors)}")


# Database Errors

class DatabaseError(LauncherBootstrapError):
    """Database operation errors."""
    pass


class TableNotFoundError(DatabaseError):
    """Table does not exist in database."""

    def __init__(self, table: str, database: Path):
        self.table = table
        self.database = database
        super().__init__(f"Table '{table}' not found in {database}")


class StoreError(DatabaseError):
    """Key-value store read or write failed."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Store operation on '{key}' failed: {reason}")


# Crypto Errors

class CryptoError(LauncherBootstrapError):
    """Encryption or decryption failed."""
    pass


# Service Errors

class ProviderError(LauncherBootstrapError):
    """Debrid provider client errors."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class RemoteApiError(LauncherBootstrapError):
    """Remote library API errors."""

    def __init__(self, status: int, url: str):
        self.status = status
        self.url = url
        super().__init__(f"Remote API returned {status} for {url}")


# Startup Errors

class StartupError(LauncherBootstrapError):
    """Startup cannot continue."""
    pass


class PreferencesUnavailableError(StartupError):
    """User preferences could not be read after migration."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Could not load user preferences: {reason}")


class DownloadsUnavailableError(StartupError):
    """Download queue could not be read after migration."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Could not load downloads: {reason}")
