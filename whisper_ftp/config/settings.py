"""Application settings management for WhisperFTP.

Provides the AppSettings and SavedConnection dataclasses and the
SettingsManager that persists them and builds connection configs.
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from whisper_ftp.config.credentials import CredentialEncryption
from whisper_ftp.config.paths import get_settings_path
from whisper_ftp.ftp.connection import FTPConnectionConfig

logger = logging.getLogger("whisper_ftp.settings")


@dataclass
class SavedConnection:
    """A named server the user connects to repeatedly."""
    name: str
    address: str
    username: str = "anonymous"
    encrypted_password: str = field(default="", repr=False)
    port: int = 21
    use_tls: bool = False
    # ISO 8601, empty if never used
    last_used: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "SavedConnection":
        """Create a record from a dictionary, ignoring unknown keys."""
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)


@dataclass
class AppSettings:
    """Application settings that persist between sessions."""

    # Connection defaults
    default_port: int = 21
    connect_timeout: float = 10.0
    read_write_timeout: float = 30.0
    passive_mode: bool = True
    use_tls: bool = False
    accept_invalid_certificates: bool = False

    # Transfer tuning
    buffer_size: int = 131072
    max_retries: int = 3
    retry_base_delay: float = 2.0
    skip_delay: float = 1.0

    # Download settings
    download_path: str = ""

    # Logging
    log_level: str = "INFO"

    connections: List[SavedConnection] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert settings to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AppSettings":
        """Create settings from dictionary, ignoring unknown keys."""
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}

        records = []
        for record in filtered.pop("connections", None) or []:
            try:
                records.append(SavedConnection.from_dict(record))
            except (TypeError, AttributeError) as e:
                logger.warning(f"Ignoring malformed saved connection: {e}")

        return cls(connections=records, **filtered)


class SettingsManager:
    """Manages application settings persistence."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize settings manager.

        Args:
            config_path: Optional custom path, defaults to platform standard
        """
        self._config_path = config_path or get_settings_path()
        self._settings: Optional[AppSettings] = None

    @property
    def config_path(self) -> Path:
        """Path to settings file."""
        return self._config_path

    @property
    def settings(self) -> AppSettings:
        """Current settings, loaded on first access."""
        if self._settings is None:
            self.load()
        return self._settings

    def load(self) -> AppSettings:
        """
        Load settings from disk.

        Returns:
            AppSettings instance (defaults if file not found)
        """
        if self._config_path.exists():
            try:
                with open(self._config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                self._settings = AppSettings.from_dict(data)
            except (json.JSONDecodeError, IOError, TypeError) as e:
                # Invalid or unreadable file, use defaults
                logger.warning(f"Could not read settings file, using defaults: {e}")
                self._settings = AppSettings()
        else:
            self._settings = AppSettings()

        return self._settings

    def save(self, settings: AppSettings) -> None:
        """
        Persist settings to disk.

        Args:
            settings: Settings to save
        """
        self._settings = settings

        # Ensure parent directory exists
        self._config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self._config_path, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)

    def reset(self) -> AppSettings:
        """
        Reset to default settings.

        Returns:
            Default AppSettings instance
        """
        self._settings = AppSettings()

        # Remove existing file
        if self._config_path.exists():
            self._config_path.unlink()

        return self._settings

    def update(self, **kwargs) -> AppSettings:
        """
        Update specific settings fields.

        Args:
            **kwargs: Field names and new values

        Returns:
            Updated AppSettings instance
        """
        settings = self.settings

        for key, value in kwargs.items():
            if hasattr(settings, key):
                setattr(settings, key, value)

        self.save(settings)
        return settings

    # -- saved connections --------------------------------------------------

    def get_connection(self, name: str) -> Optional[SavedConnection]:
        """Saved connection with the given name, or None."""
        for record in self.settings.connections:
            if record.name == name:
                return record
        return None

    def recent_connections(self) -> List[SavedConnection]:
        """Saved connections, most recently used first."""
        return sorted(self.settings.connections, key=lambda r: r.last_used, reverse=True)

    def save_connection(
        self,
        name: str,
        address: str,
        username: str,
        password: str,
        encryption: CredentialEncryption,
        port: int = 21,
        use_tls: bool = False
    ) -> SavedConnection:
        """
        Add or replace a saved connection.

        The password is handed to the encryption service and only the
        value it returns is written to disk.

        Returns:
            The stored record
        """
        previous = self.get_connection(name)
        if previous is not None:
            encryption.forget(previous.encrypted_password)

        record = SavedConnection(
            name=name,
            address=address,
            username=username,
            encrypted_password=encryption.encrypt(password),
            port=port,
            use_tls=use_tls,
            last_used=datetime.now().isoformat(timespec="seconds"),
        )

        settings = self.settings
        settings.connections = [r for r in settings.connections if r.name != name]
        settings.connections.append(record)
        self.save(settings)

        logger.info(f"Saved connection '{name}'")
        return record

    def remove_connection(
        self,
        name: str,
        encryption: Optional[CredentialEncryption] = None
    ) -> bool:
        """
        Remove a saved connection.

        Returns:
            True if a record was removed
        """
        record = self.get_connection(name)
        if record is None:
            return False

        if encryption is not None:
            encryption.forget(record.encrypted_password)

        settings = self.settings
        settings.connections = [r for r in settings.connections if r.name != name]
        self.save(settings)
        logger.info(f"Removed connection '{name}'")
        return True

    def touch_connection(self, name: str) -> None:
        """Mark a saved connection as used now."""
        record = self.get_connection(name)
        if record is None:
            return
        record.last_used = datetime.now().isoformat(timespec="seconds")
        self.save(self.settings)

    # -- connection config factory -----------------------------------------

    def build_config(
        self,
        address: str,
        username: str = "anonymous",
        password: str = "",
        port: Optional[int] = None,
        use_tls: Optional[bool] = None,
        passive_mode: Optional[bool] = None
    ) -> FTPConnectionConfig:
        """
        Build a connection config, filling unset values from settings.

        Raises:
            ValueError: If the resulting config is invalid
        """
        settings = self.settings
        return FTPConnectionConfig(
            address=address,
            username=username,
            password=password,
            port=settings.default_port if port is None else port,
            connect_timeout=settings.connect_timeout,
            read_write_timeout=settings.read_write_timeout,
            use_tls=settings.use_tls if use_tls is None else use_tls,
            passive_mode=settings.passive_mode if passive_mode is None else passive_mode,
            buffer_size=settings.buffer_size,
            max_retries=settings.max_retries,
            retry_base_delay=settings.retry_base_delay,
            accept_invalid_certificates=settings.accept_invalid_certificates,
        )

    def build_connection_config(
        self,
        record: SavedConnection,
        encryption: CredentialEncryption
    ) -> FTPConnectionConfig:
        """
        Turn a saved connection into a config with the real password.

        Raises:
            ValueError: If the saved record does not form a valid config
        """
        return self.build_config(
            address=record.address,
            username=record.username,
            password=encryption.decrypt(record.encrypted_password),
            port=record.port,
            use_tls=record.use_tls,
        )
