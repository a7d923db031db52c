"""
SLA Configuration Manager
=========================

YAML-backed SLA configuration with watchdog hot reload.

The warning threshold is read from here on every monitor sweep, so an
edit to the file applies to the next sweep without a restart.
"""

import threading
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from helpdesk.config import Settings, settings as default_settings
from helpdesk.core import ConfigurationException
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.sla.application import ISLASettingsProvider
from helpdesk.sla.domain import SLAConfig

logger = get_logger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for SLA config file changes."""

    def __init__(self, config_manager: "SLAConfigManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        self._maybe_reload(event)

    def on_created(self, event):
        # Editors that save via rename surface as a create
        self._maybe_reload(event)

    def _maybe_reload(self, event) -> None:
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info("SLA config file changed", extra={"path": str(event.src_path)})
            self.config_manager.reload()


class SLAConfigManager(ISLASettingsProvider):
    """
    Thread-safe SLA configuration manager with hot-reload support.

    Reloads happen on the watchdog thread; readers take the lock only to
    swap references.
    """

    def __init__(self, app_settings: Optional[Settings] = None):
        self._settings = app_settings or default_settings
        self._config: Optional[SLAConfig] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> SLAConfig:
        """
        Initial configuration load.

        Raises:
            ConfigurationException: if the file exists but is invalid
        """
        self._path = Path(path)
        try:
            config = self._load_from_file(self._path)
        except (OSError, yaml.YAMLError, ValidationError) as e:
            raise ConfigurationException(f"Invalid SLA config file {self._path}", {"error": str(e)})
        with self._lock:
            self._config = config
        return config

    def _load_from_file(self, path: Path) -> SLAConfig:
        """Load and parse YAML config file."""
        if not path.exists():
            logger.warning("SLA config file not found, using defaults", extra={"path": str(path)})
            return SLAConfig()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError("SLA config root must be a mapping")
        return SLAConfig(**data)

    def reload(self) -> bool:
        """Reload configuration from file; keeps the previous one on error."""
        if self._path is None:
            return False

        try:
            new_config = self._load_from_file(self._path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(
                "Failed to reload SLA config, keeping previous configuration",
                extra={"path": str(self._path), "error": str(e)}
            )
            return False

        with self._lock:
            self._config = new_config
        logger.info(
            "SLA configuration reloaded",
            extra={"warning_percent": new_config.warning_percent}
        )
        return True

    def start_watching(self) -> None:
        """
        Start watching the configuration file for changes.

        Skips watching if the file doesn't exist or the platform has no
        usable file notification mechanism.
        """
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                "SLA config file doesn't exist, skipping file watch",
                extra={"path": str(self._path)}
            )
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(handler, str(self._path.parent.resolve()), recursive=False)
            self._observer.start()
            logger.info("Started watching SLA config file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning("File watching not available, using static config", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching configuration file (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def is_loaded(self) -> bool:
        return self._config is not None

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def config(self) -> SLAConfig:
        """Get current configuration."""
        with self._lock:
            if self._config is None:
                raise RuntimeError("SLA configuration not loaded")
            return self._config

    def get_warning_percent(self) -> int:
        """Warning percent from the file, else from the environment."""
        with self._lock:
            config = self._config
        if config is not None and config.warning_percent is not None:
            return config.warning_percent
        return self._settings.sla_warning_percent
