"""
Mailway configuration service.

Wires the fragment reader, merger, snapshot store, file watcher and writer
for one process: load conf.d synchronously, configure logging from the
result, then keep the snapshot current in the background.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .config import (
    FileWatcher,
    FragmentMerger,
    FragmentReader,
    FragmentWriter,
    ReloadManager,
    SnapshotStore,
)
from .errors import SubscriptionError
from .logging_setup import configure_logging
from .models import MailwayConfig
from .state import ReloadState

logger = logging.getLogger(__name__)

DEFAULT_ROOT = Path("/etc/mailway")
CONFIG_SUBDIR = "conf.d"
ROOT_ENV_VAR = "MAILWAY_ROOT"


def resolve_root(root: Optional[Path] = None) -> Path:
    """Pick the root directory: explicit argument, then $MAILWAY_ROOT, then /etc/mailway."""
    if root is not None:
        return Path(root)
    env_root = os.environ.get(ROOT_ENV_VAR)
    if env_root:
        return Path(env_root)
    return DEFAULT_ROOT


class ConfigService:
    """Live-reloading configuration for one Mailway process."""

    def __init__(
        self,
        root: Optional[Path] = None,
        poll_interval: float = 0.5,
        apply_logging: bool = True,
        ordering=None
    ):
        """
        Initialize configuration service.

        Args:
            root: Mailway root directory (defaults to $MAILWAY_ROOT or /etc/mailway)
            poll_interval: Watcher subscription health check interval in seconds
            apply_logging: Configure the root logger from log_level/log_format on start
            ordering: Fragment ordering callable passed to FragmentReader
        """
        self.root = resolve_root(root)
        self.config_dir = self.root / CONFIG_SUBDIR
        self.poll_interval = poll_interval
        self.apply_logging = apply_logging

        # Initialize components
        self.state = ReloadState()
        self.store = SnapshotStore()
        self.reader = FragmentReader(self.config_dir, ordering=ordering)
        self.merger = FragmentMerger()
        self.reload_manager = ReloadManager(self.reader, self.merger, self.store, self.state)
        self.writer = FragmentWriter(self.config_dir, self.store)

        self.file_watcher: Optional[FileWatcher] = None

    def start(self, watch: bool = True) -> MailwayConfig:
        """
        Load the configuration and start watching for changes.

        Args:
            watch: Start the background file watcher

        Returns:
            The loaded configuration (the current snapshot if already watching)

        Raises:
            ConfigIOError: If conf.d cannot be read
            ConfigParseError: If the fragments cannot be decoded
            UnrecognizedValueError: If log_level or log_format is unknown
            SubscriptionError: If conf.d cannot be watched
        """
        if self.file_watcher is not None and self.file_watcher.is_running():
            logger.warning("Configuration service already started")
            return self.get()

        logger.debug(f"Loading configuration from {self.config_dir}")
        config = self.reload_manager.reload()

        if self.apply_logging:
            configure_logging(config)

        if watch:
            self.file_watcher = FileWatcher(
                config_dir=self.config_dir,
                reload_callback=self.reload_manager.reload_safely,
                poll_interval=self.poll_interval,
                on_fatal=self._on_watch_failed
            )
            self.file_watcher.start()
            self.state.file_watcher_active = True

        return config

    def stop(self):
        """Stop the file watcher."""
        if self.file_watcher:
            self.file_watcher.stop()
        self.state.file_watcher_active = False

    def __enter__(self) -> "ConfigService":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False

    def get(self) -> MailwayConfig:
        """Current configuration snapshot."""
        return self.store.get()

    def reload(self) -> MailwayConfig:
        """
        Reload conf.d now, raising on failure.

        Raises:
            ConfigIOError: If conf.d cannot be read
            ConfigParseError: If the fragments cannot be decoded
        """
        return self.reload_manager.reload()

    def write_fragment(self, name: str, pairs: Dict[str, Any]) -> MailwayConfig:
        return self.writer.write_fragment(name, pairs)

    def write_server_jwt(self, jwt: str) -> MailwayConfig:
        return self.writer.write_server_jwt(jwt)

    def write_instance_config(self, mode: str, hostname: str, email: str) -> MailwayConfig:
        return self.writer.write_instance_config(mode, hostname, email)

    def write_dkim(self, key_path: str) -> MailwayConfig:
        return self.writer.write_dkim(key_path)

    def pretty_print(self) -> str:
        """
        Render the current snapshot as a YAML document.

        Returns:
            YAML text, fields in declaration order
        """
        return yaml.safe_dump(
            self.get().with_defaults(), sort_keys=False, default_flow_style=False
        )

    def telemetry(self) -> dict:
        """Reload state and telemetry for diagnostics."""
        result = self.state.to_dict()
        result["snapshot_version"] = self.store.version
        result["watcher_state"] = (
            self.file_watcher.state.value if self.file_watcher else "stopped"
        )
        return result

    def _on_watch_failed(self, error: SubscriptionError):
        self.state.file_watcher_active = False
        logger.error(f"could not watch config: {error.message}; keeping last loaded configuration")
