"""
Snapshot store holding the currently published configuration.

Records are immutable, so readers take the current reference without
locking. Full replacements (publish) and narrow patches (patch_fields) are
serialized by a single lock, held only for the validate-and-swap.
"""

import logging
import threading
import time
from typing import Any, Dict, Optional

from ..errors import ConfigError, ErrorCode
from ..models import MailwayConfig, build_config

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Concurrency-safe holder of the current MailwayConfig."""

    def __init__(self, initial: Optional[MailwayConfig] = None):
        """
        Initialize snapshot store.

        Args:
            initial: Record to publish immediately (optional)
        """
        self._changed = threading.Condition(threading.Lock())
        self._record: Optional[MailwayConfig] = None
        self._version = 0
        self.published_at: Optional[float] = None

        if initial is not None:
            self.publish(initial)

    @property
    def version(self) -> int:
        """Number of publishes and patches applied so far."""
        return self._version

    def get(self) -> MailwayConfig:
        """
        Get the current configuration.

        Returns:
            The published MailwayConfig (immutable)

        Raises:
            ConfigError: If nothing has been published yet
        """
        record = self._record
        if record is None:
            raise ConfigError(
                code=ErrorCode.DAEMON_NOT_INITIALIZED,
                message="No configuration has been loaded yet",
                suggestion="Load the configuration before reading it"
            )
        return record

    def publish(
        self,
        record: MailwayConfig,
        expected_version: Optional[int] = None
    ) -> Optional[int]:
        """
        Atomically replace the current configuration.

        Args:
            record: Fully decoded configuration
            expected_version: Only publish if the snapshot is still at this version

        Returns:
            New snapshot version, or None if the snapshot moved past expected_version
        """
        with self._changed:
            if expected_version is not None and self._version != expected_version:
                return None
            self._swap(record)
            return self._version

    def patch_fields(self, updates: Dict[str, Any]) -> MailwayConfig:
        """
        Update specific fields of the current configuration.

        Args:
            updates: Field name to new value

        Returns:
            The patched record now published

        Raises:
            ConfigParseError: If a field is unknown or a value has the wrong type
            ConfigError: If nothing has been published yet
        """
        with self._changed:
            data = self.get().model_dump()
            data.update(updates)
            record = build_config(data, known_only=True)
            self._swap(record)

        logger.debug(f"Patched configuration fields: {', '.join(updates)}")
        return record

    def wait_for_version(self, version: int, timeout: Optional[float] = None) -> bool:
        """
        Block until the snapshot version reaches at least `version`.

        Args:
            version: Version to wait for
            timeout: Maximum seconds to wait (None waits forever)

        Returns:
            True if the version was reached, False on timeout
        """
        with self._changed:
            return self._changed.wait_for(lambda: self._version >= version, timeout=timeout)

    def _swap(self, record: MailwayConfig) -> None:
        # caller holds self._changed
        self._record = record
        self._version += 1
        self.published_at = time.time()
        self._changed.notify_all()
