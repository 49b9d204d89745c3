"""
Configuration reload orchestrator.

A reload reads every fragment, decodes the merged document and publishes the
result. It is all-or-nothing: any read or parse failure leaves the previous
snapshot in place.
"""

import logging
import threading
import time
from typing import Optional

from ..errors import ConfigError
from ..models import MailwayConfig
from ..state import ReloadState
from .loader import FragmentReader
from .merger import FragmentMerger
from .snapshot import SnapshotStore

logger = logging.getLogger(__name__)

# Rereads allowed when a write patches the snapshot mid-reload
STALE_READ_RETRIES = 3


class ReloadManager:
    """Runs the read + merge + publish sequence."""

    def __init__(
        self,
        reader: FragmentReader,
        merger: FragmentMerger,
        store: SnapshotStore,
        state: Optional[ReloadState] = None
    ):
        """
        Initialize reload manager.

        Args:
            reader: Fragment reader for conf.d
            merger: Decoder for the concatenated fragments
            store: Snapshot store receiving new records
            state: Reload telemetry (a fresh ReloadState by default)
        """
        self.reader = reader
        self.merger = merger
        self.store = store
        self.state = state or ReloadState()
        self._reload_lock = threading.Lock()

    def reload(self) -> MailwayConfig:
        """
        Reload and publish the configuration.

        Reloads are serialized. If a write patches the snapshot while the
        fragments are being read, the read may predate that write, so the
        fragments are read again instead of publishing over the patch.

        Returns:
            The newly published record (or the patched snapshot if writes kept
            landing during every reread)

        Raises:
            ConfigIOError: If conf.d or a fragment cannot be read
            ConfigParseError: If the merged fragments cannot be decoded
        """
        with self._reload_lock:
            start_time = time.time()
            phase = "read"

            try:
                for _ in range(STALE_READ_RETRIES):
                    base_version = self.store.version
                    phase = "read"
                    fragments = self.reader.read_fragments()
                    phase = "parse"
                    record = self.merger.merge(fragments)

                    version = self.store.publish(record, expected_version=base_version)
                    if version is not None:
                        break
                    logger.debug("Snapshot patched during reload; reading fragments again")
                else:
                    record = self.store.get()
                    version = self.store.version
            except ConfigError as e:
                duration_ms = int((time.time() - start_time) * 1000)
                self.state.record_reload_attempt(False, duration_ms, phase, e.to_dict())
                raise

            duration_ms = int((time.time() - start_time) * 1000)
            self.state.record_reload_attempt(True, duration_ms, "complete")
            self.state.config_load_timestamp = self.store.published_at
            logger.debug(
                f"Configuration reloaded from {len(fragments)} fragments "
                f"(version {version}, {duration_ms}ms)"
            )

            return record

    def reload_safely(self) -> bool:
        """
        Reload, keeping the previous snapshot on failure.

        Returns:
            True if a new record was published, False otherwise
        """
        try:
            self.reload()
            return True
        except ConfigError as e:
            logger.error(f"could not load config: {e.message}")
        return False
