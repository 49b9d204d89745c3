"""
Configuration subsystem for the Mailway configuration store.

Modules:
- loader: List and read conf.d fragments in merge order
- merger: Decode concatenated fragments into a MailwayConfig
- snapshot: Hold the published configuration for concurrent readers
- reload_manager: Run read + merge + publish with all-or-nothing semantics
- file_watcher: Monitor conf.d and trigger reloads
- writer: Replace named fragments and patch the snapshot
"""

from .loader import Fragment, FragmentReader
from .merger import FragmentMerger
from .snapshot import SnapshotStore
from .reload_manager import ReloadManager
from .file_watcher import FileWatcher, WatcherState
from .writer import FragmentWriter

__all__ = [
    "Fragment",
    "FragmentReader",
    "FragmentMerger",
    "SnapshotStore",
    "ReloadManager",
    "FileWatcher",
    "WatcherState",
    "FragmentWriter",
]
