"""
File watcher for the conf.d fragment directory.

A watchdog observer feeds filesystem events into a queue; one worker thread
drains the queue and runs a full reload per event. Reload failures are logged
and never stop the watcher. A broken subscription stops the watcher and is
reported through the on_fatal callback.
"""

import logging
import queue
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..errors import SubscriptionError

logger = logging.getLogger(__name__)

_STOP = object()


class WatcherState(str, Enum):
    """Lifecycle of a FileWatcher."""
    STOPPED = "stopped"
    STARTING = "starting"
    WATCHING = "watching"
    RELOADING = "reloading"


class FragmentEventHandler(FileSystemEventHandler):
    """Queues every filesystem event that may change conf.d content."""

    # Reading fragments produces these on inotify; reloading on them would loop
    IGNORED_EVENT_TYPES = frozenset({"opened", "closed_no_write"})

    def __init__(self, events: queue.Queue):
        """
        Initialize file handler.

        Args:
            events: Queue drained by the watcher's worker thread
        """
        super().__init__()
        self.events = events

    def on_any_event(self, event: FileSystemEvent):
        """Queue the event for the worker thread."""
        if event.event_type in self.IGNORED_EVENT_TYPES:
            return
        self.events.put(event)


class FileWatcher:
    """Watches the fragment directory and triggers reloads."""

    def __init__(
        self,
        config_dir: Path,
        reload_callback: Callable[[], object],
        poll_interval: float = 0.5,
        on_fatal: Optional[Callable[[SubscriptionError], None]] = None
    ):
        """
        Initialize file watcher.

        Args:
            config_dir: Directory to watch (not recursive)
            reload_callback: Called once per filesystem event
            poll_interval: Seconds between subscription health checks while idle
            on_fatal: Called with a SubscriptionError if the subscription breaks
        """
        self.config_dir = Path(config_dir)
        self.reload_callback = reload_callback
        self.poll_interval = poll_interval
        self.on_fatal = on_fatal

        self.observer: Optional[Observer] = None
        self.handler: Optional[FragmentEventHandler] = None
        self._events: queue.Queue = queue.Queue()
        self._worker: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._stopping = False
        self._state = WatcherState.STOPPED

    @property
    def state(self) -> WatcherState:
        return self._state

    def start(self):
        """
        Start file watcher.

        Raises:
            SubscriptionError: If the directory cannot be watched
        """
        with self._lock:
            if self._state != WatcherState.STOPPED:
                logger.warning("File watcher already running")
                return

            self._state = WatcherState.STARTING
            logger.debug(f"start watching {self.config_dir} for changes")

            if not self.config_dir.is_dir():
                self._state = WatcherState.STOPPED
                raise SubscriptionError(str(self.config_dir), "not a directory")

            self._stopping = False
            self._events = queue.Queue()
            self.handler = FragmentEventHandler(self._events)
            self.observer = Observer()

            try:
                self.observer.schedule(self.handler, str(self.config_dir), recursive=False)
                self.observer.start()
            except OSError as e:
                self.observer = None
                self._state = WatcherState.STOPPED
                raise SubscriptionError(str(self.config_dir), str(e)) from e

            self._worker = threading.Thread(
                target=self._run, name="mailway-config-watcher", daemon=True
            )
            self._state = WatcherState.WATCHING
            self._worker.start()

        logger.info(f"File watcher started for {self.config_dir}")

    def stop(self, timeout: float = 5.0):
        """
        Stop file watcher and release the subscription.

        Args:
            timeout: Seconds to wait for each thread to finish
        """
        with self._lock:
            if self._state == WatcherState.STOPPED:
                return
            self._stopping = True
            worker = self._worker
            self._events.put(_STOP)
            self._release_subscription(timeout)

        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=timeout)

        self._state = WatcherState.STOPPED
        logger.info("File watcher stopped")

    def is_running(self) -> bool:
        """
        Check if file watcher is running.

        Returns:
            True if running, False otherwise
        """
        return self._state in (WatcherState.WATCHING, WatcherState.RELOADING)

    def _run(self):
        while True:
            try:
                item = self._events.get(timeout=self.poll_interval)
            except queue.Empty:
                if not self._subscription_alive():
                    self._fail("watch subscription closed")
                    return
                continue

            if item is _STOP:
                return

            self._state = WatcherState.RELOADING
            logger.debug(f"{item.event_type} {item.src_path} detected config change; reloading config")
            try:
                self.reload_callback()
            except Exception as e:
                logger.error(f"could not load config: {e}")

            if self._state == WatcherState.RELOADING:
                self._state = WatcherState.WATCHING

    def _subscription_alive(self) -> bool:
        observer = self.observer
        if observer is None or not observer.is_alive():
            return False
        return all(emitter.is_alive() for emitter in observer.emitters)

    def _fail(self, reason: str):
        error = SubscriptionError(str(self.config_dir), reason)

        with self._lock:
            if self._stopping or self._state == WatcherState.STOPPED:
                return
            logger.error(f"error while watching files: {error.message}")
            self._release_subscription(timeout=5.0)
            self._state = WatcherState.STOPPED

        if self.on_fatal is not None:
            try:
                self.on_fatal(error)
            except Exception as e:
                logger.error(f"on_fatal callback failed: {e}")

    def _release_subscription(self, timeout: float):
        # caller holds self._lock
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join(timeout=timeout)
        self.observer = None
