"""Filesystem change sources for the registry watcher.

Brief:
  A ChangeSource delivers "the registry file was written and closed"
  notifications to a callback and can be cancelled. The watcher depends only
  on this capability, so the inotify-backed watchdog source and the
  stat-polling fallback are interchangeable.
"""

from __future__ import annotations

import logging
import os
import pathlib
import threading
from typing import Callable, Optional, Protocol, Tuple

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MOVED,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .config.config_schema import SyncConfig
from .errors import WatchError

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str], None]


class ChangeSource(Protocol):
    """Protocol for a cancellable close-write subscription on one file.

    Inputs:
      - callback: Called with the file path once per completed write.

    Outputs:
      - None; is_alive() reports whether notifications can still arrive.
    """

    def start(self, callback: ChangeCallback) -> None:
        """Begin delivering notifications to callback.

        Raises:
          - WatchError: when the subscription cannot be established.
        """

    def stop(self) -> None:
        """Cancel the subscription and release its resources."""

    def is_alive(self) -> bool:
        """Return False once the subscription is exhausted or cancelled."""


class _CloseWriteHandler(FileSystemEventHandler):
    """Brief: watchdog handler forwarding close-after-write events for one path.

    Inputs:
      - source: Owning WatchdogChangeSource.

    Outputs:
      - None (invokes source callbacks).
    """

    def __init__(self, source: "WatchdogChangeSource") -> None:
        super().__init__()
        self._source = source

    def on_any_event(self, event) -> None:  # type: ignore[override]
        if getattr(event, "is_directory", False):
            return

        event_type = getattr(event, "event_type", None)
        src = getattr(event, "src_path", None)

        # Opened, modified and closed-without-write events fire while the
        # database may be mid-write; only a close after writing is honored.
        if event_type == EVENT_TYPE_CLOSED:
            if self._source._matches(src):
                self._source._notify()
            return

        if event_type == EVENT_TYPE_DELETED and self._source._matches(src):
            self._source._exhaust("registry file was deleted")
        elif event_type == EVENT_TYPE_MOVED:
            if self._source._matches(src):
                self._source._exhaust("registry file was moved away")
            elif self._source._matches(getattr(event, "dest_path", None)):
                # A complete file renamed over the registry is a finished write.
                self._source._notify()


class WatchdogChangeSource:
    """
    Brief: Close-write notifications via a watchdog Observer (inotify on Linux).

    Inputs:
      - path: Registry file to watch. Its parent directory is scheduled
        non-recursively and events are filtered down to this file.

    Outputs:
      - WatchdogChangeSource instance.
    """

    def __init__(self, path: str) -> None:
        self.path = pathlib.Path(os.path.expanduser(str(path))).resolve()
        self._callback: Optional[ChangeCallback] = None
        self._observer = None
        self._exhausted = threading.Event()

    def _matches(self, raw: Optional[object]) -> bool:
        if not raw:
            return False
        try:
            return pathlib.Path(os.fsdecode(raw)).resolve() == self.path
        except (OSError, ValueError, TypeError):
            return False

    def _notify(self) -> None:
        callback = self._callback
        if callback is not None and not self._exhausted.is_set():
            callback(str(self.path))

    def _exhaust(self, reason: str) -> None:
        if not self._exhausted.is_set():
            logger.error("Watch on %s lost: %s", self.path, reason)
            self._exhausted.set()

    def start(self, callback: ChangeCallback) -> None:
        directory = self.path.parent
        if not directory.is_dir():
            raise WatchError(f"cannot watch {self.path}: {directory} does not exist")

        self._callback = callback
        observer = Observer()
        try:
            observer.schedule(_CloseWriteHandler(self), str(directory), recursive=False)
            observer.daemon = True
            observer.start()
        except OSError as exc:
            raise WatchError(f"cannot watch {directory}: {exc}") from exc
        self._observer = observer
        logger.debug("Watching %s for close-write events", self.path)

    def stop(self) -> None:
        observer = self._observer
        self._callback = None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=2.0)
        self._observer = None

    def is_alive(self) -> bool:
        observer = self._observer
        if observer is None or self._exhausted.is_set():
            return False
        return observer.is_alive()


class PollingChangeSource:
    """
    Brief: stat-based fallback for filesystems that do not deliver inotify events.

    Inputs:
      - path: Registry file to poll.
      - interval: Seconds between stat() calls.

    Outputs:
      - PollingChangeSource instance.

    Notes:
      - A change of inode, size or mtime is reported as one completed write;
        the debouncer absorbs writes still in progress.
      - The file disappearing exhausts the subscription.
    """

    def __init__(self, path: str, interval: float = 1.0) -> None:
        if interval <= 0:
            raise ValueError("poll interval must be > 0")
        self.path = os.path.expanduser(str(path))
        self.interval = float(interval)
        self._callback: Optional[ChangeCallback] = None
        self._stop = threading.Event()
        self._exhausted = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last: Optional[Tuple[int, int, int]] = None

    def _snapshot(self) -> Optional[Tuple[int, int, int]]:
        try:
            st = os.stat(self.path)
        except FileNotFoundError:
            return None
        return (st.st_ino, st.st_size, st.st_mtime_ns)

    def poll_once(self) -> bool:
        """
        Brief: Compare the current stat snapshot with the previous one.

        Inputs:
          - None.

        Outputs:
          - bool: True when a change was detected and delivered.
        """
        try:
            snap = self._snapshot()
        except OSError:
            logger.warning("Failed to stat registry file %s", self.path, exc_info=True)
            return False

        if snap is None:
            if not self._exhausted.is_set():
                logger.error("Watch on %s lost: registry file disappeared", self.path)
                self._exhausted.set()
            return False

        if snap == self._last:
            return False
        self._last = snap
        callback = self._callback
        if callback is not None:
            callback(self.path)
        return True

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.poll_once()
            if self._exhausted.is_set():
                return

    def start(self, callback: ChangeCallback) -> None:
        try:
            self._last = self._snapshot()
        except OSError as exc:
            raise WatchError(f"cannot stat {self.path}: {exc}") from exc
        if self._last is None:
            raise WatchError(f"cannot watch {self.path}: file does not exist")

        self._callback = callback
        self._stop.clear()
        thread = threading.Thread(target=self._run, name="RegistryPoller")
        thread.daemon = True
        thread.start()
        self._thread = thread
        logger.warning("Polling %s every %.1fs for changes", self.path, self.interval)

    def stop(self) -> None:
        self._stop.set()
        self._callback = None
        thread = self._thread
        if thread is not None:
            thread.join(timeout=2.0)
            self._thread = None

    def is_alive(self) -> bool:
        thread = self._thread
        if thread is None or self._exhausted.is_set():
            return False
        return thread.is_alive()


def create_change_source(config: SyncConfig) -> ChangeSource:
    """Brief: Build the ChangeSource selected by config.watch_backend.

    Inputs:
      - config: SyncConfig.

    Outputs:
      - WatchdogChangeSource or PollingChangeSource for config.registry_path.
    """
    if config.watch_backend == "poll":
        return PollingChangeSource(config.registry_path, config.poll_interval_seconds)
    return WatchdogChangeSource(config.registry_path)
