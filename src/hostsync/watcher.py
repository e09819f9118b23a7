from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Optional

from .config.config_schema import SyncConfig
from .debounce import Debouncer, PendingRegeneration
from .hosts_generator import HostsGenerator
from .watch_sources import ChangeSource, create_change_source

logger = logging.getLogger(__name__)


@dataclass
class WatcherState:
    """
    Brief: Run state owned by one ChangeWatcher.

    Inputs:
      - shutdown: Set to request a cooperative stop of the run loop.
      - pending: Debounce state shared by the event and run-loop threads.

    Outputs:
      - WatcherState instance.
    """

    shutdown: threading.Event = field(default_factory=threading.Event)
    pending: PendingRegeneration = field(default_factory=PendingRegeneration)


class ChangeWatcher:
    """
    Brief: Turn registry close-write events into debounced regenerations.

    Inputs:
      - config: SyncConfig (registry path, debounce and poll intervals).
      - generator: HostsGenerator run on the loop thread when a burst settles.
      - state: Optional WatcherState; pass one in to control shutdown from
        outside (signal handlers, tests).
      - source: Optional ChangeSource (defaults to config.watch_backend).
      - debouncer: Optional Debouncer sharing state.pending.

    Outputs:
      - ChangeWatcher instance; start() blocks until shutdown.

    Notes:
      - The source thread only enqueues events. Debouncer signals, ticks and
        generate() all run on the thread that called start(), so events that
        arrive during a regeneration wait for the next cycle.
    """

    def __init__(
        self,
        config: SyncConfig,
        generator: HostsGenerator,
        state: Optional[WatcherState] = None,
        source: Optional[ChangeSource] = None,
        debouncer: Optional[Debouncer] = None,
    ) -> None:
        self.config = config
        self.generator = generator
        self.state = state or WatcherState()
        self.source = source or create_change_source(config)
        self.debouncer = debouncer or Debouncer(
            config.debounce_seconds, state=self.state.pending
        )
        self.poll_interval = float(config.poll_interval_seconds)
        self._events: "queue.Queue[str]" = queue.Queue()

    def _on_change(self, path: str) -> None:
        self._events.put(path)

    def _drain_events(self, timeout: float) -> int:
        """Wait up to timeout for an event, then signal once per queued event."""
        count = 0
        try:
            self._events.get(timeout=timeout)
        except queue.Empty:
            return 0
        count += 1
        while True:
            try:
                self._events.get_nowait()
            except queue.Empty:
                break
            count += 1
        for _ in range(count):
            self.debouncer.signal()
        return count

    def process_pending_regeneration(self) -> bool:
        """
        Brief: Run one debounce tick and regenerate when it fires.

        Inputs:
          - None.

        Outputs:
          - bool: True when a regeneration was attempted.
        """
        if not self.debouncer.tick():
            return False
        logger.info("Debounce period elapsed, regenerating hosts file")
        if not self.generator.generate():
            logger.warning("Regeneration failed; waiting for the next change")
        return True

    def start(self) -> bool:
        """
        Brief: Subscribe to registry changes and run until shutdown.

        Inputs:
          - None.

        Outputs:
          - bool: True after a requested shutdown; False when the change
            subscription was lost (for example the registry was deleted).

        Raises:
          - WatchError: when the subscription cannot be established.
        """
        logger.info("Starting continuous monitoring of %s", self.config.registry_path)
        self.source.start(self._on_change)
        logger.info("Watching for changes. Send SIGTERM or SIGINT to stop.")

        clean = True
        try:
            while not self.state.shutdown.is_set():
                self._drain_events(self.poll_interval)
                self.process_pending_regeneration()
                if not self.source.is_alive():
                    logger.error(
                        "Change notifications for %s stopped; exiting watch loop",
                        self.config.registry_path,
                    )
                    clean = False
                    break
        finally:
            self.source.stop()

        logger.info("Monitoring stopped")
        return clean

    def stop(self) -> None:
        """Request the run loop to exit after its current iteration."""
        self.state.shutdown.set()
