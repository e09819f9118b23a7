from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class PendingRegeneration:
    """
    Brief: Shared debounce state; only touch it while holding ``lock``.

    Inputs:
      - last_event_time: Clock reading of the most recent change signal.
      - pending: True while a change is waiting for the quiet period.

    Outputs:
      - PendingRegeneration instance.
    """

    last_event_time: Optional[float] = None
    pending: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class Debouncer:
    """
    Brief: Coalesce bursts of change signals into one trigger.

    Inputs:
      - period: Quiet interval in seconds required after the last signal.
      - state: Optional PendingRegeneration to share (a fresh one by default).
      - clock: Monotonic time source; injectable for tests.

    Outputs:
      - Debouncer instance.

    Notes:
      - signal() and tick() are independent operations, each atomic under
        state.lock, since they are called from different threads.
      - Every signal restarts the quiet period, so a steady stream of
        changes postpones the trigger until the writer settles.
      - The triggered work is run by the caller of tick(), outside the lock.
    """

    def __init__(
        self,
        period: float,
        state: Optional[PendingRegeneration] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if period < 0:
            raise ValueError("debounce period must be >= 0")
        self.period = float(period)
        self.state = state if state is not None else PendingRegeneration()
        self._clock = clock

    def signal(self) -> None:
        """Record a change: Idle -> Armed, or refresh the clock while Armed."""
        with self.state.lock:
            self.state.last_event_time = self._clock()
            self.state.pending = True
        logger.debug("Registry change detected, debouncing for %.3fs", self.period)

    def tick(self) -> bool:
        """
        Brief: Check whether the quiet period has elapsed.

        Inputs:
          - None.

        Outputs:
          - bool: True exactly once per armed burst, when at least ``period``
            seconds have passed since the last signal; the state is cleared
            to Idle in the same critical section.
        """
        with self.state.lock:
            if not self.state.pending or self.state.last_event_time is None:
                return False
            if self._clock() - self.state.last_event_time < self.period:
                return False
            self.state.pending = False
            self.state.last_event_time = None
            return True

    @property
    def pending(self) -> bool:
        with self.state.lock:
            return self.state.pending
