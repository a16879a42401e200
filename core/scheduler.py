"""
Wall clock and cancellable one-shot timers used by the session service.
"""
from __future__ import annotations

import threading
import time
from typing import Callable, Protocol


def system_now_ms() -> int:
    """Current epoch time in milliseconds."""
    return int(time.time() * 1000)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle: ...


class TimerScheduler:
    """Runs each callback once on a daemon thread after `delay_ms`."""

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(max(delay_ms, 0) / 1000.0, callback)
        timer.daemon = True
        timer.start()
        return timer


__all__ = ["system_now_ms", "TimerHandle", "Scheduler", "TimerScheduler"]
