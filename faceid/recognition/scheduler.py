from __future__ import annotations

import threading
import time

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from faceid.config import DETECTION_INTERVAL_SECONDS
from faceid.utils.log import get_logger

logger = get_logger(__name__)


class TickOutcome(Enum):
    EXECUTED = "executed"
    FAILED = "failed"
    # dropped: inside the minimum interval
    THROTTLED = "throttled"
    # dropped: previous execution still in flight
    BUSY = "busy"
    ADMITTED = "admitted"


@dataclass
class SchedulerConfig:
    min_interval: float = DETECTION_INTERVAL_SECONDS


class FrameScheduler:
    """Admit/drop gate in front of the detect+match pipeline.

    A tick is admitted only if nothing is in flight and at least
    `min_interval` seconds passed since the previous admission. Dropped
    ticks are not queued. Safe to call from several threads (capture
    callback, timer); only one pipeline execution runs at a time.
    """

    def __init__(self, config: Optional[SchedulerConfig] = None, clock: Callable[[], float] = time.monotonic):
        self.config = config or SchedulerConfig()
        self.clock = clock
        self._lock = threading.Lock()
        self._in_flight = False
        self._last_admitted: Optional[float] = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def reset(self) -> None:
        with self._lock:
            self._last_admitted = None

    def try_admit(self, now: Optional[float] = None) -> TickOutcome:
        """Return ADMITTED (caller must call `complete()`), THROTTLED or BUSY."""
        now = self.clock() if now is None else float(now)
        with self._lock:
            if self._in_flight:
                return TickOutcome.BUSY
            if self._last_admitted is not None and now - self._last_admitted < float(self.config.min_interval):
                return TickOutcome.THROTTLED
            self._in_flight = True
            self._last_admitted = now
            return TickOutcome.ADMITTED

    def complete(self) -> None:
        with self._lock:
            self._in_flight = False

    def run(
        self,
        frame: Any,
        pipeline: Callable[[Any], Any],
        on_error: Optional[Callable[[Exception], None]] = None,
        now: Optional[float] = None,
    ) -> TickOutcome:
        """Run `pipeline(frame)` if the tick is admitted.

        Exceptions from the pipeline are logged and handed to `on_error`;
        the gate is always released so the next tick proceeds normally.
        """
        decision = self.try_admit(now)
        if decision is not TickOutcome.ADMITTED:
            logger.debug(f"tick dropped: {decision.value}")
            return decision

        try:
            pipeline(frame)
            return TickOutcome.EXECUTED
        except Exception as e:
            logger.warning(f"本帧识别失败: {type(e).__name__}: {e}")
            if on_error is not None:
                on_error(e)
            return TickOutcome.FAILED
        finally:
            self.complete()
