"""Fixed-rate trigger for the cleanup cycle."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from address_cleaner.common.constants import SCHEDULE_INTERVAL_MS
from address_cleaner.common.logging import log_error, log_event


class FixedRateScheduler:
    """Calls ``job`` every ``interval_seconds``, measured from one start to the next.

    A job that overruns the interval is followed immediately by the next
    call; missed ticks are not replayed. Exceptions from the job are logged
    and the schedule continues.
    """

    def __init__(
        self,
        job: Callable[[], None],
        *,
        interval_seconds: float = SCHEDULE_INTERVAL_MS / 1000.0,
        logger: logging.Logger | None = None,
        run_id: str | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.job = job
        self.interval_seconds = interval_seconds
        self.logger = logger or logging.getLogger(__name__)
        self.run_id = run_id
        self.ticks = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="cleaner-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    def run_forever(self) -> None:
        self.start()
        try:
            while self._thread is not None and self._thread.is_alive():
                self._thread.join(timeout=1.0)
        except KeyboardInterrupt:
            self.stop()

    def _loop(self) -> None:
        next_start = time.monotonic()
        while not self._stop.is_set():
            self.ticks += 1
            log_event(
                self.logger,
                f"schedule tick {self.ticks}",
                run_id=self.run_id,
                stage="schedule",
                event="SCHEDULE_TICK",
                status="ok",
            )
            try:
                self.job()
            except Exception as exc:
                log_error(
                    self.logger,
                    f"scheduled job failed: {type(exc).__name__}: {exc}",
                    run_id=self.run_id,
                    stage="schedule",
                    event="SCHEDULE_JOB_FAIL",
                    status="error",
                    error_code=getattr(exc, "error_code", "UNEXPECTED_ERROR"),
                )
            next_start += self.interval_seconds
            now = time.monotonic()
            if next_start < now:
                next_start = now
            self._stop.wait(next_start - now)
