"""Fixed-size worker pool for fire-and-forget record tasks."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from types import TracebackType

from address_cleaner.common.constants import WORKER_COUNT
from address_cleaner.common.errors import CleanerError
from address_cleaner.common.models import TaskOutcome
from address_cleaner.common.time_utils import elapsed_ms
from address_cleaner.pipeline.outcomes import OutcomeRecorder
from address_cleaner.pipeline.tasks import RecordTask


class WorkerPool:
    """Runs submitted tasks on at most ``max_workers`` threads.

    Queued tasks are picked up first-in first-out as workers free up. Every
    task produces exactly one ``TaskOutcome`` for the recorder, including
    tasks that raise; an exception never kills a worker thread.
    """

    def __init__(
        self,
        recorder: OutcomeRecorder,
        *,
        max_workers: int = WORKER_COUNT,
        thread_name_prefix: str = "cleaner-worker",
    ) -> None:
        self.recorder = recorder
        self.max_workers = max_workers
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=thread_name_prefix)
        self._pending = 0
        self._idle = threading.Condition()

    def submit(self, task: RecordTask) -> None:
        with self._idle:
            self._pending += 1
        try:
            self.executor.submit(self._execute, task)
        except RuntimeError:
            self._task_done()
            raise

    def pending(self) -> int:
        with self._idle:
            return self._pending

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until every submitted task has finished; False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.shutdown(wait=True)

    def _execute(self, task: RecordTask) -> None:
        started_at = time.monotonic()
        try:
            outcome = task.run()
        except CleanerError as exc:
            outcome = self._crashed(task, started_at, exc.error_code, exc)
        except Exception as exc:
            outcome = self._crashed(task, started_at, "UNEXPECTED_ERROR", exc)
        try:
            self.recorder.record(outcome)
        finally:
            self._task_done()

    def _crashed(self, task: RecordTask, started_at: float, error_code: str, exc: Exception) -> TaskOutcome:
        return TaskOutcome(
            kind=task.kind,
            origin=task.origin,
            record_id=task.record_id,
            status="failed",
            error_code=error_code,
            message=f"{type(exc).__name__}: {exc}",
            duration_ms=elapsed_ms(started_at),
        )

    def _task_done(self) -> None:
        with self._idle:
            self._pending -= 1
            if self._pending == 0:
                self._idle.notify_all()
