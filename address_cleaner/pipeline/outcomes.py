"""Thread-safe collection of task outcomes."""

from __future__ import annotations

import logging
import threading
from collections import Counter, deque

from address_cleaner.common.logging import log_event, log_warning
from address_cleaner.common.models import TaskOutcome

MAX_RETAINED_FAILURES = 1000


class OutcomeRecorder:
    """Counts every outcome; only the last ``max_failures`` failures are retained."""

    def __init__(
        self,
        logger: logging.Logger,
        *,
        run_id: str | None = None,
        max_failures: int = MAX_RETAINED_FAILURES,
    ) -> None:
        self.logger = logger
        self.run_id = run_id
        self.lock = threading.Lock()
        self._counts: Counter[tuple[str, str, str]] = Counter()
        self._failures: deque[TaskOutcome] = deque(maxlen=max_failures)
        self._failed_total = 0

    def record(self, outcome: TaskOutcome) -> None:
        with self.lock:
            self._counts[(outcome.kind.value, outcome.origin.value, outcome.status)] += 1
            if not outcome.ok:
                self._failed_total += 1
                self._failures.append(outcome)

        fields = {
            "run_id": self.run_id,
            "stage": "task",
            "kind": outcome.kind.value,
            "origin": outcome.origin.value,
            "record_id": outcome.record_id,
            "event": "TASK_END",
            "duration_ms": outcome.duration_ms,
        }
        if outcome.ok:
            action = outcome.action.value if outcome.action is not None else "write"
            log_event(self.logger, f"task completed ({action})", status="ok", **fields)
        else:
            log_warning(
                self.logger,
                f"task failed: {outcome.message}",
                status="error",
                error_code=outcome.error_code,
                **fields,
            )

    def counts(self) -> dict[str, int]:
        with self.lock:
            return {"/".join(key): value for key, value in sorted(self._counts.items())}

    def failures(self) -> list[TaskOutcome]:
        with self.lock:
            return list(self._failures)

    def failed_count(self) -> int:
        with self.lock:
            return self._failed_total

    def total(self) -> int:
        with self.lock:
            return sum(self._counts.values())
