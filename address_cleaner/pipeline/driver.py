"""Batch driver: page through every (kind, origin) pass and dispatch record tasks."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Sequence

from address_cleaner.common.constants import CODE_PATTERN, PAGE_SIZE
from address_cleaner.common.ids import generate_cycle_id
from address_cleaner.common.logging import log_error, log_event, log_warning
from address_cleaner.common.models import Origin, RecordKind
from address_cleaner.common.time_utils import elapsed_ms, utc_timestamp_iso
from address_cleaner.enrichment.client import EnrichmentClient
from address_cleaner.pipeline.reports import ReportSink
from address_cleaner.pipeline.tasks import AgentRecordTask, BankRecordTask, RecordTask
from address_cleaner.pipeline.worker_pool import WorkerPool
from address_cleaner.store.base import AgentStore, BankStore

PASSES = (
    (RecordKind.BANK, Origin.XY),
    (RecordKind.BANK, Origin.CH),
    (RecordKind.AGENT, Origin.XY),
    (RecordKind.AGENT, Origin.CH),
)


@dataclass
class PassSummary:
    pages_fetched: int = 0
    tasks_submitted: int = 0
    error_code: str | None = None


@dataclass
class CycleSummary:
    cycle_id: str
    started_at: str
    skipped: bool = False
    overlapped: bool = False
    duration_ms: int | None = None
    error_code: str | None = None
    passes: dict[str, PassSummary] = field(default_factory=dict)

    @property
    def failed_passes(self) -> list[str]:
        return [name for name, summary in self.passes.items() if summary.error_code is not None]

    @property
    def failed(self) -> bool:
        """True when a pass failed or the cycle itself stopped on an unexpected error."""
        return self.error_code is not None or bool(self.failed_passes)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _pass_name(kind: RecordKind, origin: Origin) -> str:
    return f"{kind.value}/{origin.value}"


class BatchDriver:
    def __init__(
        self,
        *,
        bank_store: BankStore,
        agent_store: AgentStore,
        pool: WorkerPool,
        client: EnrichmentClient,
        reports: ReportSink,
        logger: logging.Logger,
        page_size: int = PAGE_SIZE,
        code_pattern: str = CODE_PATTERN,
        overlap_policy: str = "allow",
        run_id: str | None = None,
    ) -> None:
        if overlap_policy not in ("allow", "skip"):
            raise ValueError(f"Unknown overlap policy: {overlap_policy}")
        self.bank_store = bank_store
        self.agent_store = agent_store
        self.pool = pool
        self.client = client
        self.reports = reports
        self.logger = logger
        self.page_size = page_size
        self.code_pattern = code_pattern
        self.overlap_policy = overlap_policy
        self.run_id = run_id
        self.last_summary: CycleSummary | None = None
        self._cycle_lock = threading.Lock()

    def run_cleanup_cycle(self) -> None:
        """Run one cycle over all passes. Failures are logged, never raised."""
        summary = CycleSummary(cycle_id=generate_cycle_id(), started_at=utc_timestamp_iso())
        started_at = time.monotonic()
        fields = {"run_id": self.run_id, "cycle_id": summary.cycle_id, "stage": "cycle"}

        acquired = self._cycle_lock.acquire(blocking=False)
        pending = self.pool.pending()
        if not acquired or pending > 0:
            summary.overlapped = True
            if self.overlap_policy == "skip":
                summary.skipped = True
                summary.duration_ms = elapsed_ms(started_at)
                self.last_summary = summary
                log_warning(
                    self.logger,
                    f"previous cycle still running ({pending} tasks pending); cycle skipped",
                    event="CYCLE_SKIPPED",
                    status="skipped",
                    rows=pending,
                    **fields,
                )
                if acquired:
                    self._cycle_lock.release()
                return
            log_warning(
                self.logger,
                f"previous cycle still running ({pending} tasks pending); starting anyway",
                event="CYCLE_OVERLAP",
                status="ok",
                rows=pending,
                **fields,
            )

        log_event(self.logger, "cycle start", event="CYCLE_START", status="ok", **fields)
        try:
            for kind, origin in PASSES:
                summary.passes[_pass_name(kind, origin)] = self._run_pass(kind, origin, summary.cycle_id)
        except Exception as exc:
            summary.error_code = getattr(exc, "error_code", "UNEXPECTED_ERROR")
            log_error(
                self.logger,
                f"unexpected cycle failure: {type(exc).__name__}: {exc}",
                event="CYCLE_FAIL",
                status="error",
                error_code=summary.error_code,
                **fields,
            )
        finally:
            if acquired:
                self._cycle_lock.release()

        summary.duration_ms = elapsed_ms(started_at)
        self.last_summary = summary
        submitted = sum(p.tasks_submitted for p in summary.passes.values())
        log_event(
            self.logger,
            "cycle end",
            event="CYCLE_END",
            status="error" if summary.failed else "ok",
            rows=submitted,
            duration_ms=summary.duration_ms,
            **fields,
        )

    def _run_pass(self, kind: RecordKind, origin: Origin, cycle_id: str) -> PassSummary:
        result = PassSummary()
        fields = {
            "run_id": self.run_id,
            "cycle_id": cycle_id,
            "stage": "pass",
            "kind": kind.value,
            "origin": origin.value,
        }
        offset = 0
        while True:
            try:
                page = self._fetch_page(kind, origin, offset)
                result.pages_fetched += 1
                log_event(
                    self.logger,
                    "page fetched",
                    event="PAGE_FETCHED",
                    status="ok",
                    offset=offset,
                    rows=len(page),
                    **fields,
                )
                for record in page:
                    self.pool.submit(self._build_task(kind, origin, record))
                    result.tasks_submitted += 1
            except Exception as exc:
                result.error_code = getattr(exc, "error_code", "UNEXPECTED_ERROR")
                log_error(
                    self.logger,
                    f"pass aborted at offset {offset}: {exc}",
                    event="PASS_FAIL",
                    status="error",
                    offset=offset,
                    error_code=result.error_code,
                    **fields,
                )
                return result
            offset += self.page_size
            # Only an empty page ends the pass; a short page still gets one more fetch.
            if not page:
                return result

    def _fetch_page(self, kind: RecordKind, origin: Origin, offset: int) -> Sequence:
        if kind is RecordKind.BANK:
            if origin is Origin.XY:
                return self.bank_store.select_xy_banks(self.code_pattern, offset, self.page_size)
            if origin is Origin.CH:
                return self.bank_store.select_ch_banks(self.code_pattern, offset, self.page_size)
        elif kind is RecordKind.AGENT:
            if origin is Origin.XY:
                return self.agent_store.select_xy_agents(self.code_pattern, offset, self.page_size)
            if origin is Origin.CH:
                return self.agent_store.select_ch_agents(self.code_pattern, offset, self.page_size)
        raise ValueError(f"Unknown pass: {kind} {origin}")

    def _build_task(self, kind: RecordKind, origin: Origin, record) -> RecordTask:
        if kind is RecordKind.BANK:
            return BankRecordTask(record, origin, self.bank_store, self.client, self.reports)
        if kind is RecordKind.AGENT:
            return AgentRecordTask(record, origin, self.agent_store, self.client, self.reports)
        raise ValueError(f"Unknown record kind: {kind}")
