"""Per-record units of work: enrich, classify, write, log, report."""

from __future__ import annotations

import time

from address_cleaner.common.constants import (
    AGENT_LATEST_ADDR_COLUMNS,
    BANK_LATEST_ADDR_COLUMN,
    BANK_NORMALIZED_COLUMN,
)
from address_cleaner.common.models import (
    AgentRecord,
    BankAction,
    BankRecord,
    LogEntry,
    Origin,
    RecordKind,
    TaskOutcome,
)
from address_cleaner.common.time_utils import elapsed_ms
from address_cleaner.enrichment.client import EnrichmentClient, EnrichmentError
from address_cleaner.pipeline.classifier import classify_bank_correction
from address_cleaner.pipeline.reports import ReportSink, format_agent_error_report, format_bank_error_report
from address_cleaner.store.base import AgentStore, BankStore


class RecordTask:
    """Base for tasks that own exactly one record while they run.

    ``run`` returns a ``TaskOutcome``. Enrichment failures abort the task
    before any write and come back as a failed outcome; store failures
    propagate to the worker pool.
    """

    kind: RecordKind

    def __init__(self, origin: Origin, record_id: int) -> None:
        self.origin = origin
        self.record_id = record_id

    def run(self) -> TaskOutcome:
        raise NotImplementedError

    def _outcome(self, started_at: float, *, action: BankAction | None = None) -> TaskOutcome:
        return TaskOutcome(
            kind=self.kind,
            origin=self.origin,
            record_id=self.record_id,
            status="ok",
            action=action,
            duration_ms=elapsed_ms(started_at),
        )

    def _failure(self, started_at: float, exc: EnrichmentError) -> TaskOutcome:
        return TaskOutcome(
            kind=self.kind,
            origin=self.origin,
            record_id=self.record_id,
            status="failed",
            error_code=exc.error_code,
            message=str(exc),
            duration_ms=elapsed_ms(started_at),
        )


class BankRecordTask(RecordTask):
    kind = RecordKind.BANK

    def __init__(
        self,
        bank: BankRecord,
        origin: Origin,
        store: BankStore,
        client: EnrichmentClient,
        reports: ReportSink,
    ) -> None:
        super().__init__(origin, bank.id)
        self.bank = bank
        self.store = store
        self.client = client
        self.reports = reports

    def run(self) -> TaskOutcome:
        started_at = time.monotonic()
        try:
            api_response = self.client.normalize(self.bank.branch_addr)
        except EnrichmentError as exc:
            return self._failure(started_at, exc)

        action = classify_bank_correction(self.bank.correction_code)
        if action is BankAction.LATEST:
            self.store.update_address(self.bank.id, BANK_LATEST_ADDR_COLUMN, api_response)
            self.bank.latest_addr = api_response
        elif action is BankAction.NORMALIZED:
            self.store.update_address(self.bank.id, BANK_NORMALIZED_COLUMN, api_response)
            self.bank.normalized = api_response
            self.reports.emit(format_bank_error_report(self.origin, self.bank, api_response))

        # Written for every action, NOOP included.
        self.store.insert_log(LogEntry(RecordKind.BANK, self.bank.id, api_response))
        return self._outcome(started_at, action=action)


class AgentRecordTask(RecordTask):
    kind = RecordKind.AGENT

    def __init__(
        self,
        agent: AgentRecord,
        origin: Origin,
        store: AgentStore,
        client: EnrichmentClient,
        reports: ReportSink,
    ) -> None:
        super().__init__(origin, agent.id)
        self.agent = agent
        self.store = store
        self.client = client
        self.reports = reports

    def run(self) -> TaskOutcome:
        started_at = time.monotonic()
        try:
            addr1_response = self.client.normalize(self.agent.addr1)
            addr2_response = self.client.normalize(self.agent.addr2)
        except EnrichmentError as exc:
            return self._failure(started_at, exc)

        addr1_column, addr2_column = AGENT_LATEST_ADDR_COLUMNS
        self.store.update_address(self.agent.id, addr1_column, addr1_response)
        self.store.update_address(self.agent.id, addr2_column, addr2_response)
        self.agent.latest_addr1 = addr1_response
        self.agent.latest_addr2 = addr2_response

        self.reports.emit(format_agent_error_report(self.origin, self.agent, addr1_response, addr2_response))
        self.store.insert_log(LogEntry(RecordKind.AGENT, self.agent.id, f"{addr1_response}, {addr2_response}"))
        return self._outcome(started_at)
