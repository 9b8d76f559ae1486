"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class Origin(str, Enum):
    XY = "XY"
    CH = "CH"


class RecordKind(str, Enum):
    BANK = "bank"
    AGENT = "agent"


class BankAction(str, Enum):
    """What a bank task does with the enrichment response."""

    LATEST = "latest"
    NORMALIZED = "normalized"
    NOOP = "noop"


@dataclass
class BankRecord:
    id: int
    agent_code: str | None = None
    bank_code: str | None = None
    bank_name: str | None = None
    branch_addr: str | None = None
    correction_code: str | None = None
    bank_abbreviation: str | None = None
    bank: str | None = None
    branch: str | None = None
    phone: str | None = None
    latest_addr: str | None = None
    normalized: str | None = None


@dataclass
class AgentRecord:
    id: int
    agent_code: str | None = None
    name: str | None = None
    addr1: str | None = None
    addr2: str | None = None
    id_number: str | None = None
    login_number: str | None = None
    channel_code: str | None = None
    employee_number: str | None = None
    cancellation_date: str | None = None
    correction_code: str | None = None
    department: str | None = None
    latest_addr1: str | None = None
    latest_addr2: str | None = None


@dataclass(frozen=True)
class LogEntry:
    entity_kind: RecordKind
    entity_id: int
    api_response: str


@dataclass(frozen=True)
class ErrorReport:
    kind: RecordKind
    origin: Origin
    entity_id: int
    line: str


@dataclass(frozen=True)
class TaskOutcome:
    kind: RecordKind
    origin: Origin
    record_id: int | None
    status: str
    action: BankAction | None = None
    error_code: str | None = None
    message: str | None = None
    duration_ms: int | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["kind"] = self.kind.value
        payload["origin"] = self.origin.value
        payload["action"] = self.action.value if self.action is not None else None
        return payload
