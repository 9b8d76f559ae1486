"""Record store contracts consumed by the batch driver and record tasks."""

from __future__ import annotations

from typing import Protocol, Sequence

from address_cleaner.common.models import AgentRecord, BankRecord, LogEntry


class BankStore(Protocol):
    def select_xy_banks(self, code_pattern: str, offset: int, page_size: int) -> Sequence[BankRecord]:
        ...

    def select_ch_banks(self, code_pattern: str, offset: int, page_size: int) -> Sequence[BankRecord]:
        ...

    def update_address(self, record_id: int, column_name: str, new_value: str) -> None:
        ...

    def insert_log(self, entry: LogEntry) -> None:
        ...


class AgentStore(Protocol):
    def select_xy_agents(self, code_pattern: str, offset: int, page_size: int) -> Sequence[AgentRecord]:
        ...

    def select_ch_agents(self, code_pattern: str, offset: int, page_size: int) -> Sequence[AgentRecord]:
        ...

    def update_address(self, record_id: int, column_name: str, new_value: str) -> None:
        ...

    def insert_log(self, entry: LogEntry) -> None:
        ...
