"""SQLAlchemy-backed record source, address writer and log sink."""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

from sqlalchemy import Engine, Table, create_engine, insert, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from address_cleaner.common.errors import StoreError
from address_cleaner.common.fs import ensure_dir
from address_cleaner.common.models import AgentRecord, BankRecord, LogEntry, Origin
from address_cleaner.store.tables import address_log, agents, banks, metadata


def build_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine that is safe to share between worker threads."""
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    connect_args = {"check_same_thread": False}
    database = make_url(url).database
    if not database or database == ":memory:":
        # One shared connection, otherwise every thread sees its own empty database.
        return create_engine(url, echo=echo, connect_args=connect_args, poolclass=StaticPool)
    ensure_dir(Path(database).parent)
    return create_engine(url, echo=echo, connect_args=connect_args)


def create_schema(engine: Engine) -> None:
    metadata.create_all(engine)


class _SqlRecordStore:
    table: Table
    code_column: str
    record_type: type

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._record_fields = [f.name for f in fields(self.record_type)]

    def _to_record(self, row: Any):
        mapping = row._mapping
        return self.record_type(**{name: mapping[name] for name in self._record_fields})

    def _select_page(self, origin: Origin, code_pattern: str, offset: int, page_size: int) -> list:
        stmt = (
            select(self.table)
            .where(self.table.c.origin == origin.value)
            .where(self.table.c[self.code_column].like(code_pattern))
            .order_by(self.table.c.id)
            .offset(offset)
            .limit(page_size)
        )
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).fetchall()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read {self.table.name} page at offset {offset}: {exc}") from exc
        return [self._to_record(row) for row in rows]

    def update_address(self, record_id: int, column_name: str, new_value: str) -> None:
        stmt = update(self.table).where(self.table.c.id == record_id).values({column_name: new_value})
        try:
            with self.engine.begin() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreError(
                f"Failed to update {self.table.name}.{column_name} for id {record_id}: {exc}"
            ) from exc

    def insert_log(self, entry: LogEntry) -> None:
        stmt = insert(address_log).values(
            entity_kind=entry.entity_kind.value,
            entity_id=entry.entity_id,
            api_response=entry.api_response,
        )
        try:
            with self.engine.begin() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreError(
                f"Failed to write address log for {entry.entity_kind.value} {entry.entity_id}: {exc}"
            ) from exc


class SqlBankStore(_SqlRecordStore):
    table = banks
    code_column = "bank_code"
    record_type = BankRecord

    def select_xy_banks(self, code_pattern: str, offset: int, page_size: int) -> list[BankRecord]:
        return self._select_page(Origin.XY, code_pattern, offset, page_size)

    def select_ch_banks(self, code_pattern: str, offset: int, page_size: int) -> list[BankRecord]:
        return self._select_page(Origin.CH, code_pattern, offset, page_size)


class SqlAgentStore(_SqlRecordStore):
    table = agents
    code_column = "agent_code"
    record_type = AgentRecord

    def select_xy_agents(self, code_pattern: str, offset: int, page_size: int) -> list[AgentRecord]:
        return self._select_page(Origin.XY, code_pattern, offset, page_size)

    def select_ch_agents(self, code_pattern: str, offset: int, page_size: int) -> list[AgentRecord]:
        return self._select_page(Origin.CH, code_pattern, offset, page_size)
