"""SQLAlchemy table definitions for banks, agents and the address log."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Index, Integer, MetaData, String, Table, Text, func

metadata = MetaData()

banks = Table(
    "banks",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("origin", String(2), nullable=False),
    Column("agent_code", String(64)),
    Column("bank_code", String(64)),
    Column("bank_name", String(255)),
    Column("branch_addr", Text),
    Column("latest_addr", Text),
    Column("normalized", Text),
    Column("correction_code", String(16)),
    Column("bank_abbreviation", String(64)),
    Column("bank", String(255)),
    Column("branch", String(255)),
    Column("phone", String(64)),
    Index("ix_banks_origin_bank_code", "origin", "bank_code"),
)

agents = Table(
    "agents",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("origin", String(2), nullable=False),
    Column("agent_code", String(64)),
    Column("name", String(255)),
    Column("addr1", Text),
    Column("addr2", Text),
    Column("latest_addr1", Text),
    Column("latest_addr2", Text),
    Column("id_number", String(32)),
    Column("login_number", String(64)),
    Column("channel_code", String(64)),
    Column("employee_number", String(64)),
    Column("cancellation_date", String(32)),
    Column("correction_code", String(16)),
    Column("department", String(255)),
    Index("ix_agents_origin_agent_code", "origin", "agent_code"),
)

address_log = Table(
    "address_log",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("entity_kind", String(16), nullable=False),
    Column("entity_id", Integer, nullable=False, index=True),
    Column("api_response", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
)
