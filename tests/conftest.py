from __future__ import annotations

import logging
import threading

import pytest

from address_cleaner.enrichment.client import EnrichmentError


class FakeStore:
    """In-memory bank and agent store recording every call."""

    def __init__(self, pages: dict[str, list] | None = None) -> None:
        self.records = pages or {}
        self.fetches: list[tuple[str, str, int, int]] = []
        self.updates: list[tuple[int, str, str]] = []
        self.logs: list = []
        self.lock = threading.Lock()

    def _select(self, name: str, code_pattern: str, offset: int, page_size: int) -> list:
        with self.lock:
            self.fetches.append((name, code_pattern, offset, page_size))
        return list(self.records.get(name, [])[offset : offset + page_size])

    def select_xy_banks(self, code_pattern, offset, page_size):
        return self._select("xy_banks", code_pattern, offset, page_size)

    def select_ch_banks(self, code_pattern, offset, page_size):
        return self._select("ch_banks", code_pattern, offset, page_size)

    def select_xy_agents(self, code_pattern, offset, page_size):
        return self._select("xy_agents", code_pattern, offset, page_size)

    def select_ch_agents(self, code_pattern, offset, page_size):
        return self._select("ch_agents", code_pattern, offset, page_size)

    def update_address(self, record_id, column_name, new_value):
        with self.lock:
            self.updates.append((record_id, column_name, new_value))

    def insert_log(self, entry):
        with self.lock:
            self.logs.append(entry)

    def fetch_offsets(self, name: str) -> list[int]:
        return [offset for fetched, _pattern, offset, _size in self.fetches if fetched == name]


class FakeEnrichmentClient:
    """Returns ``NORM(<address>)`` unless the address is marked as failing."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.calls: list[str | None] = []
        self.lock = threading.Lock()

    def normalize(self, address):
        with self.lock:
            self.calls.append(address)
        if address in self.failing:
            raise EnrichmentError(f"HTTP status 503 for {address}", status_code=503)
        return f"NORM({address})"


class CollectingReportSink:
    def __init__(self) -> None:
        self.reports = []
        self.lock = threading.Lock()

    def emit(self, report):
        with self.lock:
            self.reports.append(report)


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def fake_client():
    return FakeEnrichmentClient()


@pytest.fixture
def report_sink():
    return CollectingReportSink()


@pytest.fixture
def logger():
    return logging.getLogger("address_cleaner.tests")


@pytest.fixture
def make_store():
    return FakeStore


@pytest.fixture
def make_client():
    return FakeEnrichmentClient
