import io
import json
import logging
import threading

import pytest

from address_cleaner.common.errors import StoreError
from address_cleaner.common.logging import JsonLineFormatter
from address_cleaner.common.models import AgentRecord, BankRecord, Origin, RecordKind, TaskOutcome
from address_cleaner.pipeline.driver import BatchDriver
from address_cleaner.pipeline.outcomes import OutcomeRecorder
from address_cleaner.pipeline.worker_pool import WorkerPool


def _banks(count: int, start: int = 1, code: str = "0") -> list[BankRecord]:
    return [BankRecord(id=i, branch_addr=f"addr-{i}", correction_code=code) for i in range(start, start + count)]


def _agents(count: int, start: int = 1) -> list[AgentRecord]:
    return [AgentRecord(id=i, addr1=f"a1-{i}", addr2=f"a2-{i}") for i in range(start, start + count)]


def _driver(store, client, sink, logger, *, pool=None, **kwargs):
    recorder = OutcomeRecorder(logger)
    pool = pool or WorkerPool(recorder, max_workers=5)
    driver = BatchDriver(
        bank_store=store,
        agent_store=store,
        pool=pool,
        client=client,
        reports=sink,
        logger=logger,
        **kwargs,
    )
    return driver, pool, pool.recorder


def test_pagination_stops_only_on_empty_page(make_store, fake_client, report_sink, logger):
    store = make_store({"xy_banks": _banks(250)})
    driver, pool, recorder = _driver(store, fake_client, report_sink, logger)

    driver.run_cleanup_cycle()
    pool.shutdown(wait=True)

    # 100, 100, 50, then the empty page that ends the pass.
    assert store.fetch_offsets("xy_banks") == [0, 100, 200, 300]
    assert driver.last_summary.passes["bank/XY"].pages_fetched == 4
    assert driver.last_summary.passes["bank/XY"].tasks_submitted == 250
    assert recorder.counts() == {"bank/XY/ok": 250}
    assert len(store.logs) == 250


def test_every_pass_runs_with_its_own_offset(make_store, fake_client, report_sink, logger):
    store = make_store(
        {
            "xy_banks": _banks(3),
            "ch_banks": _banks(2, start=100),
            "xy_agents": _agents(1, start=200),
            "ch_agents": _agents(4, start=300),
        }
    )
    driver, pool, recorder = _driver(store, fake_client, report_sink, logger, page_size=2)

    driver.run_cleanup_cycle()
    pool.shutdown(wait=True)

    assert [name for name, *_ in store.fetches][:1] == ["xy_banks"]
    assert store.fetch_offsets("xy_banks") == [0, 2, 4]
    assert store.fetch_offsets("ch_banks") == [0, 2]
    assert store.fetch_offsets("xy_agents") == [0, 2]
    assert store.fetch_offsets("ch_agents") == [0, 2, 4]
    assert {pattern for _name, pattern, _offset, _size in store.fetches} == {"%CHL%"}
    assert recorder.counts() == {
        "agent/CH/ok": 4,
        "agent/XY/ok": 1,
        "bank/CH/ok": 2,
        "bank/XY/ok": 3,
    }
    # Every agent task emits a report; code "0" banks do not.
    assert len(report_sink.reports) == 5


def test_enrichment_failures_are_isolated(make_store, make_client, report_sink, logger):
    banks = _banks(150)
    store = make_store({"xy_banks": banks})
    client = make_client(failing={"addr-3", "addr-120"})
    driver, pool, recorder = _driver(store, client, report_sink, logger)

    driver.run_cleanup_cycle()
    pool.shutdown(wait=True)

    assert store.fetch_offsets("xy_banks") == [0, 100, 200]
    assert sorted(outcome.record_id for outcome in recorder.failures()) == [3, 120]
    logged_ids = {entry.entity_id for entry in store.logs}
    assert len(logged_ids) == 148
    assert 3 not in logged_ids and 120 not in logged_ids
    assert not driver.last_summary.failed_passes


def test_store_failure_ends_only_that_pass(make_store, fake_client, report_sink, logger):
    store = make_store({"ch_banks": _banks(2), "xy_agents": _agents(2)})

    def broken(*_args):
        raise StoreError("connection refused")

    store.select_xy_banks = broken
    driver, pool, recorder = _driver(store, fake_client, report_sink, logger)

    driver.run_cleanup_cycle()
    pool.shutdown(wait=True)

    summary = driver.last_summary
    assert summary.failed_passes == ["bank/XY"]
    assert summary.passes["bank/XY"].error_code == "STORE_ERROR"
    assert recorder.counts() == {"agent/XY/ok": 2, "bank/CH/ok": 2}


def test_driver_does_not_wait_for_tasks(make_store, report_sink, logger):
    release = threading.Event()

    class BlockingClient:
        def normalize(self, address):
            release.wait(timeout=5)
            return "X"

    store = make_store({"xy_banks": _banks(12)})
    driver, pool, _recorder = _driver(store, BlockingClient(), report_sink, logger)

    driver.run_cleanup_cycle()
    assert pool.pending() == 12
    assert store.logs == []

    release.set()
    pool.shutdown(wait=True)
    assert len(store.logs) == 12


class _GatedTask:
    kind = RecordKind.BANK
    origin = Origin.XY
    record_id = 0

    def __init__(self, gate: threading.Event) -> None:
        self.gate = gate

    def run(self):
        self.gate.wait(timeout=5)
        return TaskOutcome(self.kind, self.origin, self.record_id, "ok")


@pytest.mark.parametrize(("policy", "fetched"), [("skip", False), ("allow", True)])
def test_overlap_policy_with_pending_tasks(policy, fetched, make_store, fake_client, report_sink, logger):
    store = make_store({"xy_banks": _banks(1)})
    driver, pool, _recorder = _driver(store, fake_client, report_sink, logger, overlap_policy=policy)
    gate = threading.Event()
    pool.submit(_GatedTask(gate))

    driver.run_cleanup_cycle()

    summary = driver.last_summary
    assert summary.overlapped is True
    assert summary.skipped is (not fetched)
    assert bool(store.fetches) is fetched

    gate.set()
    pool.shutdown(wait=True)


def test_no_overlap_when_pool_is_idle(make_store, fake_client, report_sink, logger):
    driver, pool, _recorder = _driver(make_store(), fake_client, report_sink, logger, overlap_policy="skip")

    driver.run_cleanup_cycle()
    pool.shutdown(wait=True)

    assert driver.last_summary.overlapped is False
    assert driver.last_summary.skipped is False
    assert set(driver.last_summary.passes) == {"bank/XY", "bank/CH", "agent/XY", "agent/CH"}


def test_unknown_overlap_policy_rejected(fake_store, fake_client, report_sink, logger):
    with pytest.raises(ValueError):
        _driver(fake_store, fake_client, report_sink, logger, overlap_policy="sometimes")


def _json_lines(logger):
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonLineFormatter())
    logger.addHandler(handler)
    return stream, handler


def test_unexpected_cycle_failure_is_logged_with_exception_text(make_store, fake_client, report_sink):
    logger = logging.getLogger("address_cleaner.tests.cycle_fail")
    logger.setLevel(logging.INFO)
    stream, handler = _json_lines(logger)
    driver, pool, _recorder = _driver(make_store(), fake_client, report_sink, logger)

    def corrupt(*_args):
        raise KeyError("pass-state-corrupt")

    driver._run_pass = corrupt
    try:
        driver.run_cleanup_cycle()
    finally:
        logger.removeHandler(handler)
        pool.shutdown(wait=True)

    events = [json.loads(line) for line in stream.getvalue().splitlines()]
    failure = next(event for event in events if event["event"] == "CYCLE_FAIL")
    end = next(event for event in events if event["event"] == "CYCLE_END")
    assert "pass-state-corrupt" in failure["message"]
    assert "KeyError" in failure["message"]
    assert failure["error_code"] == "UNEXPECTED_ERROR"
    assert end["status"] == "error"
    assert driver.last_summary.error_code == "UNEXPECTED_ERROR"
    assert driver.last_summary.failed is True


def test_recorder_memory_stays_bounded_across_cycles(make_store, make_client, report_sink, logger):
    agents = _agents(50)
    store = make_store({"xy_agents": agents})
    client = make_client(failing={agent.addr2 for agent in agents})
    recorder = OutcomeRecorder(logger, max_failures=50)
    pool = WorkerPool(recorder, max_workers=5)
    driver, _pool, _recorder = _driver(store, client, report_sink, logger, pool=pool)

    for _ in range(10):
        driver.run_cleanup_cycle()
        assert pool.wait_idle(timeout=5)
    pool.shutdown(wait=True)

    assert recorder.failed_count() == 500
    assert len(recorder.failures()) == 50
    assert recorder.counts() == {"agent/XY/failed": 500}
    assert store.updates == []
