"""CLI entrypoint for the address cleaner batch job."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from address_cleaner.common.config_loader import CleanerConfig, load_config
from address_cleaner.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from address_cleaner.common.errors import CleanerError
from address_cleaner.common.fs import write_json
from address_cleaner.common.http import HttpClient
from address_cleaner.common.ids import generate_run_id
from address_cleaner.common.logging import build_logger, log_event
from address_cleaner.enrichment.client import HttpEnrichmentClient
from address_cleaner.pipeline.driver import BatchDriver
from address_cleaner.pipeline.outcomes import OutcomeRecorder
from address_cleaner.pipeline.reports import FileReportSink, LoggingReportSink, ReportSink
from address_cleaner.pipeline.worker_pool import WorkerPool
from address_cleaner.scheduler import FixedRateScheduler
from address_cleaner.store.sql import SqlAgentStore, SqlBankStore, build_engine, create_schema

COMMANDS = ("init-db", "run", "schedule")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--config", default="./config/cleaner.yml")
    parser.add_argument("--overlay-config", default=None)
    parser.add_argument("--database-url", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    return parser.parse_args(argv)


def build_report_sink(cfg: CleanerConfig, logger: logging.Logger) -> ReportSink:
    if cfg.report_path is not None:
        return FileReportSink(cfg.report_path)
    return LoggingReportSink(logger.getChild("reports"))


def run_cycle_once(
    driver: BatchDriver,
    pool: WorkerPool,
    recorder: OutcomeRecorder,
    data_dir: Path,
    run_id: str,
) -> int:
    driver.run_cleanup_cycle()
    pool.shutdown(wait=True)

    summary = driver.last_summary
    payload = {
        "run_id": run_id,
        "cycle": summary.to_dict() if summary is not None else None,
        "outcomes": recorder.counts(),
        "failed_tasks": [outcome.to_dict() for outcome in recorder.failures()],
    }
    write_json(data_dir / "run_meta" / f"{run_id}.summary.json", payload)

    if summary is None or summary.failed or recorder.failed_count():
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    data_dir = Path(args.data_dir)
    overlay_path = Path(args.overlay_config) if args.overlay_config else None

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    cfg = load_config(Path(args.config), overlay_path=overlay_path)
    engine = build_engine(args.database_url or cfg.database_url)

    if args.command == "init-db":
        create_schema(engine)
        log_event(logger, "database schema created", run_id=run_id, stage="init-db", event="SCHEMA_CREATED")
        engine.dispose()
        return EXIT_SUCCESS

    recorder = OutcomeRecorder(logger, run_id=run_id)
    pool = WorkerPool(recorder, max_workers=cfg.batch.workers)
    with HttpClient(timeout=cfg.enrichment.timeout) as http:
        driver = BatchDriver(
            bank_store=SqlBankStore(engine),
            agent_store=SqlAgentStore(engine),
            pool=pool,
            client=HttpEnrichmentClient(
                http,
                base_url=cfg.enrichment.base_url,
                query_param=cfg.enrichment.query_param,
            ),
            reports=build_report_sink(cfg, logger),
            logger=logger,
            page_size=cfg.batch.page_size,
            code_pattern=cfg.batch.code_pattern,
            overlap_policy=cfg.schedule.overlap_policy,
            run_id=run_id,
        )
        try:
            if args.command == "run":
                return run_cycle_once(driver, pool, recorder, data_dir, run_id)

            scheduler = FixedRateScheduler(
                driver.run_cleanup_cycle,
                interval_seconds=cfg.schedule.interval_seconds,
                logger=logger,
                run_id=run_id,
            )
            scheduler.run_forever()
            pool.shutdown(wait=True)
            return EXIT_SUCCESS
        finally:
            engine.dispose()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except CleanerError as exc:
        print(f"{exc.error_code}: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL
    except Exception as exc:
        print(f"UNEXPECTED_ERROR: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
