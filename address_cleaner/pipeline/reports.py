"""Error report formatting and sinks."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Protocol

from address_cleaner.common.constants import REPORT_PLACEHOLDER_REASON
from address_cleaner.common.fs import append_line, ensure_dir
from address_cleaner.common.models import AgentRecord, BankRecord, ErrorReport, Origin, RecordKind


def _s(value: object) -> str:
    return "null" if value is None else str(value)


def format_bank_error_report(origin: Origin, bank: BankRecord, api_response: str) -> ErrorReport:
    if origin is Origin.XY:
        line = (
            f"Agent Code: {_s(bank.agent_code)}, 網點代碼: {_s(bank.bank_code)}, "
            f"銀行名稱: {_s(bank.bank_name)}, 地址: {_s(bank.branch_addr)}, "
            f"正規後地址: {api_response}, 錯誤訊息: {REPORT_PLACEHOLDER_REASON}"
        )
    elif origin is Origin.CH:
        line = (
            f"銀行簡稱: {_s(bank.bank_abbreviation)}, 銀行: {_s(bank.bank)}, 分行: {_s(bank.branch)}, "
            f"分行地址: {_s(bank.branch_addr)}, 市話: {_s(bank.phone)}, 是否比對成功: 否, "
            f"失敗原因: {REPORT_PLACEHOLDER_REASON}, 校正結果: {api_response}"
        )
    else:
        raise ValueError(f"Unknown origin: {origin}")
    return ErrorReport(kind=RecordKind.BANK, origin=origin, entity_id=bank.id, line=line)


def format_agent_error_report(
    origin: Origin,
    agent: AgentRecord,
    addr1_response: str,
    addr2_response: str,
) -> ErrorReport:
    if origin is Origin.XY:
        line = (
            f"身分證字號: {_s(agent.id_number)}, 姓名: {_s(agent.name)}, 登錄字號: {_s(agent.login_number)}, "
            f"地址1: {_s(agent.addr1)}, 地址2: {_s(agent.addr2)}, 通路代號: {_s(agent.channel_code)}, "
            f"員工編號: {_s(agent.employee_number)}, 註銷日: {_s(agent.cancellation_date)}, "
            f"正規後地址1: {addr1_response}, 正規後地址2: {addr2_response}, "
            f"錯誤訊息: {REPORT_PLACEHOLDER_REASON}"
        )
    elif origin is Origin.CH:
        line = (
            f"員工編號: {_s(agent.employee_number)}, 姓名: {_s(agent.name)}, 人員單位: {_s(agent.department)}, "
            f"原提供地址1: {_s(agent.addr1)}, 原提供地址2: {_s(agent.addr2)}, "
            f"錯誤資訊: {addr1_response}, {addr2_response}"
        )
    else:
        raise ValueError(f"Unknown origin: {origin}")
    return ErrorReport(kind=RecordKind.AGENT, origin=origin, entity_id=agent.id, line=line)


class ReportSink(Protocol):
    def emit(self, report: ErrorReport) -> None:
        ...


class LoggingReportSink:
    """Writes each report line to a logger at INFO level."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("address_cleaner.reports")

    def emit(self, report: ErrorReport) -> None:
        self.logger.info(
            report.line,
            extra={
                "event": "ERROR_REPORT",
                "kind": report.kind.value,
                "origin": report.origin.value,
                "record_id": report.entity_id,
            },
        )


class FileReportSink:
    """Appends one line per report; safe to share between worker threads."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.lock = threading.Lock()
        ensure_dir(path.parent)

    def emit(self, report: ErrorReport) -> None:
        with self.lock:
            append_line(self.path, report.line)
