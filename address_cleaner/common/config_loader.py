"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from address_cleaner.common.errors import ConfigError
from address_cleaner.common.fs import read_yaml
from address_cleaner.common.http import TimeoutConfig
from address_cleaner.common.schema import validate_cleaner_config


@dataclass(frozen=True)
class EnrichmentSettings:
    base_url: str
    query_param: str
    timeout: TimeoutConfig | None


@dataclass(frozen=True)
class BatchSettings:
    page_size: int
    code_pattern: str
    workers: int


@dataclass(frozen=True)
class ScheduleSettings:
    interval_ms: int
    overlap_policy: str

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0


@dataclass(frozen=True)
class CleanerConfig:
    database_url: str
    enrichment: EnrichmentSettings
    batch: BatchSettings
    schedule: ScheduleSettings
    report_path: Path | None


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    return _deep_merge(base, overlay)


def load_config(
    path: Path,
    *,
    allow_unknown: bool = False,
    overlay_path: Path | None = None,
) -> CleanerConfig:
    cfg = validate_cleaner_config(
        _load_yaml_with_overlay(path, overlay_path),
        allow_unknown=allow_unknown,
    )

    timeout_cfg = cfg["enrichment"]["timeout"]
    timeout = None
    if timeout_cfg is not None:
        timeout = TimeoutConfig(connect=float(timeout_cfg["connect"]), read=float(timeout_cfg["read"]))

    report_path = cfg["reports"]["path"]
    return CleanerConfig(
        database_url=cfg["database"]["url"],
        enrichment=EnrichmentSettings(
            base_url=cfg["enrichment"]["base_url"],
            query_param=cfg["enrichment"]["query_param"],
            timeout=timeout,
        ),
        batch=BatchSettings(
            page_size=cfg["batch"]["page_size"],
            code_pattern=cfg["batch"]["code_pattern"],
            workers=cfg["batch"]["workers"],
        ),
        schedule=ScheduleSettings(
            interval_ms=cfg["schedule"]["interval_ms"],
            overlap_policy=cfg["schedule"]["overlap_policy"],
        ),
        report_path=Path(report_path) if report_path else None,
    )
