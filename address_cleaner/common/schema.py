"""Minimal strict schema for YAML config validation."""

from __future__ import annotations

from address_cleaner.common.errors import ConfigError

OVERLAP_POLICIES = ("allow", "skip")


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive_int(value, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive integer")


def validate_cleaner_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    sections = {
        "database": {"url"},
        "enrichment": {"base_url", "query_param", "timeout"},
        "batch": {"page_size", "code_pattern", "workers"},
        "schedule": {"interval_ms", "overlap_policy"},
        "reports": {"path"},
    }
    _assert_required_keys(cfg, set(sections), "cleaner config")
    _assert_no_unknown_keys(cfg, set(sections), "cleaner config", allow_unknown)
    for name, keys in sections.items():
        _assert_required_keys(cfg[name], keys, name)
        _assert_no_unknown_keys(cfg[name], keys, name, allow_unknown)

    timeout = cfg["enrichment"]["timeout"]
    if timeout is not None:
        _assert_required_keys(timeout, {"connect", "read"}, "enrichment.timeout")

    _assert_positive_int(cfg["batch"]["page_size"], "batch.page_size")
    _assert_positive_int(cfg["batch"]["workers"], "batch.workers")
    _assert_positive_int(cfg["schedule"]["interval_ms"], "schedule.interval_ms")

    if cfg["schedule"]["overlap_policy"] not in OVERLAP_POLICIES:
        raise ConfigError(
            f"schedule.overlap_policy must be one of {', '.join(OVERLAP_POLICIES)}"
        )
    return cfg
