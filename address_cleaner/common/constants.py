"""Application constants."""

USER_AGENT = "address-cleaner/1.0 (+batch; contact: configured-email)"
PAGE_SIZE = 100
CODE_PATTERN = "%CHL%"
WORKER_COUNT = 5
SCHEDULE_INTERVAL_MS = 86_400_000
BANK_LATEST_ADDR_COLUMN = "latest_addr"
BANK_NORMALIZED_COLUMN = "normalized"
AGENT_LATEST_ADDR_COLUMNS = ("latest_addr1", "latest_addr2")
REPORT_PLACEHOLDER_REASON = "錯誤原因"
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "cycle_id",
    "stage",
    "kind",
    "origin",
    "record_id",
    "event",
    "status",
    "offset",
    "rows",
    "duration_ms",
    "error_code",
    "message",
)
