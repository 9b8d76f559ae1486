"""Domain errors and failure typing."""


class CleanerError(Exception):
    """Base class for address cleaner failures."""

    error_code = "CLEANER_ERROR"


class ConfigError(CleanerError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class StoreError(CleanerError):
    """Raised when the record store cannot be read or written."""

    error_code = "STORE_ERROR"
