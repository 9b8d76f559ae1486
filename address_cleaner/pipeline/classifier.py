"""Correction-code classification for bank records."""

from __future__ import annotations

from address_cleaner.common.models import BankAction

LATEST_ADDR_CODES = frozenset({"0", "11", "12", "13"})
NORMALIZED_CODES = frozenset(str(code) for code in range(1, 11))


def classify_bank_correction(correction_code: str | None) -> BankAction:
    """Map a correction code to the bank task action.

    Codes are compared by exact membership: "110" or "011" fall through to
    ``BankAction.NOOP`` rather than matching "11" or "1".
    """
    if correction_code in LATEST_ADDR_CODES:
        return BankAction.LATEST
    if correction_code in NORMALIZED_CODES:
        return BankAction.NORMALIZED
    return BankAction.NOOP
