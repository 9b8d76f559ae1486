import pytest

from address_cleaner.common.models import BankAction
from address_cleaner.pipeline.classifier import classify_bank_correction


@pytest.mark.parametrize("code", ["0", "11", "12", "13"])
def test_latest_addr_codes(code):
    assert classify_bank_correction(code) is BankAction.LATEST


@pytest.mark.parametrize("code", ["1", "2", "5", "9", "10"])
def test_normalized_codes(code):
    assert classify_bank_correction(code) is BankAction.NORMALIZED


@pytest.mark.parametrize("code", ["99", "14", "110", "011", "1 ", " 11", "00", "-1", "", None])
def test_other_codes_are_noop(code):
    assert classify_bank_correction(code) is BankAction.NOOP


def test_substring_of_recognised_code_does_not_match():
    # "110" contains both "11" and "10" and must not be treated as either.
    assert classify_bank_correction("110") is BankAction.NOOP
    assert classify_bank_correction("1011") is BankAction.NOOP
