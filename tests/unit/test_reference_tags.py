"""Unit tests for reference tag decoding"""

import pytest
from recurring_bills.domain.reference_tags import extract_loan_ref, extract_savings_ref


def test_extract_loan_ref_from_notes():
    assert extract_loan_ref("Netflix [LOAN_REF:loan-123]") == "loan-123"


def test_extract_savings_ref_from_notes():
    assert extract_savings_ref("Vacation fund [SAVINGS_REF:goal-9]") == "goal-9"


def test_both_tags_decoded_independently():
    notes = "[SAVINGS_REF:goal-1] rent share [LOAN_REF:7f3c-aa]"
    assert extract_loan_ref(notes) == "7f3c-aa"
    assert extract_savings_ref(notes) == "goal-1"


def test_first_tag_wins():
    assert extract_loan_ref("[LOAN_REF:first] [LOAN_REF:second]") == "first"


@pytest.mark.parametrize(
    "notes",
    [
        None,
        "",
        "no tags here",
        "[LOAN_REF:]",
        "[LOAN_REF:abc",
        "LOAN_REF:abc",
        "[LOAN_REF: abc]",
        "[loan_ref:abc]",
    ],
)
def test_absent_or_malformed_loan_tag_yields_none(notes):
    """Decoding is total: bad input never raises"""
    assert extract_loan_ref(notes) is None


def test_loan_tag_is_not_mistaken_for_savings_tag():
    assert extract_savings_ref("[LOAN_REF:loan-1]") is None
    assert extract_loan_ref("[SAVINGS_REF:goal-1]") is None


def test_non_string_notes_yield_none():
    assert extract_loan_ref(123) is None
    assert extract_savings_ref(["[SAVINGS_REF:x]"]) is None
