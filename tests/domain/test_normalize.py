"""
Tests for upstream row normalization.
"""

import pytest

from lekka_kernel.domain.dtos import JournalLine
from lekka_kernel.domain.normalize import normalize_rows
from lekka_kernel.exceptions import LineParseError


def test_single_sided_rows_convert_to_minor_units():
    lines = normalize_rows([
        {"account": "Office  Expenses", "debit": "500", "date": "2025-04-01"},
        {"ledger": "Bank", "credit": 500, "date": "2025-04-01", "narration": " stationery "},
    ])

    assert lines == (
        JournalLine("Office Expenses", "2025-04-01", debit=50000),
        JournalLine("Bank", "2025-04-01", credit=50000, narration="stationery"),
    )


def test_pair_rows_expand_into_two_lines():
    lines = normalize_rows([
        {"debit_account": "Rent", "credit_account": "Bank", "amount": "1,200.50", "date": "2025-04-01"},
    ])

    assert lines == (
        JournalLine("Rent", "2025-04-01", debit=120050),
        JournalLine("Bank", "2025-04-01", credit=120050),
    )


def test_pair_majority_drops_single_sided_minority():
    lines = normalize_rows([
        {"debit_account": "Rent", "credit_account": "Bank", "amount": 10},
        {"account": "Cash", "debit": 5},
    ])

    assert [line.account for line in lines] == ["Rent", "Bank"]


def test_both_sides_pass_through_for_validation():
    lines = normalize_rows([
        {"account": "A", "debit": 1, "credit": 1},
        {"account": "B", "credit": 1},
    ])

    assert lines[0].debit == 100 and lines[0].credit == 100


def test_empty_and_none_rows_are_skipped():
    assert normalize_rows([None, {}]) == ()


def test_unparseable_amount_raises():
    with pytest.raises(LineParseError) as exc_info:
        normalize_rows([{"account": "A", "debit": "ten"}, {"account": "B", "credit": 10}])

    assert exc_info.value.code == "LINE_PARSE_ERROR"
