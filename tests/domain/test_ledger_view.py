"""
Tests for the plain-text ledger view.
"""

from lekka_kernel.domain.dtos import LedgerPair
from lekka_kernel.domain.ledger_view import HEADER, ledger_rows, render_ledger_view


def test_each_pair_renders_debit_then_credit():
    rows = ledger_rows([LedgerPair("Office Expenses", "Bank", 50000, "2025-04-01", "paper")])

    assert rows == [
        ("2025-04-01", "Office Expenses", "500.00", "0.00", "paper"),
        ("2025-04-01", "Bank", "0.00", "500.00", "paper"),
    ]


def test_render_has_header_separator_and_rows():
    text = render_ledger_view([LedgerPair("Rent", "Bank", 100, "2025-04-01")])
    lines = text.split("\n")

    assert lines[0].split(" | ")[0].strip() == HEADER[0]
    assert set(lines[1].replace(" | ", "")) == {"-"}
    assert len(lines) == 4
    assert "Rent" in lines[2] and "1.00" in lines[2]


def test_render_empty():
    assert render_ledger_view([]).split("\n")[0].startswith("Date")
