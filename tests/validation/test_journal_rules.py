"""
Tests for the structural journal rules.
"""

from lekka_kernel.domain.dtos import JournalLine
from lekka_kernel.services.validation.journal_rules import (
    BalanceRule,
    ExclusivityRule,
    SameAccountRule,
    ShapeRule,
)


def codes(result, kind="errors"):
    return [issue.code for issue in getattr(result, kind)]


class TestShape:
    def test_single_line_rejected(self, make_ctx):
        result = ShapeRule().check(make_ctx([("Rent", 100, 0)]))

        assert codes(result) == ["SHAPE_MIN_LINES"]
        assert result.errors[0].metadata["count"] == 1

    def test_two_lines_ok(self, make_ctx):
        assert ShapeRule().check(make_ctx([("Rent", 100, 0), ("Bank", 0, 100)])).is_valid


class TestExclusivity:
    def test_both_sides(self, make_ctx):
        result = ExclusivityRule().check(make_ctx([("Rent", 100, 100), ("Bank", 0, 100)]))

        assert codes(result) == ["DRCR_EXCLUSIVE"]
        assert result.errors[0].path == "lines[0]"

    def test_neither_side_and_negative(self, make_ctx):
        result = ExclusivityRule().check(make_ctx([("Rent", 0, 0), ("Bank", -5, 0)]))

        assert codes(result) == ["DRCR_EXCLUSIVE", "DRCR_EXCLUSIVE"]
        assert [e.metadata["index"] for e in result.errors] == [0, 1]


class TestBalance:
    def test_unbalanced(self, make_ctx):
        result = BalanceRule().check(make_ctx([("Rent", 100, 0), ("Bank", 0, 90)]))

        assert codes(result) == ["NOT_BALANCED"]
        assert (result.errors[0].metadata["debit_minor"], result.errors[0].metadata["credit_minor"]) == (100, 90)

    def test_all_zero_is_not_balanced(self, make_ctx):
        assert codes(BalanceRule().check(make_ctx([("Rent", 0, 0), ("Bank", 0, 0)]))) == ["NOT_BALANCED"]

    def test_balanced(self, make_ctx):
        assert BalanceRule().check(make_ctx([("Rent", 100, 0), ("Bank", 0, 100)])).is_valid


class TestSameAccount:
    def test_unavoidable_same_account(self, make_ctx):
        result = SameAccountRule().check(make_ctx([("Bank", 100, 0), ("Bank", 0, 100)]))

        assert codes(result) == ["LEDGER_SAME_ACCOUNT"]
        assert result.errors[0].metadata["accounts"] == ["Bank"]

    def test_avoidable_same_account(self, make_ctx):
        lines = [
            JournalLine("Bank", "2025-04-01", debit=100),
            JournalLine("Cash", "2025-04-01", debit=100),
            JournalLine("Bank", "2025-04-01", credit=100),
            JournalLine("Cash", "2025-04-01", credit=100),
        ]

        assert SameAccountRule().check(make_ctx(lines=lines)).is_valid
