"""
Tests for the validation engine, rule packs and error classification.
"""

from dataclasses import replace

from lekka_kernel.domain.dtos import DocumentType, ValidationIssue, ValidationResult
from lekka_kernel.domain.policy import LedgerPolicy
from lekka_kernel.services.validation import RULE_PACKS, ValidationEngine, classify, pack_for, validate
from lekka_kernel.services.validation.base import Rule
from lekka_kernel.services.validation.document_rules import GstRule, TdsRule
from lekka_kernel.services.validation.ledger_rules import InstrumentHygieneRule


def codes(result, kind="errors"):
    return [issue.code for issue in getattr(result, kind)]


class _Exploding(Rule):
    name = "exploding"

    def check(self, ctx):
        raise RuntimeError("boom")


class _Flagging(Rule):
    name = "flagging"

    def check(self, ctx):
        return ValidationResult.error("FLAGGED", "flagged")


class TestEngine:
    def test_all_problems_are_reported(self, make_ctx):
        result = validate(make_ctx([("Widget Royalties", 100, 100)], date="not-a-date", idempotency_key=None))

        assert {"SHAPE_MIN_LINES", "DRCR_EXCLUSIVE", "LEDGER_MISSING", "DATE_INVALID"} <= set(codes(result))
        assert codes(result, "warnings") == ["IDEMPOTENCY_MISSING"]

    def test_clean_journal(self, make_ctx):
        result = validate(make_ctx([("Rent", 100, 0), ("Sales", 0, 100)]))

        assert result.errors == ()
        assert result.warnings == ()

    def test_failing_rule_is_logged_and_skipped(self, make_ctx, captured_logs):
        engine = ValidationEngine([_Exploding(), _Flagging()])

        result = engine.validate(make_ctx([("Rent", 100, 0), ("Sales", 0, 100)]))

        assert codes(result) == ["FLAGGED"]
        failures = [r for r in captured_logs() if r["message"] == "validation_rule_failed"]
        assert failures[0]["rule"] == "exploding"
        assert failures[0]["exc_type"] == "RuntimeError"


class TestPacks:
    def test_every_document_type_has_a_pack(self):
        assert set(RULE_PACKS) == set(DocumentType)

    def test_unknown_hint_uses_journal_pack(self):
        assert pack_for("memo") is RULE_PACKS[DocumentType.JOURNAL]

    def test_pack_contents(self):
        names = lambda doc_type: {rule.name for rule in pack_for(doc_type)}  # noqa: E731

        assert GstRule.name in names(DocumentType.INVOICE)
        assert TdsRule.name in names(DocumentType.PAYMENT_VOUCHER)
        assert InstrumentHygieneRule.name not in names(DocumentType.JOURNAL)


class TestClassify:
    def test_soft_errors_become_warnings(self):
        result = ValidationResult(
            errors=(ValidationIssue("NOT_BALANCED", "x"), ValidationIssue("LEDGER_MISSING", "y")),
            warnings=(ValidationIssue("IDEMPOTENCY_MISSING", "z"),),
        )

        hard, soft = classify(result, LedgerPolicy())

        assert [i.code for i in hard] == ["NOT_BALANCED"]
        assert soft.errors == ()
        assert [i.code for i in soft.warnings] == ["IDEMPOTENCY_MISSING", "LEDGER_MISSING"]

    def test_policy_controls_hardness(self):
        policy = replace(LedgerPolicy(), hard_error_codes=frozenset({"LEDGER_MISSING"}))
        result = ValidationResult.error("LEDGER_MISSING", "y").merge(ValidationResult.error("NOT_BALANCED", "x"))

        hard, soft = classify(result, policy)

        assert [i.code for i in hard] == ["LEDGER_MISSING"]
        assert [i.code for i in soft.warnings] == ["NOT_BALANCED"]
