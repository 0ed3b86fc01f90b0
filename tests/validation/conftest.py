"""Fixtures for rule-level validation tests."""

import pytest

from lekka_kernel.domain.dtos import DocumentModel, DocumentType, JournalLine
from lekka_kernel.domain.policy import LedgerPolicy
from lekka_kernel.services.validation.context import ValidationContext, ValidationLookups

TENANT = "tenant-a"
TODAY = "2025-04-01"


@pytest.fixture
def make_ctx(session, seeded_chart, deterministic_clock):
    """Build a ValidationContext over ``(account, debit, credit)`` rows."""

    def _make(
        rows=(),
        doc_type=DocumentType.JOURNAL,
        policy=None,
        document=None,
        idempotency_key="key-1",
        date=TODAY,
        lines=None,
    ) -> ValidationContext:
        if lines is None:
            lines = tuple(JournalLine(account, date, debit, credit) for account, debit, credit in rows)
        now = deterministic_clock.now()
        return ValidationContext(
            doc_type=doc_type,
            lines=tuple(lines),
            tenant_id=TENANT,
            policy=policy or LedgerPolicy(),
            as_of=now.date(),
            lookups=ValidationLookups(session, TENANT, now),
            document=document or DocumentModel(),
            idempotency_key=idempotency_key,
        )

    return _make
