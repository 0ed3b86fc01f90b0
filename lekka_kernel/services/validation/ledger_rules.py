"""
Rules that consult the tenant's books: ledger existence, dates and
period locks, bank/cash hygiene, available funds, and the idempotency
reminder.
"""

import re
from datetime import date, timedelta

from lekka_kernel.domain.coa import looks_like_cash_or_bank, looks_like_instrument, normalize_key
from lekka_kernel.domain.dtos import DocumentType, ValidationResult
from lekka_kernel.domain.funds import net_outflows
from lekka_kernel.domain.money import format_minor
from lekka_kernel.services.validation.base import Rule
from lekka_kernel.services.validation.context import ValidationContext

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_iso_date(value: str | None) -> date | None:
    """YYYY-MM-DD to date; None for anything else, including impossible dates."""
    if not value or not _ISO_DATE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


class LedgerExistenceRule(Rule):
    name = "ledger_existence"

    def check(self, ctx: ValidationContext) -> ValidationResult:
        results = []
        for index, line in enumerate(ctx.lines):
            info = ctx.lookups.account(line.account) if line.account else None
            if info is None or not info.is_active:
                results.append(
                    ValidationResult.error(
                        "LEDGER_MISSING",
                        f"Ledger not found or inactive: {line.account}",
                        f"lines[{index}].account",
                        index=index,
                        account=line.account,
                        inactive=info is not None,
                    )
                )
        return ValidationResult.combine(results)


class PeriodDateRule(Rule):
    """
    Every distinct line date, plus the document date, must be a real
    YYYY-MM-DD date, not in the future (unless allowed), and outside any
    closed period.  Dates older than the backdate window only warn.
    """

    name = "period_date"

    def check(self, ctx: ValidationContext) -> ValidationResult:
        raw_dates = []
        for value in [*(line.date for line in ctx.lines), ctx.document.doc_date]:
            if value is not None and value not in raw_dates:
                raw_dates.append(value)

        policy = ctx.policy.dates
        window = policy.backdate_window_days
        results = []
        for raw in raw_dates:
            parsed = parse_iso_date(raw)
            if parsed is None:
                results.append(
                    ValidationResult.error("DATE_INVALID", "Date must be YYYY-MM-DD", date=raw)
                )
                continue
            if not policy.allow_future_dates and parsed > ctx.as_of:
                results.append(
                    ValidationResult.error(
                        "DATE_FUTURE",
                        f"Future-dated posting not allowed ({raw})",
                        date=raw,
                        today=ctx.as_of.isoformat(),
                    )
                )
            if window > 0 and parsed < ctx.as_of - timedelta(days=window):
                results.append(
                    ValidationResult.warning(
                        "DATE_BACKDATED",
                        f"Back-dated beyond the {window}-day window ({raw})",
                        date=raw,
                        today=ctx.as_of.isoformat(),
                        window_days=window,
                    )
                )
            if ctx.lookups.is_period_locked(parsed):
                results.append(
                    ValidationResult.error("PERIOD_LOCKED", f"Period locked for date {raw}", date=raw)
                )
        return ValidationResult.combine(results)


class InstrumentHygieneRule(Rule):
    """One bank/cash ledger per entry, and never a single-line bank entry."""

    name = "instrument_hygiene"

    def check(self, ctx: ValidationContext) -> ValidationResult:
        instrument_lines = [
            line for line in ctx.lines
            if looks_like_cash_or_bank(line.account, ctx.account_type(line.account))
        ]
        if not instrument_lines:
            return ValidationResult.empty()

        results = []
        if len(ctx.lines) == 1:
            results.append(
                ValidationResult.error(
                    "BANK_SINGLELINE", "Single-line bank/cash entries are not allowed"
                )
            )
        distinct: dict[str, str] = {}
        for line in instrument_lines:
            distinct.setdefault(normalize_key(line.account), line.account)
        if len(distinct) > 1 and ctx.doc_type != DocumentType.CONTRA_VOUCHER:
            ledgers = list(distinct.values())
            results.append(
                ValidationResult.error(
                    "BANK_MIXED",
                    "Multiple bank/cash ledgers in one entry are not allowed",
                    ledgers=ledgers,
                )
            )
        return ValidationResult.combine(results)


class FundsGuardRule(Rule):
    """
    Net outflow from an instrument on a date must fit the headroom left
    after the ledger balance, any facility, and other previews' holds.
    """

    name = "funds_guard"

    def check(self, ctx: ValidationContext) -> ValidationResult:
        if not ctx.policy.cash_bank.block_negative:
            return ValidationResult.empty()

        results = []
        for outflow in net_outflows(ctx.lines):
            on = parse_iso_date(outflow.date)
            if on is None:
                continue
            headroom = ctx.lookups.available_headroom(outflow.account, on)
            guarded = (
                looks_like_instrument(outflow.account, ctx.account_type(outflow.account))
                or headroom.facility_type is not None
            )
            if not guarded:
                continue

            if outflow.amount > headroom.available:
                short = outflow.amount - headroom.available
                results.append(
                    ValidationResult.error(
                        "BANK_CASH_INSUFFICIENT",
                        f"{outflow.account} on {outflow.date}: short by {format_minor(short)}; "
                        f"change bank or date",
                        account=outflow.account,
                        date=outflow.date,
                        available_minor=headroom.available,
                        required_minor=outflow.amount,
                        short_minor=short,
                    )
                )
            else:
                results.append(
                    ValidationResult.note(
                        "FUNDS_OK",
                        f"{outflow.account} on {outflow.date}: funds available",
                        account=outflow.account,
                        date=outflow.date,
                        available_minor=headroom.available,
                        required_minor=outflow.amount,
                    )
                )
        return ValidationResult.combine(results)


class IdempotencyRule(Rule):
    name = "idempotency"

    def check(self, ctx: ValidationContext) -> ValidationResult:
        if not ctx.idempotency_key:
            return ValidationResult.warning(
                "IDEMPOTENCY_MISSING", "Idempotency key not provided in preview request"
            )
        return ValidationResult.empty()
