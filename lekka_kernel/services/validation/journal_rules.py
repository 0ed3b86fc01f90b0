"""
Structural rules over the proposed journal lines.

These rules need nothing but the lines themselves: minimum shape, one
side per line, debit/credit balance, and whether pairing would be forced
into a same-account pair.
"""

from lekka_kernel.domain.dtos import ValidationResult
from lekka_kernel.domain.money import format_minor
from lekka_kernel.domain.pairing import has_unavoidable_same_account, pair_lines, same_account_pairs
from lekka_kernel.services.validation.base import Rule
from lekka_kernel.services.validation.context import ValidationContext


class ShapeRule(Rule):
    name = "shape"

    def check(self, ctx: ValidationContext) -> ValidationResult:
        if len(ctx.lines) < 2:
            return ValidationResult.error(
                "SHAPE_MIN_LINES",
                "A journal needs at least two lines",
                count=len(ctx.lines),
            )
        return ValidationResult.empty()


class ExclusivityRule(Rule):
    """Each line carries exactly one strictly positive side."""

    name = "exclusivity"

    def check(self, ctx: ValidationContext) -> ValidationResult:
        results = []
        for index, line in enumerate(ctx.lines):
            negative = line.debit < 0 or line.credit < 0
            sides = (line.debit > 0) + (line.credit > 0)
            if negative or sides != 1:
                results.append(
                    ValidationResult.error(
                        "DRCR_EXCLUSIVE",
                        f"Line {index + 1} must have exactly one of debit or credit, and no negative amounts",
                        f"lines[{index}]",
                        index=index,
                        account=line.account,
                        debit=line.debit,
                        credit=line.credit,
                    )
                )
        return ValidationResult.combine(results)


class BalanceRule(Rule):
    name = "balance"

    def check(self, ctx: ValidationContext) -> ValidationResult:
        debit = sum(line.debit for line in ctx.lines)
        credit = sum(line.credit for line in ctx.lines)
        if debit != credit or debit == 0:
            return ValidationResult.error(
                "NOT_BALANCED",
                f"Debits {format_minor(debit)} and credits {format_minor(credit)} must be equal and non-zero",
                debit_minor=debit,
                credit_minor=credit,
            )
        return ValidationResult.empty()


class SameAccountRule(Rule):
    name = "same_account"

    def check(self, ctx: ValidationContext) -> ValidationResult:
        if not has_unavoidable_same_account(ctx.lines):
            return ValidationResult.empty()
        accounts = sorted({p.debit_account for p in same_account_pairs(pair_lines(ctx.lines))})
        return ValidationResult.error(
            "LEDGER_SAME_ACCOUNT",
            f"Cannot post a ledger against itself: {', '.join(accounts)}",
            accounts=accounts,
        )
