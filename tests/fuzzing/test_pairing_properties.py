"""
Property-based tests for ledger pairing.

Hypothesis generates balanced line sets of arbitrary shape; pairing must
conserve the totals, never emit a non-positive amount, and stay within
the n + m - 1 pair bound.
"""

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from lekka_kernel.domain.dtos import JournalLine
from lekka_kernel.domain.pairing import pair_lines

DEBIT_ACCOUNTS = ("Rent", "Salaries", "Office Expenses", "Purchases", "Inventory")
CREDIT_ACCOUNTS = ("Bank", "Cash", "Sales", "Creditors (Accounts Payable)", "Capital Account")


def _partition(total: int, cuts: list[int]) -> list[int]:
    points = sorted({c for c in cuts if 0 < c < total})
    edges = [0, *points, total]
    return [b - a for a, b in zip(edges, edges[1:])]


@composite
def balanced_lines(draw, overlap: bool = False):
    debits = draw(st.lists(st.integers(min_value=1, max_value=10**9), min_size=1, max_size=8))
    total = sum(debits)
    cuts = draw(st.lists(st.integers(min_value=1, max_value=total), max_size=7))
    credits = _partition(total, cuts)

    credit_names = DEBIT_ACCOUNTS + CREDIT_ACCOUNTS if overlap else CREDIT_ACCOUNTS
    lines = [
        JournalLine(account=draw(st.sampled_from(DEBIT_ACCOUNTS)), date="2025-04-01", debit=amount)
        for amount in debits
    ]
    lines += [
        JournalLine(account=draw(st.sampled_from(credit_names)), date="2025-04-01", credit=amount)
        for amount in credits
    ]
    return draw(st.permutations(lines))


@given(lines=balanced_lines())
@settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
def test_pairing_conserves_totals(lines):
    pairs = pair_lines(lines)

    debit_total = sum(line.debit for line in lines)
    assert sum(p.amount for p in pairs) == debit_total
    assert all(p.amount > 0 for p in pairs)


@given(lines=balanced_lines())
@settings(max_examples=200)
def test_pair_count_bound(lines):
    n_debits = sum(1 for line in lines if line.debit > 0)
    n_credits = sum(1 for line in lines if line.credit > 0)

    assert len(pair_lines(lines)) <= n_debits + n_credits - 1


@given(lines=balanced_lines())
@settings(max_examples=200)
def test_disjoint_accounts_never_pair_with_themselves(lines):
    assert not any(p.is_same_account for p in pair_lines(lines))


@given(lines=balanced_lines(overlap=True))
@settings(max_examples=200)
def test_each_account_side_is_conserved(lines):
    pairs = pair_lines(lines)

    for account in {line.account for line in lines}:
        debited = sum(line.debit for line in lines if line.account == account)
        credited = sum(line.credit for line in lines if line.account == account)
        assert sum(p.amount for p in pairs if p.debit_account == account) == debited
        assert sum(p.amount for p in pairs if p.credit_account == account) == credited


@given(
    debits=st.lists(st.integers(min_value=1, max_value=10**6), min_size=1, max_size=5),
    extra=st.integers(min_value=1, max_value=10**6),
)
def test_unbalanced_lines_produce_nothing(debits, extra):
    lines = [JournalLine(account="Rent", date="2025-04-01", debit=d) for d in debits]
    lines.append(JournalLine(account="Bank", date="2025-04-01", credit=sum(debits) + extra))

    assert pair_lines(lines) == ()
