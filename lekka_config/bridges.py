"""
Config -> kernel bridges.

The kernel must never import ``lekka_config``; these functions translate
the parsed PolicyConfig into the kernel's own value objects.

Usage:
    config = get_active_policy()
    policy = build_ledger_policy(config)
    orchestrator = PostingOrchestrator(session, policy=policy)
"""

from __future__ import annotations

from lekka_config.schema import PolicyConfig
from lekka_kernel.domain.clock import Clock
from lekka_kernel.domain.policy import (
    CashBankPolicy,
    DatePolicy,
    GstPolicy,
    InventoryPolicy,
    LedgerPolicy,
    NumberingPolicy,
    PreviewPolicy,
    TdsPolicy,
)
from lekka_kernel.domain.session_state import SessionStateStore


def build_ledger_policy(config: PolicyConfig) -> LedgerPolicy:
    return LedgerPolicy(
        hard_error_codes=config.hard_error_codes,
        dates=DatePolicy(
            allow_future_dates=config.dates.allow_future_dates,
            backdate_window_days=config.dates.backdate_window_days,
        ),
        cash_bank=CashBankPolicy(block_negative=config.cash_bank.block_negative),
        gst=GstPolicy(
            enabled=config.gst.enabled,
            assume_intra_if_unknown=config.gst.assume_intra_if_unknown,
            tolerance_minor=config.gst.tolerance_minor,
        ),
        tds=TdsPolicy(
            enabled=config.tds.enabled,
            rates=dict(config.tds.rates),
            no_pan_rate=config.tds.no_pan_rate_override,
            apply_on=config.tds.apply_on,
            tolerance_minor=config.tds.tolerance_minor,
            payable_ledger=config.tds.payable_ledger,
        ),
        inventory=InventoryPolicy(
            enabled=config.inventory.enabled,
            block_negative_stock=config.inventory.block_negative_stock,
        ),
        numbering=NumberingPolicy(
            reservation_ttl_seconds=config.numbering.reservation_ttl_seconds,
            max_reserve_attempts=config.numbering.max_reserve_attempts,
            fiscal_year_start_month=config.numbering.fiscal_year_start_month,
        ),
        preview=PreviewPolicy(
            ttl_seconds=config.preview.ttl_seconds,
            funds_hold_ttl_seconds=config.preview.funds_hold_ttl_seconds,
        ),
        checksum=config.checksum,
    )


def build_session_store(config: PolicyConfig, clock: Clock | None = None) -> SessionStateStore:
    return SessionStateStore(ttl_seconds=config.session_state.ttl_seconds, clock=clock)
