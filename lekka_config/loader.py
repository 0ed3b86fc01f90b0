"""
Policy loader (``lekka_config.loader``).

Responsibility
--------------
Reads the shipped ``defaults.yaml`` and an optional operator override,
merges them, and parses the result into ``lekka_config.schema`` frozen
dataclasses.  Runtime callers use ``lekka_config.get_active_policy()``
instead of calling this module directly.

Invariants enforced
-------------------
* Every numeric knob is range-checked; nothing out of range reaches the
  kernel.
* ``compute_checksum`` is deterministic for equal merged documents, so the
  checksum in LEKKA_POLICY_TRACE identifies the effective policy.

Failure modes
-------------
* Missing override file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Out-of-range or wrongly typed value  -> ``ValueError``.
* Unknown keys are ignored.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from lekka_config.schema import (
    TDS_APPLY_ON,
    CashBankConfig,
    DatesConfig,
    GstConfig,
    InventoryConfig,
    NumberingConfig,
    PolicyConfig,
    PreviewConfig,
    SessionStateConfig,
    TdsConfig,
)

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML mapping.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursive merge; mappings merge key by key except ``rates``, everything else replaces."""
    out = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict) and key != "rates":
            out[key] = merge(out[key], value)
        else:
            out[key] = value
    return out


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be a mapping")
    return value


def _bool(section: str, data: dict[str, Any], key: str) -> bool:
    value = data.get(key)
    if not isinstance(value, bool):
        raise ValueError(f"{section}.{key} must be true or false, got {value!r}")
    return value


def _int(section: str, data: dict[str, Any], key: str, minimum: int, maximum: int | None = None) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{section}.{key} must be an integer, got {value!r}")
    if value < minimum or (maximum is not None and value > maximum):
        bound = f">= {minimum}" if maximum is None else f"in {minimum}..{maximum}"
        raise ValueError(f"{section}.{key} must be {bound}, got {value}")
    return value


def _rate(label: str, value: Any) -> Decimal:
    try:
        rate = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{label} must be a number, got {value!r}") from exc
    if not rate.is_finite() or rate < 0 or rate > 100:
        raise ValueError(f"{label} must be between 0 and 100, got {value!r}")
    return rate


def parse_tds(data: dict[str, Any]) -> TdsConfig:
    raw_rates = data.get("rates") or {}
    if not isinstance(raw_rates, dict):
        raise ValueError("tds.rates must be a mapping of section to percent")
    rates = {str(k).upper(): _rate(f"tds.rates.{k}", v) for k, v in raw_rates.items()}

    override = data.get("no_pan_rate_override")
    apply_on = data.get("apply_on", "amount_excluding_gst")
    if apply_on not in TDS_APPLY_ON:
        raise ValueError(f"tds.apply_on must be one of {sorted(TDS_APPLY_ON)}, got {apply_on!r}")

    ledger = str(data.get("payable_ledger") or "").strip()
    if not ledger:
        raise ValueError("tds.payable_ledger must not be empty")

    return TdsConfig(
        enabled=_bool("tds", data, "enabled"),
        rates=rates,
        no_pan_rate_override=None if override is None else _rate("tds.no_pan_rate_override", override),
        apply_on=apply_on,
        tolerance_minor=_int("tds", data, "tolerance_minor", 0),
        payable_ledger=ledger,
    )


def parse_policy(data: dict[str, Any], sources: tuple[Path, ...] = ()) -> PolicyConfig:
    codes = data.get("hard_error_codes") or []
    if not isinstance(codes, list) or not all(isinstance(c, str) for c in codes):
        raise ValueError("hard_error_codes must be a list of strings")

    dates = _section(data, "dates")
    cash_bank = _section(data, "cash_bank")
    gst = _section(data, "gst")
    inventory = _section(data, "inventory")
    numbering = _section(data, "numbering")
    preview = _section(data, "preview")
    session_state = _section(data, "session_state")

    preview_config = PreviewConfig(
        ttl_seconds=_int("preview", preview, "ttl_seconds", 1),
        funds_hold_ttl_seconds=_int("preview", preview, "funds_hold_ttl_seconds", 1),
    )
    numbering_config = NumberingConfig(
        reservation_ttl_seconds=_int("numbering", numbering, "reservation_ttl_seconds", 1),
        max_reserve_attempts=_int("numbering", numbering, "max_reserve_attempts", 1),
        fiscal_year_start_month=_int("numbering", numbering, "fiscal_year_start_month", 1, 12),
    )
    # Holds and reservations must outlive the snapshot they back
    if preview_config.funds_hold_ttl_seconds < preview_config.ttl_seconds:
        raise ValueError(
            "preview.funds_hold_ttl_seconds must be >= preview.ttl_seconds, "
            f"got {preview_config.funds_hold_ttl_seconds} < {preview_config.ttl_seconds}"
        )
    if numbering_config.reservation_ttl_seconds < preview_config.ttl_seconds:
        raise ValueError(
            "numbering.reservation_ttl_seconds must be >= preview.ttl_seconds, "
            f"got {numbering_config.reservation_ttl_seconds} < {preview_config.ttl_seconds}"
        )

    return PolicyConfig(
        hard_error_codes=frozenset(c.strip().upper() for c in codes),
        dates=DatesConfig(
            allow_future_dates=_bool("dates", dates, "allow_future_dates"),
            backdate_window_days=_int("dates", dates, "backdate_window_days", 0),
        ),
        cash_bank=CashBankConfig(block_negative=_bool("cash_bank", cash_bank, "block_negative")),
        gst=GstConfig(
            enabled=_bool("gst", gst, "enabled"),
            assume_intra_if_unknown=_bool("gst", gst, "assume_intra_if_unknown"),
            tolerance_minor=_int("gst", gst, "tolerance_minor", 0),
        ),
        tds=parse_tds(_section(data, "tds")),
        inventory=InventoryConfig(
            enabled=_bool("inventory", inventory, "enabled"),
            block_negative_stock=_bool("inventory", inventory, "block_negative_stock"),
        ),
        numbering=numbering_config,
        preview=preview_config,
        session_state=SessionStateConfig(
            ttl_seconds=_int("session_state", session_state, "ttl_seconds", 1),
        ),
        checksum=compute_checksum(data),
        sources=sources,
    )


def load_policy(override_path: Path | None = None) -> PolicyConfig:
    """Defaults merged with ``override_path`` (if given), parsed and checked."""
    data = load_yaml_file(DEFAULTS_PATH)
    sources: tuple[Path, ...] = (DEFAULTS_PATH,)
    if override_path is not None:
        data = merge(data, load_yaml_file(Path(override_path)))
        sources = (*sources, Path(override_path))
    return parse_policy(data, sources)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of the merged policy document."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
