"""
lekka_config -- single public entrypoint for ledger policy.

Responsibility:
    ``get_active_policy()`` is the only way runtime code obtains policy.
    It loads the shipped defaults, merges an operator override file when
    one is given, range-checks every knob and returns a frozen
    PolicyConfig.  ``lekka_config.bridges`` turns that into the kernel's
    LedgerPolicy.

Architecture position:
    Configuration.  Sits above ``lekka_kernel``; the kernel never imports
    this package.

Failure modes:
    - FileNotFoundError -- the override path does not exist.
    - yaml.YAMLError -- malformed YAML.
    - ValueError -- a value outside its allowed range.

Audit relevance:
    Every successful call emits a LEKKA_POLICY_TRACE log record with the
    policy checksum and source files, tying each preview back to the
    policy that judged it.
"""

from __future__ import annotations

from pathlib import Path

from lekka_config.loader import load_policy
from lekka_config.schema import PolicyConfig
from lekka_kernel.logging_config import get_logger

_logger = get_logger("config")


def get_active_policy(override_path: Path | str | None = None) -> PolicyConfig:
    """
    The only public policy entrypoint.

    Args:
        override_path: Optional YAML file merged over the shipped defaults.

    Returns:
        PolicyConfig -- frozen, range-checked.
    """
    config = load_policy(Path(override_path) if override_path is not None else None)
    _logger.info(
        "LEKKA_POLICY_TRACE",
        extra={
            "trace_type": "LEKKA_POLICY_TRACE",
            "checksum": config.checksum,
            "sources": [str(p) for p in config.sources],
            "hard_error_count": len(config.hard_error_codes),
        },
    )
    return config


__all__ = ["get_active_policy", "PolicyConfig"]
