"""Validation engine, rules and rule packs."""

from lekka_kernel.services.validation.base import Rule
from lekka_kernel.services.validation.classification import classify
from lekka_kernel.services.validation.context import ValidationContext, ValidationLookups
from lekka_kernel.services.validation.engine import ValidationEngine, validate
from lekka_kernel.services.validation.packs import RULE_PACKS, pack_for

__all__ = [
    "Rule",
    "classify",
    "ValidationContext",
    "ValidationLookups",
    "ValidationEngine",
    "validate",
    "RULE_PACKS",
    "pack_for",
]
