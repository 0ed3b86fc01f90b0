"""
Caller-side classification of validation errors.

Only codes in ``policy.hard_error_codes`` block a preview.  Every other
error is downgraded to a warning, so tenants can soften a rule through
policy without touching its code.
"""

from lekka_kernel.domain.dtos import ValidationIssue, ValidationResult
from lekka_kernel.domain.policy import LedgerPolicy


def classify(
    result: ValidationResult,
    policy: LedgerPolicy,
) -> tuple[tuple[ValidationIssue, ...], ValidationResult]:
    """Split into (hard errors, result with soft errors moved to warnings)."""
    hard = tuple(issue for issue in result.errors if policy.is_hard(issue.code))
    downgraded = tuple(issue for issue in result.errors if not policy.is_hard(issue.code))
    soft = ValidationResult(
        errors=(),
        warnings=(*result.warnings, *downgraded),
        info=result.info,
    )
    return hard, soft
