"""
ValidationEngine -- runs a rule pack and concatenates the findings.

Responsibility:
    Executes every rule of the pack for the context's document type and
    merges their results.  Never short-circuits: a journal with five
    problems reports five problems.

Failure modes:
    - A rule that raises is logged as ``validation_rule_failed`` (with
      traceback) and contributes no finding.  The remaining rules still run.
"""

from typing import Sequence

from lekka_kernel.domain.dtos import ValidationResult
from lekka_kernel.logging_config import get_logger
from lekka_kernel.services.validation.base import Rule
from lekka_kernel.services.validation.context import ValidationContext
from lekka_kernel.services.validation.packs import pack_for

logger = get_logger("services.validation")


class ValidationEngine:

    def __init__(self, rules: Sequence[Rule] | None = None):
        self._rules = tuple(rules) if rules is not None else None

    def rules_for(self, ctx: ValidationContext) -> tuple[Rule, ...]:
        return self._rules if self._rules is not None else pack_for(ctx.doc_type)

    def validate(self, ctx: ValidationContext) -> ValidationResult:
        results = []
        for rule in self.rules_for(ctx):
            try:
                results.append(rule.check(ctx))
            except Exception:
                logger.error(
                    "validation_rule_failed",
                    extra={"rule": rule.name, "doc_type": ctx.doc_type.value},
                    exc_info=True,
                )
        result = ValidationResult.combine(results)
        logger.debug(
            "validation_completed",
            extra={
                "doc_type": ctx.doc_type.value,
                "errors": len(result.errors),
                "warnings": len(result.warnings),
                "info": len(result.info),
            },
        )
        return result


def validate(ctx: ValidationContext) -> ValidationResult:
    """Validate with the document type's standard rule pack."""
    return ValidationEngine().validate(ctx)
