"""Rule base class."""

from abc import ABC, abstractmethod

from lekka_kernel.domain.dtos import ValidationResult
from lekka_kernel.services.validation.context import ValidationContext


class Rule(ABC):
    """
    One validation check.

    Contract:
        ``check`` returns a ValidationResult and never mutates anything.
        A rule that raises is logged by the engine and contributes nothing.
    """

    name: str = "rule"

    @abstractmethod
    def check(self, ctx: ValidationContext) -> ValidationResult:
        ...

    def __repr__(self) -> str:
        return f"<Rule {self.name}>"
