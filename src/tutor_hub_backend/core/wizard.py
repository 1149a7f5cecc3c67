'''
Multi-step form wizards.
A wizard is an ordered set of pydantic models, one per step. The same flat
payload can be checked one step at a time (while the user moves forward)
or all at once (on the final submit).
'''
from typing import Any, Type

from pydantic import BaseModel, ValidationError

from ..common.exceptions import WizardValidationError


def errors_by_field(exc: ValidationError) -> dict[str, list[str]]:
    """Flattens a pydantic ValidationError into field -> messages."""
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "non_field_errors"
        message = error["msg"].removeprefix("Value error, ")
        errors.setdefault(field, []).append(message)
    return errors


class Wizard:
    def __init__(self, name: str, steps: list[Type[BaseModel]]):
        self.name = name
        self.steps = steps

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    def next_step(self, step: int) -> int | None:
        return step + 1 if step < self.total_steps else None

    def validate_step(self, step: int, data: dict[str, Any]) -> BaseModel:
        """
        Validates `data` against step `step` (1-based).
        Raises WizardValidationError with per-field messages on failure.
        """
        if step < 1 or step > self.total_steps:
            raise WizardValidationError(step, {"step": [f"{self.name} has steps 1 to {self.total_steps}."]})
        try:
            return self.steps[step - 1].model_validate(data)
        except ValidationError as e:
            raise WizardValidationError(step, errors_by_field(e)) from e

    def validate_all(self, data: dict[str, Any]) -> list[BaseModel]:
        """Runs every step in order, stopping at the first one that fails."""
        return [self.validate_step(step, data) for step in range(1, self.total_steps + 1)]
