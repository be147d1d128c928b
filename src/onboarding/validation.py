"""
Step validation service.

Turns a step's pydantic rule-set into a flat ``field path -> message`` map.
Validation failures are values, never exceptions: they block navigation but
leave the form state untouched.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from .forms import StepForm

if TYPE_CHECKING:
    from .schema import StepSchema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one step."""
    success: bool
    errors: dict[str, str] = field(default_factory=dict)

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(success=True)

    @classmethod
    def failed(cls, errors: dict[str, str]) -> "ValidationResult":
        return cls(success=False, errors=dict(errors))


def error_map(exc: ValidationError) -> dict[str, str]:
    """
    Flatten pydantic errors to one message per dotted field path.

    Errors arrive in field declaration order; the first one for a path wins.
    """
    errors: dict[str, str] = {}
    for issue in exc.errors():
        path = ".".join(str(part) for part in issue["loc"]) or "__root__"
        errors.setdefault(path, issue["msg"])
    return errors


def validate_form(form: type[StepForm], data: Mapping[str, Any]) -> ValidationResult:
    """Validate form data against a single step's rule-set."""
    try:
        form.model_validate(dict(data))
    except ValidationError as e:
        errors = error_map(e)
        logger.debug(f"{form.__name__} failed validation: {sorted(errors)}")
        return ValidationResult.failed(errors)
    return ValidationResult.ok()


def validate_step(
    step_id: int,
    data: Mapping[str, Any],
    schema: "StepSchema | None" = None,
) -> ValidationResult:
    """
    Validate the data for one step slot.

    Step ids without a registered rule-set always pass.
    """
    if schema is None:
        from .schema import build_step_schema

        schema = build_step_schema()

    step = schema.get(step_id)
    if step is None:
        return ValidationResult.ok()
    return step.validate(data)
