"""
Onboarding exceptions.

Validation failures are never raised - they come back as a ValidationResult.
These cover misuse of the engine and a malformed step schema.
"""


class OnboardingError(Exception):
    """Base class for onboarding wizard errors."""


class SchemaError(OnboardingError):
    """Step schema is not a contiguous 1..N table."""


class StepOutOfRangeError(OnboardingError):
    """A step id outside [1, N] was requested."""

    def __init__(self, step_id: int, total_steps: int):
        self.step_id = step_id
        self.total_steps = total_steps
        super().__init__(f"Step {step_id} is outside 1..{total_steps}")


class WizardBusyError(OnboardingError):
    """An intent was dispatched while a submission is in flight."""


class WizardCompleteError(OnboardingError):
    """An intent was dispatched after the wizard completed."""
