"""
Onboarding Wizard Engine.

Sequences the member onboarding form: ordered step slots, some shown only
for certain earlier answers, each validated on its own. In-progress answers
are kept as a resumable draft, and the finished record goes to a completion
handler exactly once.

Layers:
1. Step Schema - slots 1..N with rule-sets and visibility predicates
2. Validation - per-step field -> message errors
3. Persistence - draft read/write/clear behind an adapter
4. Form Engine - the state machine hosts dispatch intents to
"""

from .engine import FormEngine, StepView
from .errors import (
    OnboardingError,
    SchemaError,
    StepOutOfRangeError,
    WizardBusyError,
    WizardCompleteError,
)
from .payload import CompletionPayload, build_completion_payload
from .persistence import FilePersistence, MemoryPersistence, PersistenceAdapter, build_persistence
from .schema import StepDefinition, StepSchema, always, build_step_schema, field_in, never
from .state import DraftSnapshot, FormState
from .validation import ValidationResult, validate_step

__version__ = "1.0.0"

__all__ = [
    "FormEngine",
    "StepView",
    "FormState",
    "DraftSnapshot",
    "StepDefinition",
    "StepSchema",
    "build_step_schema",
    "always",
    "never",
    "field_in",
    "ValidationResult",
    "validate_step",
    "PersistenceAdapter",
    "MemoryPersistence",
    "FilePersistence",
    "build_persistence",
    "CompletionPayload",
    "build_completion_payload",
    "OnboardingError",
    "SchemaError",
    "StepOutOfRangeError",
    "WizardBusyError",
    "WizardCompleteError",
]
