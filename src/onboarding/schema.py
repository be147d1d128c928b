"""
Onboarding Step Schema.

An ordered dispatch table ``step_id -> StepDefinition``. Each slot carries
its rule-set and a visibility predicate over the whole current form data.
Visibility is never cached: every navigation scan asks the predicates again,
so a later answer can hide or reveal an earlier slot.
"""

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from .errors import SchemaError
from .forms import (
    AvatarStep,
    CommunityHopesStep,
    InterestsStep,
    MembershipTierStep,
    NameStep,
    PrimaryGoalStep,
    ProjectDescriptionStep,
    ProjectStatusStep,
    StepForm,
    SuccessDefinitionStep,
    TechnicalLevelStep,
    TimeCommitmentStep,
    TimezoneStep,
)
from .options import ACTIVE_PROJECT_STATUSES
from .validation import ValidationResult, validate_form

VisibilityPredicate = Callable[[Mapping[str, Any]], bool]


# =============================================================================
# Visibility Predicates
# =============================================================================


def always(data: Mapping[str, Any]) -> bool:
    return True


def never(data: Mapping[str, Any]) -> bool:
    return False


def field_in(name: str, values: Iterable[str]) -> VisibilityPredicate:
    """Visible only when ``data[name]`` is one of values. Unset never matches."""
    allowed = frozenset(values)

    def predicate(data: Mapping[str, Any]) -> bool:
        value = data.get(name)
        return isinstance(value, str) and value in allowed

    predicate.__name__ = f"{name}_in"
    return predicate


# =============================================================================
# Schema
# =============================================================================


@dataclass(frozen=True)
class StepDefinition:
    """One slot of the wizard: fixed id, rule-set, visibility."""
    id: int
    key: str
    title: str = ""
    form: type[StepForm] | None = None
    is_visible: VisibilityPredicate = always

    def validate(self, data: Mapping[str, Any]) -> ValidationResult:
        if self.form is None:
            return ValidationResult.ok()
        return validate_form(self.form, data)

    @property
    def field_names(self) -> tuple[str, ...]:
        return self.form.field_names() if self.form else ()


class StepSchema:
    """
    Ordered, contiguous table of step slots 1..N.

    All scans clamp to [1, N]; they never return an id outside the table.
    """

    def __init__(self, steps: Iterable[StepDefinition]):
        ordered = sorted(steps, key=lambda s: s.id)
        if not ordered:
            raise SchemaError("Step schema needs at least one step")
        ids = [s.id for s in ordered]
        if ids != list(range(1, len(ordered) + 1)):
            raise SchemaError(f"Step ids must be exactly 1..{len(ordered)}, got {ids}")
        self._steps = {s.id: s for s in ordered}

    @property
    def total_steps(self) -> int:
        return len(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[StepDefinition]:
        return iter(self._steps.values())

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._steps

    def get(self, step_id: int) -> StepDefinition | None:
        return self._steps.get(step_id)

    def by_key(self, key: str) -> StepDefinition | None:
        for step in self._steps.values():
            if step.key == key:
                return step
        return None

    def is_visible(self, step_id: int, data: Mapping[str, Any]) -> bool:
        step = self._steps.get(step_id)
        return step is not None and bool(step.is_visible(data))

    def visible_step_ids(self, data: Mapping[str, Any]) -> list[int]:
        return [i for i in self._steps if self.is_visible(i, data)]

    def next_visible_step(self, current: int, data: Mapping[str, Any]) -> int:
        """Smallest visible id after current, or N if none remain."""
        candidate = current + 1
        while candidate <= self.total_steps and not self.is_visible(candidate, data):
            candidate += 1
        return min(candidate, self.total_steps)

    def previous_visible_step(self, current: int, data: Mapping[str, Any]) -> int:
        """Largest visible id before current, or 1 if none remain."""
        candidate = current - 1
        while candidate >= 1 and not self.is_visible(candidate, data):
            candidate -= 1
        return max(candidate, 1)

    def visible_step_number(self, current: int, data: Mapping[str, Any]) -> int:
        """How many visible slots there are from 1 through current."""
        return sum(1 for i in range(1, current + 1) if self.is_visible(i, data))

    def total_visible_steps(self, data: Mapping[str, Any]) -> int:
        return len(self.visible_step_ids(data))

    def clamp(self, step_id: int) -> int:
        return max(1, min(step_id, self.total_steps))


def build_step_schema(pricing_enabled: bool | None = None) -> StepSchema:
    """
    The twelve-slot onboarding schema.

    Slot 5 (pricing) stays hidden unless the pricing flag is on. Slot 7
    (project description) only shows for members who are working on a project.
    """
    if pricing_enabled is None:
        from .config import get_settings

        pricing_enabled = get_settings().pricing_step_enabled

    return StepSchema([
        StepDefinition(1, "name", "What's your name?", NameStep),
        StepDefinition(2, "timezone", "Where are you based?", TimezoneStep),
        StepDefinition(3, "primary_goal", "What brings you here?", PrimaryGoalStep),
        StepDefinition(4, "interests", "What are you interested in?", InterestsStep),
        StepDefinition(
            5, "pricing", "Choose your membership", MembershipTierStep,
            is_visible=always if pricing_enabled else never,
        ),
        StepDefinition(6, "project_status", "Are you working on a project?", ProjectStatusStep),
        StepDefinition(
            7, "project_description", "Tell us about your project", ProjectDescriptionStep,
            is_visible=field_in("working_on_project", ACTIVE_PROJECT_STATUSES),
        ),
        StepDefinition(8, "technical_level", "How technical are you?", TechnicalLevelStep),
        StepDefinition(9, "community_hopes", "What do you hope to get from the community?", CommunityHopesStep),
        StepDefinition(10, "time_commitment", "How much time can you commit?", TimeCommitmentStep),
        StepDefinition(11, "success_definition", "What would success look like?", SuccessDefinitionStep),
        StepDefinition(12, "avatar", "Add a profile picture", AvatarStep),
    ])
