"""
Onboarding Form Engine.

The wizard state machine. Hosts dispatch intents (field updates, advance,
retreat, goto, submit); the engine validates against the step schema, moves
between visible steps, and mirrors every change into the draft store.

States are the step ids 1..N plus the terminal ``complete`` flag. The only
suspension point is the completion handler inside ``submit()``; while it is
in flight every intent raises WizardBusyError.
"""

import copy
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic_core import to_jsonable_python

from .errors import StepOutOfRangeError, WizardBusyError, WizardCompleteError
from .persistence import PersistenceAdapter
from .schema import StepSchema, build_step_schema
from .state import OVERRIDE_FIELDS, FormData, FormState, default_form_data, merge_initial_data
from .validation import ValidationResult

logger = logging.getLogger(__name__)

CompletionHandler = Callable[[FormData], Awaitable[Any]]


@dataclass(frozen=True)
class StepView:
    """What a step's UI component needs to render."""
    step_id: int
    key: str
    title: str
    values: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)


class FormEngine:
    """
    Onboarding wizard engine.

    Args:
        schema: Step table (defaults to the configured onboarding schema)
        persistence: Draft store; None disables drafts
        completion_handler: Async callable that accepts the finished data
        overrides: Identity-derived starting values (e.g. name from sign-in)
        defaults: Starting values (defaults to default_form_data())
        override_fields: Fields where a non-blank override beats the draft
        revalidate_on_submit: Validate every visible step on submit, not
            just the current one
    """

    def __init__(
        self,
        schema: StepSchema | None = None,
        persistence: PersistenceAdapter | None = None,
        completion_handler: CompletionHandler | None = None,
        overrides: Mapping[str, Any] | None = None,
        defaults: Mapping[str, Any] | None = None,
        override_fields: tuple[str, ...] = OVERRIDE_FIELDS,
        revalidate_on_submit: bool | None = None,
    ):
        if revalidate_on_submit is None:
            from .config import get_settings

            revalidate_on_submit = get_settings().revalidate_on_submit

        self.schema = schema or build_step_schema()
        self.persistence = persistence
        self.completion_handler = completion_handler
        self.override_fields = override_fields
        self.revalidate_on_submit = revalidate_on_submit
        self._defaults = dict(defaults) if defaults is not None else default_form_data()
        self._overrides = dict(overrides or {})

        self.state = FormState(data=merge_initial_data(self._defaults, self._overrides))
        self._restore()

    # =========================================================================
    # Construction / restore
    # =========================================================================

    def _restore(self) -> None:
        draft = self.persistence.read() if self.persistence else None
        if draft is None:
            return

        self.state.data = merge_initial_data(
            self._defaults, self._overrides, draft, self.override_fields
        )
        step_id = self.schema.clamp(draft.current_step_id)
        if step_id != draft.current_step_id:
            logger.warning(
                f"Draft step {draft.current_step_id} outside 1..{self.schema.total_steps}, "
                f"resuming at {step_id}"
            )
        self.goto(step_id)
        logger.info(f"Resumed onboarding draft at step {step_id}")

    def _persist(self) -> None:
        if self.persistence is not None and not self.state.complete:
            self.persistence.write(self.state.to_snapshot())

    def _ensure_idle(self) -> None:
        if self.state.complete:
            raise WizardCompleteError("Onboarding is already complete")
        if self.state.submitting:
            raise WizardBusyError("Onboarding submission in progress")

    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def current_step_id(self) -> int:
        return self.state.current_step_id

    @property
    def data(self) -> FormData:
        return dict(self.state.data)

    @property
    def errors(self) -> dict[str, str]:
        return dict(self.state.errors)

    @property
    def submitting(self) -> bool:
        return self.state.submitting

    @property
    def complete(self) -> bool:
        return self.state.complete

    @property
    def is_first_step(self) -> bool:
        return self.state.current_step_id == 1

    @property
    def is_last_step(self) -> bool:
        return self.state.current_step_id == self.schema.total_steps

    @property
    def is_busy(self) -> bool:
        return self.state.submitting or self.state.complete

    @property
    def can_go_back(self) -> bool:
        return not self.is_busy and not self.is_first_step

    @property
    def can_advance(self) -> bool:
        return not self.is_busy and not self.is_last_step

    @property
    def can_submit(self) -> bool:
        return not self.is_busy and self.is_last_step

    @property
    def should_show_current_step(self) -> bool:
        return self.schema.is_visible(self.state.current_step_id, self.state.data)

    @property
    def visible_step_number(self) -> int:
        """Position of the current step among visible steps (1-based)."""
        return self.schema.visible_step_number(self.state.current_step_id, self.state.data)

    @property
    def total_visible_steps(self) -> int:
        return self.schema.total_visible_steps(self.state.data)

    def step_view(self) -> StepView:
        """Values and errors scoped to the current step."""
        step = self.schema.get(self.state.current_step_id)
        names = step.field_names if step else ()
        return StepView(
            step_id=self.state.current_step_id,
            key=step.key if step else "",
            title=step.title if step else "",
            values={name: self.state.data.get(name) for name in names},
            errors={
                path: message
                for path, message in self.state.errors.items()
                if path.split(".", 1)[0] in names
            },
        )

    # =========================================================================
    # Intents
    # =========================================================================

    def update_field(self, name: str, value: Any) -> None:
        """
        Set one answer. Clears all errors, even for unrelated fields.

        Values are stored in their JSON form (enums become their values).
        Raises PydanticSerializationError, leaving the state untouched, for
        values that have no JSON form.
        """
        self._ensure_idle()
        if not isinstance(name, str) or not name:
            raise TypeError(f"Field name must be a non-empty string, got {name!r}")
        self.state.data[name] = to_jsonable_python(value)
        self.state.errors = {}
        self._persist()

    def update_fields(self, fields: Mapping[str, Any]) -> None:
        """Set several answers at once; either all are applied or none."""
        self._ensure_idle()
        bad = [name for name in fields if not isinstance(name, str) or not name]
        if bad:
            raise TypeError(f"Field names must be non-empty strings, got {bad!r}")
        self.state.data.update(to_jsonable_python(dict(fields)))
        self.state.errors = {}
        self._persist()

    def validate_current_step(self) -> bool:
        """Validate without moving; sets or clears errors."""
        self._ensure_idle()
        result = self._validate(self.state.current_step_id)
        self.state.errors = result.errors
        return result.success

    def advance(self) -> bool:
        """
        Validate the current step and move to the next visible one.

        Returns False (and populates errors) if validation fails.
        """
        self._ensure_idle()
        current = self.state.current_step_id
        result = self._validate(current)
        if not result.success:
            self.state.errors = result.errors
            return False

        self.state.current_step_id = self.schema.next_visible_step(current, self.state.data)
        self.state.errors = {}
        logger.info(f"Onboarding advanced {current} -> {self.state.current_step_id}")
        self._persist()
        return True

    def retreat(self) -> None:
        """Move to the previous visible step. No validation."""
        self._ensure_idle()
        current = self.state.current_step_id
        self.state.current_step_id = self.schema.previous_visible_step(current, self.state.data)
        self.state.errors = {}
        logger.info(f"Onboarding retreated {current} -> {self.state.current_step_id}")
        self._persist()

    def goto(self, step_id: int) -> None:
        """Jump to a step without validation (used when restoring drafts)."""
        self._ensure_idle()
        if step_id not in self.schema:
            raise StepOutOfRangeError(step_id, self.schema.total_steps)
        self.state.current_step_id = step_id
        self.state.errors = {}
        self._persist()

    async def submit(self) -> bool:
        """
        Validate and hand the finished data to the completion handler.

        Returns False (with errors set) if validation fails. If the handler
        raises, the error propagates and the wizard stays where it was with
        its draft intact, ready to retry.
        """
        self._ensure_idle()
        if not self._validate_for_submit():
            return False

        self.state.submitting = True
        try:
            if self.completion_handler is not None:
                await self.completion_handler(copy.deepcopy(self.state.data))
        except Exception as e:
            logger.error(f"Onboarding completion failed at step {self.state.current_step_id}: {e}")
            raise
        finally:
            self.state.submitting = False

        self.state.complete = True
        if self.persistence is not None:
            self.persistence.clear()
        logger.info("Onboarding complete")
        return True

    async def proceed(self) -> bool:
        """The "continue" control: submit on the last step, advance otherwise."""
        if self.is_last_step:
            return await self.submit()
        return self.advance()

    def reset(self) -> None:
        """Drop the draft and start over from the initial values."""
        if self.state.submitting:
            raise WizardBusyError("Onboarding submission in progress")
        if self.persistence is not None:
            self.persistence.clear()
        self.state = FormState(data=merge_initial_data(self._defaults, self._overrides))
        logger.info("Onboarding reset")

    # =========================================================================
    # Validation
    # =========================================================================

    def _validate(self, step_id: int) -> ValidationResult:
        step = self.schema.get(step_id)
        if step is None:
            return ValidationResult.ok()
        return step.validate(self.state.data)

    def _validate_for_submit(self) -> bool:
        if not self.revalidate_on_submit:
            result = self._validate(self.state.current_step_id)
            self.state.errors = result.errors
            return result.success

        for step_id in self.schema.visible_step_ids(self.state.data):
            result = self._validate(step_id)
            if not result.success:
                logger.info(f"Onboarding submit blocked by step {step_id}")
                self.state.current_step_id = step_id
                self.state.errors = result.errors
                self._persist()
                return False
        self.state.errors = {}
        return True
