"""
Onboarding Forms - per-step rule-sets.

Each wizard step validates its slice of the form data with a small pydantic
model. Rules run as "before" validators so the first failing rule produces
the field's single, user-facing message, and every field is validated even
when it is absent from the data (absent means None).
"""

import logging
from typing import Annotated, Any

from pydantic import AnyUrl, BaseModel, BeforeValidator, ConfigDict, TypeAdapter, ValidationError
from pydantic_core import PydanticCustomError

from .options import (
    COMMUNITY_HOPES_OPTIONS,
    INTERESTS_OPTIONS,
    MEMBERSHIP_TIER_OPTIONS,
    PRIMARY_GOAL_OPTIONS,
    PROJECT_STATUS_OPTIONS,
    TECHNICAL_LEVEL_OPTIONS,
    TIME_COMMITMENT_OPTIONS,
    TIMEZONE_OPTIONS,
    option_ids,
)

logger = logging.getLogger(__name__)

_url_adapter = TypeAdapter(AnyUrl)


# =============================================================================
# Rules
# =============================================================================


def _reject(kind: str, message: str) -> PydanticCustomError:
    return PydanticCustomError(kind, message)


def required_text(label: str, max_length: int) -> BeforeValidator:
    """Non-empty string of at most max_length characters."""

    def check(value: Any) -> str:
        if not isinstance(value, str) or not value:
            raise _reject("required", f"{label} is required")
        if len(value) > max_length:
            raise _reject("too_long", f"{label} must be {max_length} characters or less")
        return value

    return BeforeValidator(check)


def optional_text(max_length: int, message: str) -> BeforeValidator:
    """Missing, or a string of at most max_length characters."""

    def check(value: Any) -> str | None:
        if value is None:
            return None
        if not isinstance(value, str):
            raise _reject("not_text", "Expected text")
        if len(value) > max_length:
            raise _reject("too_long", message)
        return value

    return BeforeValidator(check)


def required_choice(options: list[dict], message: str) -> BeforeValidator:
    """One of the option IDs."""
    valid = option_ids(options)

    def check(value: Any) -> str:
        if not isinstance(value, str) or value not in valid:
            raise _reject("choice", message)
        return value

    return BeforeValidator(check)


def optional_choice(options: list[dict]) -> BeforeValidator:
    """Missing, or one of the option IDs."""
    valid = option_ids(options)

    def check(value: Any) -> str | None:
        if value is None:
            return None
        if not isinstance(value, str) or value not in valid:
            raise _reject("choice", "Invalid selection")
        return value

    return BeforeValidator(check)


def choice_list(options: list[dict], min_items: int, message: str) -> BeforeValidator:
    """List of option IDs with at least min_items entries."""
    valid = option_ids(options)

    def check(value: Any) -> list[str]:
        if not isinstance(value, (list, tuple)) or len(value) < min_items:
            raise _reject("too_short", message)
        unknown = [v for v in value if not isinstance(v, str) or v not in valid]
        if unknown:
            logger.debug(f"Rejected unknown options: {unknown}")
            raise _reject("choice", "Invalid selection")
        return list(value)

    return BeforeValidator(check)


def optional_flag() -> BeforeValidator:
    """Missing, or a real boolean."""

    def check(value: Any) -> bool | None:
        if value is None or isinstance(value, bool):
            return value
        raise _reject("not_bool", "Expected true or false")

    return BeforeValidator(check)


def optional_url() -> BeforeValidator:
    """Missing, empty, or an absolute URL."""

    def check(value: Any) -> str | None:
        if value is None or value == "":
            return value
        if not isinstance(value, str):
            raise _reject("url", "Invalid url")
        try:
            _url_adapter.validate_python(value)
        except ValidationError:
            raise _reject("url", "Invalid url") from None
        return value

    return BeforeValidator(check)


# =============================================================================
# Step Forms
# =============================================================================


class StepForm(BaseModel):
    """
    Base for step rule-sets.

    Extra keys are ignored: every step validates against the whole form data
    and only looks at its own fields.
    """

    model_config = ConfigDict(extra="ignore", validate_default=True)

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(cls.model_fields)


class NameStep(StepForm):
    """Step 1: who you are."""

    first_name: Annotated[str | None, required_text("First name", 50)] = None
    last_name: Annotated[str | None, required_text("Last name", 50)] = None


class TimezoneStep(StepForm):
    """Step 2: where you are."""

    timezone: Annotated[str | None, required_choice(TIMEZONE_OPTIONS, "Please select a timezone")] = None
    is_georgia_resident: Annotated[bool | None, optional_flag()] = None


class PrimaryGoalStep(StepForm):
    primary_goal: Annotated[
        str | None, required_choice(PRIMARY_GOAL_OPTIONS, "Please select your primary goal")
    ] = None


class InterestsStep(StepForm):
    interests: Annotated[
        list[str] | None,
        choice_list(INTERESTS_OPTIONS, 1, "Please select at least one interest"),
    ] = None


class MembershipTierStep(StepForm):
    membership_tier: Annotated[str | None, optional_choice(MEMBERSHIP_TIER_OPTIONS)] = None


class ProjectStatusStep(StepForm):
    working_on_project: Annotated[
        str | None, required_choice(PROJECT_STATUS_OPTIONS, "Please select your project status")
    ] = None


class ProjectDescriptionStep(StepForm):
    project_description: Annotated[
        str | None, optional_text(1000, "Description must be 1000 characters or less")
    ] = None


class TechnicalLevelStep(StepForm):
    technical_level: Annotated[
        str | None, required_choice(TECHNICAL_LEVEL_OPTIONS, "Please select your technical level")
    ] = None


class CommunityHopesStep(StepForm):
    community_hopes: Annotated[
        list[str] | None,
        choice_list(COMMUNITY_HOPES_OPTIONS, 1, "Please select at least one option"),
    ] = None


class TimeCommitmentStep(StepForm):
    time_commitment: Annotated[str | None, optional_choice(TIME_COMMITMENT_OPTIONS)] = None


class SuccessDefinitionStep(StepForm):
    success_definition: Annotated[
        str | None, optional_text(500, "Response must be 500 characters or less")
    ] = None


class AvatarStep(StepForm):
    """Last step: profile picture (optional; uploads happen elsewhere)."""

    avatar_url: Annotated[str | None, optional_url()] = None
