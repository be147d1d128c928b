"""
Pytest configuration and fixtures for onboarding tests.
"""

import os
from typing import Annotated

import pytest

# Keep the developer's environment out of the tests
for _key in [k for k in os.environ if k.startswith("ONBOARDING_")]:
    del os.environ[_key]

from onboarding import persistence as persistence_module
from onboarding.config import get_settings
from onboarding.forms import StepForm, required_choice, required_text
from onboarding.persistence import MemoryPersistence
from onboarding.schema import StepDefinition, StepSchema, always, field_in, never


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    """Fresh settings, no TZ guess, empty process-local draft store."""
    monkeypatch.delenv("TZ", raising=False)
    get_settings.cache_clear()
    persistence_module._memory_store.clear()
    yield
    get_settings.cache_clear()
    persistence_module._memory_store.clear()


# ---------------------------------------------------------------------------
# Small schemas for engine tests
# ---------------------------------------------------------------------------

MODE_OPTIONS = [{"id": "basic", "label": "Basic"}, {"id": "advanced", "label": "Advanced"}]


class ModeStep(StepForm):
    mode: Annotated[str | None, required_choice(MODE_OPTIONS, "Please pick a mode")] = None


class DetailsStep(StepForm):
    details: Annotated[str | None, required_text("Details", 100)] = None


class FinishStep(StepForm):
    answer: Annotated[str | None, required_text("Answer", 100)] = None


@pytest.fixture
def store() -> dict[str, str]:
    """Isolated backing dict for MemoryPersistence."""
    return {}


@pytest.fixture
def persistence(store) -> MemoryPersistence:
    return MemoryPersistence("test_wizard", store)


@pytest.fixture
def hidden_middle_schema() -> StepSchema:
    """3 steps, step 2 switched off."""
    return StepSchema([
        StepDefinition(1, "first"),
        StepDefinition(2, "second", is_visible=never),
        StepDefinition(3, "third"),
    ])


@pytest.fixture
def conditional_schema() -> StepSchema:
    """3 steps, step 2 shown only for advanced mode, step 3 needs an answer."""
    return StepSchema([
        StepDefinition(1, "mode"),
        StepDefinition(2, "details", form=DetailsStep, is_visible=field_in("mode", ["advanced"])),
        StepDefinition(3, "finish", form=FinishStep, is_visible=always),
    ])


@pytest.fixture
def gated_schema() -> StepSchema:
    """3 steps, each with a required field."""
    return StepSchema([
        StepDefinition(1, "mode", form=ModeStep),
        StepDefinition(2, "details", form=DetailsStep, is_visible=field_in("mode", ["advanced"])),
        StepDefinition(3, "finish", form=FinishStep),
    ])


# ---------------------------------------------------------------------------
# Default schema data
# ---------------------------------------------------------------------------


@pytest.fixture
def complete_answers() -> dict:
    """Answers that pass every step of the default schema."""
    return {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "timezone": "Europe/London",
        "is_georgia_resident": False,
        "primary_goal": "build_startup",
        "interests": ["building_agents", "llm_applications"],
        "working_on_project": "not_right_now",
        "technical_level": "advanced",
        "community_hopes": ["feedback"],
        "time_commitment": "5_10_hours",
        "success_definition": "Ship something people use",
        "avatar_url": "",
    }
