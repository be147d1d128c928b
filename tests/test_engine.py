"""
Tests for the onboarding form engine.

Covers the navigation state machine, error lifecycle, draft persistence,
and the completion handshake:
- advance/retreat land on the nearest visible slot, clamped to [1, N]
- errors appear only after failed validation and clear on any edit
- drafts restore beneath identity overrides and survive handler failures
- busy/complete guards reject intents
"""

import asyncio
from enum import Enum
from unittest.mock import AsyncMock

import pytest
from pydantic_core import PydanticSerializationError

from onboarding.engine import FormEngine
from onboarding.errors import StepOutOfRangeError, WizardBusyError, WizardCompleteError
from onboarding.persistence import MemoryPersistence
from onboarding.schema import build_step_schema
from onboarding.state import DraftSnapshot


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


class Mode(Enum):
    BASIC = "basic"
    ADVANCED = "advanced"


def _engine(schema, persistence=None, **kwargs) -> FormEngine:
    kwargs.setdefault("defaults", {})
    kwargs.setdefault("revalidate_on_submit", False)
    return FormEngine(schema=schema, persistence=persistence, **kwargs)


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:

    def test_hidden_step_progress(self, hidden_middle_schema):
        engine = _engine(hidden_middle_schema)
        assert engine.advance() is True
        assert engine.current_step_id == 3
        assert engine.visible_step_number == 2
        assert engine.total_visible_steps == 2

    def test_conditional_step_skipped_then_shown(self, conditional_schema):
        engine = _engine(conditional_schema)
        assert engine.advance() is True
        assert engine.current_step_id == 3

        engine = _engine(conditional_schema)
        engine.update_field("mode", "advanced")
        assert engine.advance() is True
        assert engine.current_step_id == 2

    def test_submit_with_missing_required_field(self, conditional_schema):
        handler = AsyncMock()
        engine = _engine(conditional_schema, completion_handler=handler)
        engine.goto(3)

        assert _run(engine.submit()) is False
        assert engine.current_step_id == 3
        assert engine.errors == {"answer": "Answer is required"}
        assert engine.submitting is False
        assert engine.complete is False
        handler.assert_not_awaited()

    def test_completion_failure_keeps_draft(self, conditional_schema, persistence):
        handler = AsyncMock(side_effect=RuntimeError("backend down"))
        engine = _engine(conditional_schema, persistence, completion_handler=handler)
        engine.goto(3)
        engine.update_field("answer", "42")

        with pytest.raises(RuntimeError, match="backend down"):
            _run(engine.submit())

        assert engine.submitting is False
        assert engine.complete is False
        assert engine.current_step_id == 3
        assert persistence.read() is not None

        # Retry from the same place with the same data
        handler.side_effect = None
        assert _run(engine.submit()) is True
        assert engine.complete is True
        assert handler.await_count == 2

    def test_unknown_draft_field_retained(self, conditional_schema, persistence, store):
        store["test_wizard"] = '{"current_step_id": 3, "data": {"mode": "basic", "legacy_field": "x"}}'
        engine = _engine(conditional_schema, persistence)

        assert engine.current_step_id == 3
        assert engine.data["legacy_field"] == "x"
        engine.update_field("answer", "ok")
        assert persistence.read().data["legacy_field"] == "x"


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


class TestNavigation:

    def test_advance_blocked_by_validation(self, gated_schema):
        engine = _engine(gated_schema)
        assert engine.advance() is False
        assert engine.current_step_id == 1
        assert engine.errors == {"mode": "Please pick a mode"}

    def test_advance_lands_on_smallest_visible(self, gated_schema):
        engine = _engine(gated_schema)
        engine.update_field("mode", "basic")
        assert engine.advance() is True
        assert engine.current_step_id == 3

    def test_advance_on_last_step_stays(self, conditional_schema):
        engine = _engine(conditional_schema)
        engine.goto(3)
        engine.update_field("answer", "done")
        assert engine.advance() is True
        assert engine.current_step_id == 3

    def test_retreat_mirrors_advance(self, conditional_schema):
        engine = _engine(conditional_schema)
        engine.goto(3)
        engine.retreat()
        assert engine.current_step_id == 1

        engine.update_field("mode", "advanced")
        engine.goto(3)
        engine.retreat()
        assert engine.current_step_id == 2

    def test_retreat_clamps_at_first(self, conditional_schema):
        engine = _engine(conditional_schema)
        engine.retreat()
        assert engine.current_step_id == 1

    def test_later_answer_reveals_earlier_step(self, conditional_schema):
        engine = _engine(conditional_schema)
        engine.goto(3)
        assert engine.total_visible_steps == 2
        engine.update_field("mode", "advanced")
        assert engine.total_visible_steps == 3
        assert engine.visible_step_number == 3
        engine.retreat()
        assert engine.current_step_id == 2

    def test_hidden_answers_are_kept(self, conditional_schema):
        engine = _engine(conditional_schema)
        engine.update_fields({"mode": "advanced", "details": "lots"})
        engine.update_field("mode", "basic")
        assert engine.data["details"] == "lots"
        assert engine.schema.is_visible(2, engine.data) is False

    def test_goto_out_of_range(self, conditional_schema):
        engine = _engine(conditional_schema)
        with pytest.raises(StepOutOfRangeError):
            engine.goto(0)
        with pytest.raises(StepOutOfRangeError):
            engine.goto(4)
        assert engine.current_step_id == 1

    def test_validate_current_step(self, gated_schema):
        engine = _engine(gated_schema)
        assert engine.validate_current_step() is False
        assert engine.errors
        engine.state.data["mode"] = "basic"
        assert engine.validate_current_step() is True
        assert engine.errors == {}
        assert engine.current_step_id == 1


# ---------------------------------------------------------------------------
# Field updates and errors
# ---------------------------------------------------------------------------


class TestFieldUpdates:

    def test_update_clears_errors(self, gated_schema):
        engine = _engine(gated_schema)
        engine.advance()
        assert engine.errors
        engine.update_field("unrelated", "x")
        assert engine.errors == {}

    def test_update_is_idempotent(self, gated_schema):
        engine = _engine(gated_schema)
        engine.advance()
        engine.update_field("mode", "basic")
        first = engine.data
        engine.advance()
        engine.goto(1)
        engine.state.errors = {"mode": "stale"}
        engine.update_field("mode", "basic")
        assert engine.data == first
        assert engine.errors == {}

    def test_update_copies_value(self, gated_schema):
        engine = _engine(gated_schema)
        tags = ["a"]
        engine.update_field("tags", tags)
        tags.append("b")
        assert engine.data["tags"] == ["a"]

    def test_update_fields_all_or_nothing(self, gated_schema):
        engine = _engine(gated_schema)
        with pytest.raises(TypeError):
            engine.update_fields({"mode": "basic", "": "oops"})
        assert "mode" not in engine.data

    def test_enum_value_stored_as_its_value(self, gated_schema, persistence):
        engine = _engine(gated_schema, persistence)
        engine.update_field("mode", Mode.ADVANCED)
        assert engine.data == {"mode": "advanced"}
        assert persistence.read().data == {"mode": "advanced"}
        assert engine.advance() is True
        assert engine.current_step_id == 2

    def test_unserializable_value_leaves_state_untouched(self, gated_schema, persistence):
        engine = _engine(gated_schema, persistence)
        engine.update_field("mode", "basic")
        engine.state.errors = {"mode": "stale"}

        with pytest.raises(PydanticSerializationError):
            engine.update_field("mode", object())
        with pytest.raises(PydanticSerializationError):
            engine.update_fields({"details": "x", "blob": object()})

        assert engine.data == {"mode": "basic"}
        assert engine.errors == {"mode": "stale"}
        assert persistence.read().data == {"mode": "basic"}

    def test_bad_field_name(self, gated_schema):
        engine = _engine(gated_schema)
        with pytest.raises(TypeError):
            engine.update_field("", "x")

    def test_step_view_scopes_errors(self, gated_schema):
        engine = _engine(gated_schema)
        engine.state.errors = {"mode": "Please pick a mode", "answer": "other step"}
        view = engine.step_view()
        assert view.key == "mode"
        assert view.values == {"mode": None}
        assert view.errors == {"mode": "Please pick a mode"}


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class TestDrafts:

    def test_every_mutation_is_saved(self, conditional_schema, persistence):
        engine = _engine(conditional_schema, persistence)
        engine.update_field("mode", "advanced")
        assert persistence.read().data == {"mode": "advanced"}
        engine.advance()
        assert persistence.read().current_step_id == 2
        engine.retreat()
        assert persistence.read().current_step_id == 1

    def test_failed_advance_does_not_touch_draft(self, gated_schema, persistence):
        engine = _engine(gated_schema, persistence)
        engine.advance()
        assert persistence.read() is None

    def test_restore_round_trip(self, conditional_schema, persistence):
        engine = _engine(conditional_schema, persistence)
        engine.update_field("mode", "advanced")
        engine.advance()
        engine.update_field("details", "lots")

        restored = _engine(conditional_schema, MemoryPersistence("test_wizard", persistence.store))
        assert restored.current_step_id == engine.current_step_id
        assert restored.data == engine.data
        assert restored.errors == {}
        assert restored.submitting is False
        assert restored.complete is False

    def test_overrides_beat_draft_for_identity_fields(self, persistence):
        schema = build_step_schema(pricing_enabled=False)
        persistence.write(DraftSnapshot(4, {"first_name": "Old", "last_name": "Name", "interests": ["x"]}))
        engine = _engine(schema, persistence, overrides={"first_name": "Ada", "last_name": ""})
        assert engine.current_step_id == 4
        assert engine.data["first_name"] == "Ada"
        assert engine.data["last_name"] == "Name"
        assert engine.data["interests"] == ["x"]

    def test_out_of_range_draft_step_is_clamped(self, conditional_schema, persistence):
        persistence.write(DraftSnapshot(99, {"mode": "basic"}))
        engine = _engine(conditional_schema, persistence)
        assert engine.current_step_id == 3

    def test_corrupt_draft_falls_back(self, conditional_schema, persistence, store):
        store["test_wizard"] = "]]]"
        engine = _engine(conditional_schema, persistence, defaults={"mode": "basic"})
        assert engine.current_step_id == 1
        assert engine.data == {"mode": "basic"}

    def test_reset(self, conditional_schema, persistence):
        engine = _engine(conditional_schema, persistence, defaults={"seed": 1})
        engine.update_field("mode", "advanced")
        engine.advance()
        engine.reset()
        assert engine.current_step_id == 1
        assert engine.data == {"seed": 1}
        assert persistence.read() is None


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


class TestSubmit:

    def test_success_completes_and_clears_draft(self, conditional_schema, persistence):
        handler = AsyncMock()
        engine = _engine(conditional_schema, persistence, completion_handler=handler)
        engine.goto(3)
        engine.update_field("answer", "42")

        assert _run(engine.submit()) is True
        assert engine.complete is True
        assert engine.submitting is False
        assert persistence.read() is None
        handler.assert_awaited_once_with({"answer": "42"})

    def test_handler_gets_a_copy(self, conditional_schema):
        seen = {}

        async def handler(data):
            data["answer"] = "mutated"
            seen.update(data)

        engine = _engine(conditional_schema, completion_handler=handler)
        engine.goto(3)
        engine.update_field("answer", "42")
        _run(engine.submit())
        assert engine.data["answer"] == "42"
        assert seen["answer"] == "mutated"

    def test_no_handler(self, conditional_schema):
        engine = _engine(conditional_schema)
        engine.goto(3)
        engine.update_field("answer", "42")
        assert _run(engine.submit()) is True
        assert engine.complete is True

    def test_intents_rejected_while_submitting(self, conditional_schema):
        rejected = []

        async def handler(data):
            assert engine.submitting is True
            assert engine.can_advance is False
            for intent in (engine.advance, engine.retreat, engine.reset, lambda: engine.update_field("x", 1)):
                with pytest.raises(WizardBusyError):
                    intent()
                rejected.append(intent)
            with pytest.raises(WizardBusyError):
                await engine.submit()

        engine = _engine(conditional_schema, completion_handler=handler)
        engine.goto(3)
        engine.update_field("answer", "42")
        assert _run(engine.submit()) is True
        assert len(rejected) == 4
        assert "x" not in engine.data

    def test_intents_rejected_after_complete(self, conditional_schema, persistence):
        engine = _engine(conditional_schema, persistence)
        engine.goto(3)
        engine.update_field("answer", "42")
        _run(engine.submit())

        with pytest.raises(WizardCompleteError):
            engine.update_field("answer", "again")
        with pytest.raises(WizardCompleteError):
            engine.retreat()
        with pytest.raises(WizardCompleteError):
            _run(engine.submit())
        assert persistence.read() is None

    def test_revalidate_on_submit(self, gated_schema, persistence):
        handler = AsyncMock()
        engine = _engine(gated_schema, persistence, completion_handler=handler, revalidate_on_submit=True)
        engine.goto(3)
        engine.update_field("answer", "42")

        assert _run(engine.submit()) is False
        assert engine.current_step_id == 1
        assert engine.errors == {"mode": "Please pick a mode"}
        assert persistence.read().current_step_id == 1
        handler.assert_not_awaited()

    def test_revalidate_setting(self, monkeypatch, gated_schema):
        monkeypatch.setenv("ONBOARDING_REVALIDATE_ON_SUBMIT", "1")
        engine = FormEngine(schema=gated_schema, defaults={})
        assert engine.revalidate_on_submit is True

    def test_proceed(self, conditional_schema):
        handler = AsyncMock()
        engine = _engine(conditional_schema, completion_handler=handler)
        assert _run(engine.proceed()) is True
        assert engine.current_step_id == 3
        assert engine.can_submit is True
        engine.update_field("answer", "42")
        assert _run(engine.proceed()) is True
        assert engine.complete is True
        handler.assert_awaited_once()


class TestCapabilities:

    def test_first_and_last(self, conditional_schema):
        engine = _engine(conditional_schema)
        assert engine.is_first_step and not engine.can_go_back
        assert engine.can_advance and not engine.can_submit
        engine.goto(3)
        assert engine.is_last_step and engine.can_go_back
        assert engine.can_submit and not engine.can_advance

    def test_should_show_current_step(self, conditional_schema):
        engine = _engine(conditional_schema)
        engine.goto(2)
        assert engine.should_show_current_step is False
        engine.update_field("mode", "advanced")
        assert engine.should_show_current_step is True


class TestDefaultFlow:
    """End to end over the twelve-slot schema."""

    def test_walk_to_completion(self, complete_answers, persistence):
        handler = AsyncMock()
        engine = FormEngine(
            schema=build_step_schema(pricing_enabled=False),
            persistence=persistence,
            completion_handler=handler,
            overrides={"first_name": "Ada"},
        )
        assert engine.data["first_name"] == "Ada"
        assert engine.data["membership_tier"] == "club"

        engine.update_fields(complete_answers)
        visited = [engine.current_step_id]
        while not engine.is_last_step:
            assert engine.advance() is True
            visited.append(engine.current_step_id)

        assert visited == [1, 2, 3, 4, 6, 8, 9, 10, 11, 12]
        assert engine.visible_step_number == engine.total_visible_steps == 10
        assert _run(engine.submit()) is True
        submitted = handler.await_args.args[0]
        assert submitted["interests"] == ["building_agents", "llm_applications"]
        assert submitted["membership_tier"] == "club"
