"""
Onboarding State Management.

FormState is the engine's in-memory state. DraftSnapshot is the part of it
that survives a reload: the current step and the answers so far.
"""

import copy
import json
from dataclasses import dataclass, field
from typing import Any

from .options import detect_user_timezone

FormData = dict[str, Any]

# Identity-derived fields: a non-blank override always beats the draft
OVERRIDE_FIELDS = ("first_name", "last_name", "avatar_url")


@dataclass
class FormState:
    """
    Wizard state.

    ``errors`` is only non-empty right after a failed validation.
    ``complete`` is terminal.
    """
    current_step_id: int = 1
    data: FormData = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
    submitting: bool = False
    complete: bool = False

    def to_snapshot(self) -> "DraftSnapshot":
        return DraftSnapshot(
            current_step_id=self.current_step_id,
            data=copy.deepcopy(self.data),
        )

    def to_dict(self) -> dict:
        """Serialize the full state (for hosts that render it)."""
        return {
            "current_step_id": self.current_step_id,
            "data": copy.deepcopy(self.data),
            "errors": dict(self.errors),
            "submitting": self.submitting,
            "complete": self.complete,
        }


@dataclass
class DraftSnapshot:
    """
    Persisted draft: ``{"current_step_id": int, "data": {...}}``.

    No version tag is stored. Unknown fields in ``data`` are kept as-is.
    """
    current_step_id: int = 1
    data: FormData = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"current_step_id": self.current_step_id, "data": self.data}

    @classmethod
    def from_dict(cls, raw: Any) -> "DraftSnapshot":
        """
        Deserialize a draft.

        Raises ValueError if the payload isn't a draft; a missing step id
        means step 1.
        """
        if not isinstance(raw, dict):
            raise ValueError(f"Draft must be an object, got {type(raw).__name__}")
        data = raw.get("data")
        if not isinstance(data, dict):
            raise ValueError("Draft has no data object")
        step_id = raw.get("current_step_id", 1)
        # bool is an int subclass; reject it explicitly
        if isinstance(step_id, bool) or not isinstance(step_id, int):
            raise ValueError(f"Draft step id is not an integer: {step_id!r}")
        return cls(current_step_id=step_id, data=data)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, json_str: str) -> "DraftSnapshot":
        return cls.from_dict(json.loads(json_str))


def default_form_data() -> FormData:
    """
    Hard-coded starting answers.

    Enum answers with no sensible default (primary goal, project status,
    technical level, time commitment) stay unset.
    """
    return {
        "first_name": "",
        "last_name": "",
        "avatar_url": "",
        "timezone": detect_user_timezone(),
        "is_georgia_resident": False,
        "interests": [],
        "membership_tier": "club",
        "project_description": "",
        "community_hopes": [],
        "success_definition": "",
    }


def merge_initial_data(
    defaults: FormData,
    overrides: FormData | None = None,
    draft: DraftSnapshot | None = None,
    override_fields: tuple[str, ...] = OVERRIDE_FIELDS,
) -> FormData:
    """
    Build the starting form data.

    Precedence: overrides > draft > defaults for override_fields (blank
    overrides don't count), draft > overrides > defaults for the rest.
    """
    overrides = overrides or {}
    data = {**copy.deepcopy(defaults), **copy.deepcopy(overrides)}
    if draft is None:
        return data

    data.update(copy.deepcopy(draft.data))
    for name in override_fields:
        if overrides.get(name):
            data[name] = copy.deepcopy(overrides[name])
    return data
