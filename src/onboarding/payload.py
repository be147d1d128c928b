"""
Onboarding Completion Payload.

Shapes the finished form data into the profile update the platform expects:
profile columns at the top level, every other answer under
``registration_details``.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

# Answers stored as profile columns rather than registration details
PROFILE_FIELDS = ("first_name", "last_name", "avatar_url")


@dataclass
class CompletionPayload:
    """
    Profile update sent when onboarding completes.

    New members start pending admin approval.
    """
    first_name: str = ""
    last_name: str = ""
    display_name: str = ""
    avatar_url: str | None = None
    registration_details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


def build_completion_payload(
    data: dict[str, Any],
    fallback_avatar_url: str | None = None,
    now: datetime | None = None,
) -> CompletionPayload:
    """
    Build the completion payload from validated form data.

    Args:
        data: Complete form data
        fallback_avatar_url: Identity-provider avatar used if none was set
        now: Completion time (defaults to current UTC time)
    """
    now = now or datetime.now(timezone.utc)
    first_name = data.get("first_name") or ""
    last_name = data.get("last_name") or ""

    details = {k: v for k, v in data.items() if k not in PROFILE_FIELDS}
    details.update({
        "is_completed": True,
        "onboarding_completed_at": now.isoformat(),
        "pending_approval": True,
    })

    return CompletionPayload(
        first_name=first_name,
        last_name=last_name,
        display_name=" ".join(part for part in (first_name, last_name) if part),
        avatar_url=data.get("avatar_url") or fallback_avatar_url or None,
        registration_details=details,
    )
