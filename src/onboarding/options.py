"""
Onboarding Option Catalog.

Finite choice sets for single- and multi-select steps, with display labels.
Step forms validate against the ID sets; hosts render the label lists.
"""

import os


PRIMARY_GOAL_OPTIONS = [
    {"id": "build_startup", "label": "Build a startup or indie product"},
    {"id": "career_transition", "label": "Transition into AI/tech career"},
    {"id": "upskill_current_role", "label": "Upskill for my current role"},
    {"id": "learn_ai_fundamentals", "label": "Learn AI fundamentals"},
    {"id": "find_collaborators", "label": "Find collaborators or co-founders"},
    {"id": "network_community", "label": "Network and be part of a community"},
    {"id": "explore_curious", "label": "Just exploring / curious"},
]

INTERESTS_OPTIONS = [
    {"id": "ai_fundamentals", "label": "AI fundamentals & concepts"},
    {"id": "building_agents", "label": "Building AI agents"},
    {"id": "prompt_engineering", "label": "Prompt engineering"},
    {"id": "llm_applications", "label": "LLM applications"},
    {"id": "machine_learning", "label": "Machine learning"},
    {"id": "software_engineering", "label": "Software engineering"},
    {"id": "product_design", "label": "Product design & UX"},
    {"id": "startups_entrepreneurship", "label": "Startups & entrepreneurship"},
    {"id": "no_code_tools", "label": "No-code/low-code AI tools"},
    {"id": "research_papers", "label": "AI research & papers"},
]

PROJECT_STATUS_OPTIONS = [
    {"id": "yes_actively", "label": "Yes - actively building"},
    {"id": "yes_early", "label": "Yes - early stages / ideation"},
    {"id": "looking_for_ideas", "label": "No - looking for project ideas"},
    {"id": "not_right_now", "label": "No - not right now"},
]

# Statuses that make the project description step relevant
ACTIVE_PROJECT_STATUSES = ("yes_actively", "yes_early")

TECHNICAL_LEVEL_OPTIONS = [
    {"id": "no_experience", "label": "No technical experience"},
    {"id": "some_exposure", "label": "Some exposure (used ChatGPT, tried tutorials)"},
    {"id": "intermediate", "label": "Intermediate (can code, built small projects)"},
    {"id": "advanced", "label": "Advanced (professional developer / ML engineer)"},
]

COMMUNITY_HOPES_OPTIONS = [
    {"id": "accountability", "label": "Accountability & motivation"},
    {"id": "mentorship", "label": "Mentorship & guidance"},
    {"id": "networking", "label": "Networking & connections"},
    {"id": "feedback", "label": "Feedback on my work"},
    {"id": "collaboration", "label": "Finding collaborators"},
    {"id": "learning_resources", "label": "Learning resources & content"},
    {"id": "job_opportunities", "label": "Job opportunities"},
]

TIME_COMMITMENT_OPTIONS = [
    {"id": "1_5_hours", "label": "1-5 hours per week"},
    {"id": "5_10_hours", "label": "5-10 hours per week"},
    {"id": "10_20_hours", "label": "10-20 hours per week"},
    {"id": "20_plus_hours", "label": "20+ hours per week"},
]

MEMBERSHIP_TIER_OPTIONS = [
    {"id": "free", "label": "Free"},
    {"id": "club", "label": "Club (monthly)"},
    {"id": "club_annual", "label": "Club (annual)"},
]

TIMEZONE_OPTIONS = [
    # Americas
    {"id": "America/New_York", "label": "Eastern Time (ET)"},
    {"id": "America/Chicago", "label": "Central Time (CT)"},
    {"id": "America/Denver", "label": "Mountain Time (MT)"},
    {"id": "America/Los_Angeles", "label": "Pacific Time (PT)"},
    {"id": "America/Anchorage", "label": "Alaska Time (AKT)"},
    {"id": "America/Phoenix", "label": "Arizona (no DST)"},
    {"id": "America/Toronto", "label": "Toronto (ET)"},
    {"id": "America/Vancouver", "label": "Vancouver (PT)"},
    {"id": "America/Mexico_City", "label": "Mexico City (CST)"},
    {"id": "America/Sao_Paulo", "label": "Sao Paulo (BRT)"},
    {"id": "America/Buenos_Aires", "label": "Buenos Aires (ART)"},
    # Europe
    {"id": "Europe/London", "label": "London (GMT/BST)"},
    {"id": "Europe/Paris", "label": "Paris (CET)"},
    {"id": "Europe/Berlin", "label": "Berlin (CET)"},
    {"id": "Europe/Amsterdam", "label": "Amsterdam (CET)"},
    {"id": "Europe/Madrid", "label": "Madrid (CET)"},
    {"id": "Europe/Rome", "label": "Rome (CET)"},
    {"id": "Europe/Zurich", "label": "Zurich (CET)"},
    {"id": "Europe/Stockholm", "label": "Stockholm (CET)"},
    {"id": "Europe/Warsaw", "label": "Warsaw (CET)"},
    {"id": "Europe/Moscow", "label": "Moscow (MSK)"},
    # Asia & Pacific
    {"id": "Asia/Dubai", "label": "Dubai (GST)"},
    {"id": "Asia/Kolkata", "label": "India (IST)"},
    {"id": "Asia/Singapore", "label": "Singapore (SGT)"},
    {"id": "Asia/Hong_Kong", "label": "Hong Kong (HKT)"},
    {"id": "Asia/Shanghai", "label": "Shanghai (CST)"},
    {"id": "Asia/Tokyo", "label": "Tokyo (JST)"},
    {"id": "Asia/Seoul", "label": "Seoul (KST)"},
    {"id": "Asia/Bangkok", "label": "Bangkok (ICT)"},
    {"id": "Asia/Jakarta", "label": "Jakarta (WIB)"},
    # Oceania
    {"id": "Australia/Sydney", "label": "Sydney (AEST)"},
    {"id": "Australia/Melbourne", "label": "Melbourne (AEST)"},
    {"id": "Australia/Brisbane", "label": "Brisbane (AEST, no DST)"},
    {"id": "Australia/Perth", "label": "Perth (AWST)"},
    {"id": "Pacific/Auckland", "label": "Auckland (NZST)"},
    # Africa
    {"id": "Africa/Johannesburg", "label": "Johannesburg (SAST)"},
    {"id": "Africa/Cairo", "label": "Cairo (EET)"},
    {"id": "Africa/Lagos", "label": "Lagos (WAT)"},
    {"id": "Africa/Nairobi", "label": "Nairobi (EAT)"},
]


def option_ids(options: list[dict]) -> frozenset[str]:
    """IDs of an option list, for membership checks."""
    return frozenset(o["id"] for o in options)


VALID_TIMEZONES = option_ids(TIMEZONE_OPTIONS)


def detect_user_timezone(default: str | None = None) -> str:
    """
    Best guess at the user's timezone.

    Uses the TZ environment variable when it names a timezone we offer,
    otherwise the configured default.
    """
    detected = os.environ.get("TZ", "").strip().lstrip(":")
    if detected in VALID_TIMEZONES:
        return detected
    if default is None:
        from .config import get_settings

        default = get_settings().default_timezone
    return default


def get_option_label(options: list[dict], value: str) -> str:
    """Display label for a value, or the value itself if unknown."""
    for option in options:
        if option["id"] == value:
            return option["label"]
    return value


def get_all_options() -> dict:
    """
    Get every option list for frontend rendering.

    Keyed by the field each list populates.
    """
    return {
        "timezone": TIMEZONE_OPTIONS,
        "primary_goal": PRIMARY_GOAL_OPTIONS,
        "interests": INTERESTS_OPTIONS,
        "membership_tier": MEMBERSHIP_TIER_OPTIONS,
        "working_on_project": PROJECT_STATUS_OPTIONS,
        "technical_level": TECHNICAL_LEVEL_OPTIONS,
        "community_hopes": COMMUNITY_HOPES_OPTIONS,
        "time_commitment": TIME_COMMITMENT_OPTIONS,
    }
