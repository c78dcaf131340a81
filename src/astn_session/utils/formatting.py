"""Formatting utilities for profile summaries."""

from typing import Any

from astn_session.models.user import UserProfile


def format_onboarding_progress(profile: UserProfile) -> str:
    """Render onboarding progress as e.g. '2/4 steps' or 'complete'."""
    onboarding = profile.onboarding
    if onboarding.survey_completed:
        return "complete"
    return f"{onboarding.steps_completed}/{onboarding.total_steps} steps"


def summarize_profile(profile: UserProfile) -> dict[str, Any]:
    """Compact, display-oriented view of a profile."""
    return {
        "id": profile.id,
        "email": profile.email,
        "name": profile.name,
        "account": "Temporary" if profile.is_temporary_profile else "Permanent",
        "stage": profile.current_stage.value,
        "onboarding": format_onboarding_progress(profile),
        "athlete_type": profile.athlete_type.value if profile.athlete_type else None,
        "sport": profile.sport,
        "age": profile.age,
        "interests": sorted(i.value for i in profile.interests) if profile.interests else [],
        "mindset": profile.mindset_profile.value if profile.mindset_profile else None,
        "points": profile.points.balance if profile.points else 0,
        "tier": profile.account_tier.value,
        "last_active": profile.last_active.isoformat(),
    }
