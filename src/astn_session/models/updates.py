"""Typed partial-update payloads sent to the profile backend."""

from datetime import datetime
from typing import Any, Optional

from astn_session.models.user import (
    AthleteType,
    CamelModel,
    ContentType,
    GameSession,
    Interest,
    MindsetProfile,
    ModulesCompleted,
    PointsData,
    RetentionMetrics,
    UserProfile,
    UserStage,
)


class OnboardingProgress(CamelModel):
    current_step: int
    steps_completed: int
    survey_completed: Optional[bool] = None
    completion_timestamp: Optional[datetime] = None


class ProfileUpdate(CamelModel):
    """Base for partial updates; only set fields are sent."""

    last_active: datetime

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Step1Update(ProfileUpdate):
    athlete_type: AthleteType
    sport: str
    age: Optional[int] = None
    onboarding: OnboardingProgress


class Step2Update(ProfileUpdate):
    interests: list[Interest]
    onboarding: OnboardingProgress


class Step3Update(ProfileUpdate):
    mindset_profile: MindsetProfile
    preferred_content_type: ContentType
    onboarding: OnboardingProgress


class CompletionUpdate(ProfileUpdate):
    current_stage: UserStage
    profile_picture_url: Optional[str] = None
    onboarding: OnboardingProgress


class ActivityUpdate(ProfileUpdate):
    points: Optional[PointsData] = None
    game_sessions: Optional[list[GameSession]] = None
    modules_completed: Optional[ModulesCompleted] = None
    retention_metrics: Optional[RetentionMetrics] = None


def progress_of(profile: UserProfile) -> OnboardingProgress:
    """Snapshot of a profile's onboarding progress for an update payload."""
    onboarding = profile.onboarding
    return OnboardingProgress(
        current_step=onboarding.current_step,
        steps_completed=onboarding.steps_completed,
        survey_completed=onboarding.survey_completed or None,
        completion_timestamp=onboarding.completion_timestamp,
    )
