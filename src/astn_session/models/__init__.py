"""Pydantic models for the ASTN session layer."""

from astn_session.models.user import (
    AccountTier,
    AthleteType,
    AuthMethod,
    ContentType,
    DeviceInfo,
    DeviceOS,
    GameOutcome,
    GamePerformance,
    GameSession,
    Interest,
    Location,
    MindsetProfile,
    ModulesCompleted,
    NotificationEvent,
    OnboardingState,
    PointsData,
    PointsTransaction,
    PremiumConversion,
    Purchase,
    RetentionMetrics,
    Reward,
    RewardType,
    SkillLevel,
    UserProfile,
    UserStage,
)
from astn_session.models.onboarding import (
    MAX_INTERESTS,
    InterestSelection,
    LearningGoal,
    profile_for_learning_goal,
)
from astn_session.models.updates import (
    ActivityUpdate,
    CompletionUpdate,
    ProfileUpdate,
    Step1Update,
    Step2Update,
    Step3Update,
)

__all__ = [
    # Profile
    "UserProfile",
    "OnboardingState",
    "AuthMethod",
    "AthleteType",
    "MindsetProfile",
    "Interest",
    "SkillLevel",
    "UserStage",
    "ContentType",
    "AccountTier",
    "Location",
    "ModulesCompleted",
    "GameSession",
    "GameOutcome",
    "RetentionMetrics",
    "GamePerformance",
    "PointsData",
    "PointsTransaction",
    "Reward",
    "RewardType",
    "PremiumConversion",
    "Purchase",
    "DeviceInfo",
    "DeviceOS",
    "NotificationEvent",
    # Onboarding
    "LearningGoal",
    "InterestSelection",
    "MAX_INTERESTS",
    "profile_for_learning_goal",
    # Updates
    "ProfileUpdate",
    "Step1Update",
    "Step2Update",
    "Step3Update",
    "CompletionUpdate",
    "ActivityUpdate",
]
