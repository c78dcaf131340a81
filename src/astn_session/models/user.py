"""Pydantic models for the athlete's user profile."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

TEMPORARY_EMAIL_PREFIX = "temp_"
TEMPORARY_EMAIL_DOMAIN = "astn.local"
ONBOARDING_TOTAL_STEPS = 4


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys for storage and the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuthMethod(str, Enum):
    EMAIL = "email"
    MAGIC_LINK = "magicLink"
    SOCIAL = "social"


class AthleteType(str, Enum):
    """Athlete category chosen in onboarding step 1."""

    PROFESSIONAL = "Professional Athlete"
    COLLEGE = "College Athlete"
    HIGH_SCHOOL = "High School Athlete"
    RETIRED = "Retired Athlete"
    AMATEUR = "Amateur Athlete"
    PARALYMPIC = "Paralympic Athlete"
    ESPORTS = "eSports Athlete"


class MindsetProfile(str, Enum):
    GROWTH = "Growth"
    LEGACY = "Legacy"
    SECURITY = "Security"


class Interest(str, Enum):
    """Interest areas offered in onboarding step 2."""

    FAMILY_AND_RELATIONSHIPS = "Family and Relationships"
    EDUCATION = "Education"
    MUSIC = "Music"
    TECHNOLOGY = "Technology"
    TRAVEL = "Travel"
    HEALTH_AND_WELLNESS = "Health and Wellness"
    INNOVATION = "Innovation"
    ART_AND_CULTURE = "Art and Culture"
    COMMERCE = "Commerce"
    FITNESS = "Fitness"
    ENTREPRENEURSHIP = "Entrepreneurship"
    SUSTAINABILITY = "Sustainability"
    ANIMAL_WELFARE = "Animal Welfare"
    FOOD_AND_COOKING = "Food and Cooking"
    COMMUNITY_ENGAGEMENT = "Community Engagement"
    ADVENTURE_AND_OUTDOOR = "Adventure and Outdoor Activities"
    MENTAL_HEALTH = "Mental Health"
    GAMING = "Gaming"
    FASHION = "Fashion"
    ENVIRONMENTAL_CONSERVATION = "Environmental Conservation"


class SkillLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class UserStage(str, Enum):
    ONBOARDING = "onboarding"
    ACTIVE = "active"
    DORMANT = "dormant"


class ContentType(str, Enum):
    STORY = "Story"
    TACTICAL = "Tactical"
    MIXED = "Mixed"


class AccountTier(str, Enum):
    FREEMIUM = "Freemium"
    PREMIUM = "Premium"
    TRIAL = "Trial"


class GameOutcome(str, Enum):
    SUCCESS = "success"
    FAIL = "fail"


class RewardType(str, Enum):
    MERCH = "Merch"
    EVENT = "Event"
    ASSET = "Asset"


class DeviceOS(str, Enum):
    IOS = "iOS"
    ANDROID = "android"


class Location(CamelModel):
    city: str
    state: Optional[str] = None
    country: str


class OnboardingState(CamelModel):
    """Progress through the onboarding wizard."""

    survey_completed: bool = False
    completion_timestamp: Optional[datetime] = None
    current_step: int = Field(default=1, ge=1)
    steps_completed: int = 0
    total_steps: int = ONBOARDING_TOTAL_STEPS

    @model_validator(mode="after")
    def _check_progress(self) -> "OnboardingState":
        if not 0 <= self.steps_completed <= self.total_steps:
            raise ValueError(
                f"steps_completed must be between 0 and {self.total_steps}, "
                f"got {self.steps_completed}"
            )
        if self.survey_completed and self.steps_completed != self.total_steps:
            raise ValueError("a completed survey must have every step completed")
        return self

    def advance_past(self, step: int) -> None:
        """Record that ``step`` was submitted; never moves progress backwards."""
        step = min(step, self.total_steps)
        self.steps_completed = max(self.steps_completed, step)
        self.current_step = max(self.current_step, step + 1)

    def complete(self, now: datetime) -> None:
        self.steps_completed = self.total_steps
        self.current_step = max(self.current_step, self.total_steps + 1)
        if not self.survey_completed:
            self.survey_completed = True
            self.completion_timestamp = now


class ModulesCompleted(CamelModel):
    wealth: int = 0
    brand: int = 0
    last_completed: Optional[datetime] = None


class GameSession(CamelModel):
    """A single played game or workout module."""

    module_id: str
    start_time: datetime
    duration: int  # seconds
    score: int
    lives_used: Optional[int] = None
    outcome: GameOutcome


class RetentionMetrics(CamelModel):
    streak_days: int = 0
    session_frequency: float = 0  # avg sessions per week
    day1_retention: bool = False
    last_session_date: Optional[datetime] = None


class SmartSpendScale(CamelModel):
    avg_balance_time: Optional[float] = None
    instability_events: Optional[int] = None


class AwarenessTracker(CamelModel):
    accuracy: Optional[float] = None


class GamePerformance(CamelModel):
    smart_spend_scale: Optional[SmartSpendScale] = None
    awareness_tracker: Optional[AwarenessTracker] = None


class Reward(CamelModel):
    id: str
    type: RewardType
    redeemed_at: datetime


class PointsTransaction(CamelModel):
    amount: int
    reason: str
    timestamp: datetime


class PointsData(CamelModel):
    """Point balance plus the history that produced it."""

    balance: int = 0
    total_earned: int = 0
    burn_rate: float = 0
    history: list[PointsTransaction] = Field(default_factory=list)
    rewards_redeemed: list[Reward] = Field(default_factory=list)


class PremiumConversion(CamelModel):
    date: datetime
    trigger: str


class Purchase(CamelModel):
    item_id: str
    amount: float
    purchase_date: datetime


class DeviceInfo(CamelModel):
    os: DeviceOS
    version: str


class NotificationEvent(CamelModel):
    type: str
    opened: bool
    sent_at: datetime


class UserProfile(CamelModel):
    """
    The app's own representation of an athlete's account.

    Created with minimal fields after authentication and filled in
    progressively by the onboarding steps.
    """

    # Core identity
    id: str
    email: str
    name: Optional[str] = None
    auth_method: AuthMethod = AuthMethod.EMAIL
    created_at: datetime
    last_active: datetime

    # Demographic and athlete data
    athlete_type: Optional[AthleteType] = None
    sport: Optional[str] = None
    level: Optional[str] = None
    years_at_level: Optional[int] = None
    age: Optional[int] = None
    location: Optional[Location] = None

    # Psychographic segmentation
    mindset_profile: Optional[MindsetProfile] = None
    interests: Optional[set[Interest]] = None
    initial_skill_level: Optional[SkillLevel] = None

    # Journey state
    onboarding: OnboardingState = Field(default_factory=OnboardingState)
    current_stage: UserStage = UserStage.ONBOARDING
    modules_completed: Optional[ModulesCompleted] = None
    game_sessions: Optional[list[GameSession]] = None
    retention_metrics: Optional[RetentionMetrics] = None

    # Behavioral and gamification
    game_performance: Optional[GamePerformance] = None
    points: Optional[PointsData] = None
    churn_risk: Optional[int] = Field(default=None, ge=0, le=100)
    preferred_content_type: Optional[ContentType] = None

    # Monetization and system
    account_tier: AccountTier = AccountTier.FREEMIUM
    premium_conversion: Optional[PremiumConversion] = None
    purchase_history: Optional[list[Purchase]] = None
    device: Optional[DeviceInfo] = None
    notifications: Optional[list[NotificationEvent]] = None
    profile_picture_url: Optional[str] = None

    is_temporary: bool = False

    @classmethod
    def new(
        cls,
        user_id: str,
        email: str,
        now: datetime,
        name: Optional[str] = None,
        auth_method: AuthMethod = AuthMethod.EMAIL,
    ) -> "UserProfile":
        """Minimal profile for a freshly authenticated user."""
        return cls(
            id=user_id,
            email=email,
            name=name,
            auth_method=auth_method,
            created_at=now,
            last_active=now,
        )

    @classmethod
    def temporary(cls, now: datetime) -> "UserProfile":
        """Placeholder profile used when no durable profile exists yet."""
        user_id = str(uuid.uuid4())
        profile = cls.new(
            user_id, f"{TEMPORARY_EMAIL_PREFIX}{user_id}@{TEMPORARY_EMAIL_DOMAIN}", now
        )
        profile.is_temporary = True
        return profile

    @property
    def is_temporary_profile(self) -> bool:
        return self.is_temporary or self.email.startswith(TEMPORARY_EMAIL_PREFIX)

    def touch(self, now: datetime) -> None:
        self.last_active = now

    def complete_onboarding(self, now: datetime) -> None:
        self.onboarding.complete(now)
        self.current_stage = UserStage.ACTIVE

    def add_points(self, amount: int, reason: str, now: datetime) -> PointsData:
        """Credit points and record the transaction."""
        if self.points is None:
            self.points = PointsData()
        self.points.balance += amount
        self.points.total_earned += amount
        self.points.history.append(PointsTransaction(amount=amount, reason=reason, timestamp=now))
        return self.points

    def record_game_session(self, session: GameSession) -> None:
        if self.game_sessions is None:
            self.game_sessions = []
        self.game_sessions.append(session)

    def to_snapshot(self) -> dict:
        """JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_snapshot(cls, data: dict) -> "UserProfile":
        return cls.model_validate(data)
