"""
Session Manager: owns the current user, authentication flags and onboarding.

All mutations of the current profile go through this class. Onboarding and
account operations are serialised with a lock; sign-out does not wait for
that lock and instead invalidates in-flight operations, whose results are
discarded when they arrive.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

import httpx

from astn_session.config import SessionSettings
from astn_session.errors import ProfileClientError, SessionError, SessionErrorKind
from astn_session.identity.base import AuthEvent, IdentityService, SignOutResult, UserIdentity
from astn_session.models.onboarding import MAX_INTERESTS, LearningGoal, profile_for_learning_goal
from astn_session.models.updates import (
    ActivityUpdate,
    CompletionUpdate,
    ProfileUpdate,
    Step1Update,
    Step2Update,
    Step3Update,
    progress_of,
)
from astn_session.models.user import (
    AthleteType,
    GameOutcome,
    GameSession,
    Interest,
    MindsetProfile,
    ModulesCompleted,
    RetentionMetrics,
    UserProfile,
    UserStage,
)
from astn_session.navigation import AppNavigationState
from astn_session.profile_client import ProfileClient
from astn_session.storage.session import SessionStorage
from astn_session.utils.dates import age_from_date_of_birth, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

WORKOUT_COMPLETION_POINTS = 15
PROFILE_PICTURE_STEP = 4


class SessionState(str, Enum):
    SIGNED_OUT = "signed_out"
    SIGNED_IN_NO_PROFILE = "signed_in_no_profile"
    ONBOARDING = "onboarding"
    ACTIVE = "active"


@dataclass
class _PendingSignUp:
    email: str
    password: str
    display_name: str


class SessionManager:
    """Orchestrates identity, remote profile and local snapshot for one user."""

    def __init__(
        self,
        identity: IdentityService,
        profile_client: ProfileClient,
        storage: SessionStorage,
        navigation: Optional[AppNavigationState] = None,
        settings: Optional[SessionSettings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.identity = identity
        self.profile_client = profile_client
        self.storage = storage
        self.navigation = navigation or AppNavigationState()
        self.settings = settings or SessionSettings()
        self._clock = clock

        self._current_user: Optional[UserProfile] = None
        self.is_authenticated = False
        self.is_onboarding = False

        # Bumped whenever the session ends; in-flight work compares against it
        self._generation = 0
        self._step_lock = asyncio.Lock()
        self._pending_sign_up: Optional[_PendingSignUp] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    # State

    @property
    def current_user(self) -> Optional[UserProfile]:
        """A copy of the current profile; mutate only through manager operations."""
        if self._current_user is None:
            return None
        return self._current_user.model_copy(deep=True)

    @property
    def state(self) -> SessionState:
        if self._current_user is None:
            if self.is_authenticated:
                return SessionState.SIGNED_IN_NO_PROFILE
            return SessionState.SIGNED_OUT
        if self._current_user.onboarding.survey_completed:
            return SessionState.ACTIVE
        return SessionState.ONBOARDING

    @property
    def step_in_flight(self) -> bool:
        """True while an onboarding or account update is being submitted."""
        return self._step_lock.locked()

    def is_temporary_user(self) -> bool:
        return self._current_user is not None and self._current_user.is_temporary_profile

    # Lifecycle

    async def start(self) -> Optional[UserProfile]:
        """Subscribe to identity events and restore any previous session."""
        if self._unsubscribe is None:
            self._unsubscribe = self.identity.events.subscribe(self._on_auth_event)
        return await self.restore_session()

    async def aclose(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.identity.aclose()
        await self.profile_client.aclose()

    async def _on_auth_event(self, event: AuthEvent) -> None:
        if event in (AuthEvent.SIGNED_OUT, AuthEvent.SESSION_EXPIRED):
            if self.is_authenticated or self._current_user is not None:
                logger.info("Identity reported %s; clearing session", event.value)
            await self._reset_to_signed_out()

    async def restore_session(self) -> Optional[UserProfile]:
        """
        Reconcile identity session, identity attributes and the local snapshot.

        Returns:
            The adopted profile, or None if no user is signed in
        """
        token = await asyncio.to_thread(self.storage.load_token)
        if token:
            self.identity.restore_session_token(token)

        session = await self.identity.current_session()
        if not session.is_signed_in:
            logger.info("No signed-in identity; starting signed out")
            await self._reset_to_signed_out()
            return None

        generation = self._generation
        snapshot = await asyncio.to_thread(self.storage.load_user)
        if snapshot is not None and session.user_id and snapshot.id == session.user_id:
            logger.info("Restored session for %s from local snapshot", snapshot.id)
            profile = snapshot
        else:
            try:
                attributes = await self._identity_call(self.identity.fetch_user_attributes())
            except SessionError as e:
                logger.warning("Could not fetch identity attributes: %s", e)
                attributes = {}
            profile = self._profile_from_attributes(session.user_id, attributes)
            logger.info("Synthesised profile for %s from identity attributes", profile.id)

        if generation != self._generation:
            return None
        self.is_authenticated = True
        self._adopt(profile)
        await self._persist(profile)
        return self.current_user

    def _profile_from_attributes(
        self, user_id: Optional[str], attributes: dict[str, str]
    ) -> UserProfile:
        now = self._clock()
        profile = UserProfile.new(
            user_id or attributes.get("sub") or attributes.get("email", ""),
            attributes.get("email", ""),
            now,
            name=attributes.get("name"),
        )

        # Onboarding answers mirrored to the identity store, when present
        try:
            if "custom:athleteType" in attributes:
                profile.athlete_type = AthleteType(attributes["custom:athleteType"])
            if "custom:mindsetProfile" in attributes:
                profile.mindset_profile = MindsetProfile(attributes["custom:mindsetProfile"])
            if "custom:interests" in attributes:
                profile.interests = {Interest(v) for v in json.loads(attributes["custom:interests"])}
        except (ValueError, TypeError) as e:
            logger.warning("Ignoring malformed identity attribute: %s", e)
        profile.sport = attributes.get("custom:sport")
        if "custom:dateOfBirth" in attributes:
            profile.age = age_from_date_of_birth(attributes["custom:dateOfBirth"], now)

        if self.settings.assume_onboarded_on_restore:
            profile.complete_onboarding(now)
        return profile

    # Authentication

    async def _identity_call(self, call: Awaitable[T]) -> T:
        """Await an identity operation, translating anything it leaks."""
        try:
            return await call
        except SessionError:
            raise
        except httpx.TransportError as e:
            raise SessionError(SessionErrorKind.NETWORK_ERROR, str(e)) from e
        except Exception as e:
            raise SessionError(SessionErrorKind.UNKNOWN, str(e)) from e

    async def sign_up(self, email: str, password: str, display_name: str) -> UserProfile:
        """
        Register a new account.

        Raises:
            SessionError: confirmationRequired when a code was sent; call
                confirm_sign_up to finish and sign in
        """
        try:
            await self._identity_call(self.identity.sign_up(email, password, display_name))
        except SessionError as e:
            if e.kind == SessionErrorKind.CONFIRMATION_REQUIRED:
                self._pending_sign_up = _PendingSignUp(email, password, display_name)
            raise
        return await self._sign_in(email, password, display_name)

    async def confirm_sign_up(self, email: str, code: str) -> Optional[UserProfile]:
        """
        Confirm a registration and sign in with the pending credentials.

        Returns:
            The new profile, or None when no sign-up for this email is pending
            and the caller must sign in explicitly
        """
        confirmed = await self._identity_call(self.identity.confirm_sign_up(email, code))
        if not confirmed:
            raise SessionError(SessionErrorKind.CONFIRMATION_FAILED, "Verification not complete")

        pending = self._pending_sign_up
        if pending is None or pending.email != email:
            return None
        self._pending_sign_up = None
        return await self._sign_in(pending.email, pending.password, pending.display_name)

    async def sign_in(self, email: str, password: str) -> UserProfile:
        return await self._sign_in(email, password)

    async def _sign_in(
        self, email: str, password: str, display_name: Optional[str] = None
    ) -> UserProfile:
        started = self._generation
        identity = await self._identity_call(self.identity.sign_in(email, password))
        if started != self._generation:
            # Signed out while the provider was authenticating
            await self._discard_late_sign_in()
            raise SessionError(
                SessionErrorKind.SESSION_EXPIRED, "Session ended while signing in"
            )

        # Signed in, no profile yet
        self._generation += 1
        generation = self._generation
        self._current_user = None
        self.is_authenticated = True
        self.is_onboarding = False

        profile = await self._load_or_create_profile(identity, display_name)
        if generation != self._generation:
            raise SessionError(
                SessionErrorKind.SESSION_EXPIRED, "Session ended while loading the profile"
            )
        self._adopt(profile)
        await self._persist(profile)
        logger.info("Signed in %s (%s)", profile.id, self.state.value)
        return profile.model_copy(deep=True)

    async def _discard_late_sign_in(self) -> None:
        try:
            await self._identity_call(self.identity.sign_out(global_sign_out=False))
        except SessionError as e:
            logger.warning("Could not drop late sign-in: %s", e)

    async def _load_or_create_profile(
        self, identity: UserIdentity, display_name: Optional[str]
    ) -> UserProfile:
        try:
            profile = await self.profile_client.fetch_profile(identity.user_id)
        except ProfileClientError as e:
            logger.warning("Profile fetch failed for %s: %s", identity.user_id, e)
            profile = None
        if profile is not None:
            return profile
        return UserProfile.new(
            identity.user_id,
            identity.email,
            self._clock(),
            name=display_name or identity.display_name,
        )

    async def sign_out(self) -> Optional[SignOutResult]:
        """
        Sign out everywhere, then clear local state unconditionally.

        Waits a grace period after the global sign-out, re-checks the session
        and retries once with a local-only sign-out if it is still valid.
        """
        self._generation += 1
        self._pending_sign_up = None
        result: Optional[SignOutResult] = None
        try:
            result = await self._identity_call(self.identity.sign_out(global_sign_out=True))
            logger.info("Global sign-out: %s %s", result.outcome.value, result.errors or "")

            await asyncio.sleep(self.settings.sign_out_grace_period)
            session = await self.identity.current_session()
            if session.is_signed_in:
                logger.warning("Session still valid after sign-out; forcing local sign-out")
                result = await self._identity_call(self.identity.sign_out(global_sign_out=False))
                logger.info("Forced sign-out: %s", result.outcome.value)
        except SessionError as e:
            logger.warning("Sign-out did not complete cleanly: %s", e)
        finally:
            await self._reset_to_signed_out()
        return result

    async def _reset_to_signed_out(self) -> None:
        self._generation += 1
        self._current_user = None
        self.is_authenticated = False
        self.is_onboarding = False
        await asyncio.to_thread(self.storage.clear)
        self.navigation.show_sign_in()

    # Profile ownership

    def _adopt(self, profile: UserProfile) -> None:
        self._current_user = profile
        self._sync_flags()

    def _sync_flags(self) -> None:
        user = self._current_user
        self.is_onboarding = user is not None and not user.onboarding.survey_completed
        if self.is_authenticated:
            if self.is_onboarding:
                self.navigation.show_onboarding_flow()
            else:
                self.navigation.show_main_interface()
        else:
            self.navigation.show_onboarding = self.is_onboarding

    def create_temporary_user_if_needed(self) -> UserProfile:
        """Ensure a profile exists so the onboarding flow is never blocked; returns a copy."""
        return self._ensure_profile().model_copy(deep=True)

    def _ensure_profile(self) -> UserProfile:
        if self._current_user is None:
            logger.warning("No current user; creating a temporary profile")
            self._current_user = UserProfile.temporary(self._clock())
            self._sync_flags()
        return self._current_user

    async def _persist(self, user: UserProfile) -> None:
        generation = self._generation
        await asyncio.to_thread(self.storage.save_user, user)
        token = self.identity.session_token
        if token:
            await asyncio.to_thread(self.storage.save_token, token)
        # A sign-out that raced the write must not leave a snapshot behind
        if generation != self._generation:
            await asyncio.to_thread(self.storage.clear)

    async def _mirror_attributes(self, attributes: dict[str, str]) -> None:
        try:
            pending = await self._identity_call(self.identity.update_user_attributes(attributes))
        except SessionError as e:
            logger.warning("Identity attribute update failed: %s", e)
            return
        if pending:
            logger.info("Identity attributes awaiting confirmation: %s", sorted(pending))

    async def _apply_update(
        self,
        step: Optional[int],
        user: UserProfile,
        mutate: Callable[[UserProfile, datetime], ProfileUpdate],
        mirror: Optional[dict[str, str]] = None,
    ) -> UserProfile:
        """
        Mutate the profile, push the delta remotely, then persist locally.

        Must be called with the step lock held.
        """
        generation = self._generation
        before = user.model_copy(deep=True)
        now = self._clock()
        update = mutate(user, now)
        user.touch(now)
        if user is self._current_user:
            self._sync_flags()

        try:
            if user.is_temporary_profile:
                logger.info("Skipping remote update for temporary user %s", user.id)
            else:
                await self.profile_client.update_user(user.id, update)
        except ProfileClientError as e:
            if generation != self._generation:
                raise SessionError(
                    SessionErrorKind.NO_USER_LOGGED_IN, "Session ended during the update"
                ) from e
            if step is not None and step in self.settings.tolerate_remote_failure_steps:
                logger.warning("Step %s remote update failed, continuing: %s", step, e)
            else:
                if self.settings.rollback_on_remote_failure and user is self._current_user:
                    logger.info("Rolling back local changes for %s", user.id)
                    self._current_user = before
                    self._sync_flags()
                raise

        if generation != self._generation or user is not self._current_user:
            raise SessionError(
                SessionErrorKind.NO_USER_LOGGED_IN, "Session ended during the update"
            )

        await self._persist(user)
        if mirror and not user.is_temporary_profile:
            await self._mirror_attributes(mirror)
        return user.model_copy(deep=True)

    # Onboarding

    async def submit_step1(
        self, athlete_type: AthleteType, sport: str, date_of_birth: str, phone_number: str
    ) -> UserProfile:
        """Record athlete type, sport and age (from a YYYY-MM-DD date of birth)."""

        def apply(user: UserProfile, now: datetime) -> ProfileUpdate:
            user.athlete_type = athlete_type
            user.sport = sport
            age = age_from_date_of_birth(date_of_birth, now)
            if age is not None:
                user.age = age
            else:
                logger.warning("Ignoring unparseable date of birth %r", date_of_birth)
            user.onboarding.advance_past(1)
            return Step1Update(
                last_active=now,
                athlete_type=athlete_type,
                sport=sport,
                age=age,
                onboarding=progress_of(user),
            )

        mirror = {
            "custom:athleteType": athlete_type.value,
            "custom:sport": sport,
            "custom:dateOfBirth": date_of_birth,
        }
        if phone_number:
            mirror["phone_number"] = phone_number

        async with self._step_lock:
            user = self._ensure_profile()
            return await self._apply_update(1, user, apply, mirror)

    async def submit_step2(self, interests: Iterable[Interest]) -> UserProfile:
        """Record the selected interests (at most MAX_INTERESTS distinct values)."""
        selected = set(interests)
        if len(selected) > MAX_INTERESTS:
            raise SessionError(
                SessionErrorKind.INVALID_USER_DATA,
                f"At most {MAX_INTERESTS} interests may be selected, got {len(selected)}",
            )

        def apply(user: UserProfile, now: datetime) -> ProfileUpdate:
            user.interests = set(selected)
            user.onboarding.advance_past(2)
            return Step2Update(
                last_active=now,
                interests=sorted(selected, key=lambda i: i.value),
                onboarding=progress_of(user),
            )

        mirror = {"custom:interests": json.dumps(sorted(i.value for i in selected))}

        async with self._step_lock:
            user = self._ensure_profile()
            return await self._apply_update(2, user, apply, mirror)

    async def submit_step3(self, learning_goal: LearningGoal) -> UserProfile:
        """Derive content preference and mindset from the learning goal."""
        content_type, mindset = profile_for_learning_goal(learning_goal)

        def apply(user: UserProfile, now: datetime) -> ProfileUpdate:
            user.preferred_content_type = content_type
            user.mindset_profile = mindset
            user.onboarding.advance_past(3)
            return Step3Update(
                last_active=now,
                mindset_profile=mindset,
                preferred_content_type=content_type,
                onboarding=progress_of(user),
            )

        mirror = {
            "custom:learningGoal": learning_goal.value,
            "custom:mindsetProfile": mindset.value,
        }

        async with self._step_lock:
            user = self._ensure_profile()
            return await self._apply_update(3, user, apply, mirror)

    async def complete_with_picture(self, image_data: bytes) -> UserProfile:
        """Upload a profile picture, then complete onboarding whatever the upload outcome."""
        async with self._step_lock:
            user = self._ensure_profile()
            generation = self._generation
            picture_url: Optional[str] = None
            if user.is_temporary_profile:
                logger.info("Skipping picture upload for temporary user %s", user.id)
            else:
                try:
                    picture_url = await self.profile_client.upload_profile_picture(
                        user.id, image_data
                    )
                except ProfileClientError as e:
                    logger.warning("Profile picture upload failed, completing without it: %s", e)
            if generation != self._generation:
                raise SessionError(
                    SessionErrorKind.NO_USER_LOGGED_IN, "Session ended during the upload"
                )
            return await self._complete_onboarding(user, picture_url)

    async def skip_profile_picture(self) -> UserProfile:
        async with self._step_lock:
            user = self._ensure_profile()
            return await self._complete_onboarding(user, None)

    async def _complete_onboarding(
        self, user: UserProfile, picture_url: Optional[str]
    ) -> UserProfile:
        def apply(user: UserProfile, now: datetime) -> ProfileUpdate:
            if picture_url:
                user.profile_picture_url = picture_url
            user.complete_onboarding(now)
            return CompletionUpdate(
                last_active=now,
                current_stage=UserStage.ACTIVE,
                profile_picture_url=picture_url,
                onboarding=progress_of(user),
            )

        return await self._apply_update(PROFILE_PICTURE_STEP, user, apply)

    # Account activity

    def _require_account(self) -> UserProfile:
        user = self._current_user
        if not self.is_authenticated or user is None or user.is_temporary_profile:
            raise SessionError(SessionErrorKind.NO_USER_LOGGED_IN, "A signed-in account is required")
        return user

    async def earn_points(self, amount: int, reason: str) -> UserProfile:
        if amount <= 0:
            raise SessionError(SessionErrorKind.INVALID_USER_DATA, "Points must be positive")

        def apply(user: UserProfile, now: datetime) -> ProfileUpdate:
            points = user.add_points(amount, reason, now)
            return ActivityUpdate(last_active=now, points=points)

        async with self._step_lock:
            user = self._require_account()
            return await self._apply_update(None, user, apply)

    async def complete_workout(
        self,
        module_id: str,
        duration: int,
        score: int,
        outcome: GameOutcome = GameOutcome.SUCCESS,
        lives_used: Optional[int] = None,
        started_at: Optional[datetime] = None,
    ) -> UserProfile:
        """
        Record a played workout module and award completion points.

        Modules whose id starts with "wealth" or "brand" count towards the
        matching completed-module tally when successful.
        """
        if duration < 0:
            raise SessionError(SessionErrorKind.INVALID_USER_DATA, "Duration must not be negative")

        def apply(user: UserProfile, now: datetime) -> ProfileUpdate:
            session = GameSession(
                module_id=module_id,
                start_time=started_at or now - timedelta(seconds=duration),
                duration=duration,
                score=score,
                lives_used=lives_used,
                outcome=outcome,
            )
            user.record_game_session(session)
            _update_retention(user, now)

            if outcome == GameOutcome.SUCCESS:
                modules = user.modules_completed or ModulesCompleted()
                if module_id.startswith("wealth"):
                    modules.wealth += 1
                elif module_id.startswith("brand"):
                    modules.brand += 1
                modules.last_completed = now
                user.modules_completed = modules
                user.add_points(WORKOUT_COMPLETION_POINTS, f"Completed {module_id}", now)

            return ActivityUpdate(
                last_active=now,
                points=user.points,
                game_sessions=[session],
                modules_completed=user.modules_completed,
                retention_metrics=user.retention_metrics,
            )

        async with self._step_lock:
            user = self._require_account()
            return await self._apply_update(None, user, apply)


def _update_retention(user: UserProfile, now: datetime) -> None:
    metrics = user.retention_metrics or RetentionMetrics()
    last = metrics.last_session_date
    if last is None:
        metrics.streak_days = 1
    else:
        gap = (now.date() - last.date()).days
        if gap == 1:
            metrics.streak_days += 1
        elif gap > 1:
            metrics.streak_days = 1
    if (now.date() - user.created_at.date()).days == 1:
        metrics.day1_retention = True
    weeks = max(1.0, (now - user.created_at).days / 7)
    metrics.session_frequency = round(len(user.game_sessions or []) / weeks, 2)
    metrics.last_session_date = now
    user.retention_metrics = metrics


def create_session_manager(
    settings: SessionSettings, navigation: Optional[AppNavigationState] = None
) -> SessionManager:
    """Wire the Cognito adapter, REST profile client and local storage together."""
    from astn_session.identity.cognito import CognitoIdentityService

    if not settings.identity_enabled:
        raise ValueError("ASTN_COGNITO_CLIENT_ID is not configured")

    identity = CognitoIdentityService(
        settings.cognito_client_id,
        region=settings.cognito_region,
        client_secret=settings.cognito_client_secret,
        timeout=settings.http_timeout,
    )
    profile_client = ProfileClient(
        settings.profile_api_url,
        token_provider=identity.access_token,
        timeout=settings.http_timeout,
    )
    return SessionManager(
        identity, profile_client, SessionStorage(), navigation=navigation, settings=settings
    )
