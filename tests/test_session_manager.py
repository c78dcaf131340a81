import asyncio
from datetime import timedelta

import pytest

from astn_session.config import SessionSettings
from astn_session.errors import ProfileClientError, SessionError, SessionErrorKind
from astn_session.identity.base import SignOutOutcome
from astn_session.identity.cognito import CognitoIdentityService
from astn_session.models.onboarding import LearningGoal
from astn_session.models.user import (
    AthleteType,
    ContentType,
    GameOutcome,
    Interest,
    MindsetProfile,
    UserProfile,
    UserStage,
)
from astn_session.navigation import AppRoute
from astn_session.session import SessionManager, SessionState, create_session_manager
from tests.conftest import FIXED_NOW

EMAIL = "ana@example.com"
PASSWORD = "correct horse"


async def _sign_in(manager, identity) -> UserProfile:
    identity.add_account(EMAIL, PASSWORD, user_id="user-1", name="Ana Ruiz")
    await manager.start()
    return await manager.sign_in(EMAIL, PASSWORD)


def _completed_profile(user_id: str = "user-1") -> UserProfile:
    profile = UserProfile.new(user_id, EMAIL, FIXED_NOW - timedelta(days=30), name="Ana Ruiz")
    profile.athlete_type = AthleteType.COLLEGE
    profile.complete_onboarding(FIXED_NOW - timedelta(days=29))
    return profile


# Sign-up and sign-in


@pytest.mark.asyncio
async def test_sign_up_with_confirmation_then_signs_in(manager, identity, storage) -> None:
    identity.require_confirmation = True
    await manager.start()

    with pytest.raises(SessionError) as exc:
        await manager.sign_up(EMAIL, PASSWORD, "Ana Ruiz")
    assert exc.value.kind == SessionErrorKind.CONFIRMATION_REQUIRED
    assert manager.state == SessionState.SIGNED_OUT

    profile = await manager.confirm_sign_up(EMAIL, "123456")

    assert profile is not None
    assert profile.name == "Ana Ruiz"
    assert profile.onboarding.current_step == 1
    assert profile.onboarding.steps_completed == 0
    assert manager.state == SessionState.ONBOARDING
    assert manager.is_authenticated
    assert manager.is_onboarding
    assert manager.navigation.route == AppRoute.ONBOARDING
    assert storage.load_user().id == profile.id


@pytest.mark.asyncio
async def test_sign_up_without_confirmation_signs_in_immediately(manager, identity) -> None:
    await manager.start()

    profile = await manager.sign_up(EMAIL, PASSWORD, "Ana Ruiz")

    assert profile.email == EMAIL
    assert manager.state == SessionState.ONBOARDING


@pytest.mark.asyncio
async def test_sign_up_existing_email_fails(manager, identity) -> None:
    identity.add_account(EMAIL, PASSWORD)
    await manager.start()

    with pytest.raises(SessionError) as exc:
        await manager.sign_up(EMAIL, PASSWORD, "Ana Ruiz")

    assert exc.value.kind == SessionErrorKind.USER_ALREADY_EXISTS
    assert manager.state == SessionState.SIGNED_OUT


@pytest.mark.asyncio
async def test_confirm_with_wrong_code_fails(manager, identity) -> None:
    identity.require_confirmation = True
    await manager.start()
    with pytest.raises(SessionError):
        await manager.sign_up(EMAIL, PASSWORD, "Ana Ruiz")

    with pytest.raises(SessionError) as exc:
        await manager.confirm_sign_up(EMAIL, "000000")

    assert exc.value.kind == SessionErrorKind.CONFIRMATION_FAILED
    assert manager.current_user is None


@pytest.mark.asyncio
async def test_confirm_without_pending_sign_up_returns_none(manager, identity) -> None:
    identity.add_account(EMAIL, PASSWORD)
    await manager.start()

    assert await manager.confirm_sign_up(EMAIL, "123456") is None
    assert manager.state == SessionState.SIGNED_OUT


@pytest.mark.asyncio
async def test_sign_in_with_completed_remote_profile_is_active(manager, identity, profiles) -> None:
    profiles.profiles["user-1"] = _completed_profile()

    profile = await _sign_in(manager, identity)

    assert profile.onboarding.survey_completed
    assert manager.state == SessionState.ACTIVE
    assert not manager.is_onboarding
    assert manager.navigation.route == AppRoute.MAIN


@pytest.mark.asyncio
async def test_sign_in_without_remote_profile_creates_minimal_one(manager, identity) -> None:
    profile = await _sign_in(manager, identity)

    assert profile.id == "user-1"
    assert profile.email == EMAIL
    assert profile.name == "Ana Ruiz"
    assert profile.created_at == FIXED_NOW
    assert profile.current_stage == UserStage.ONBOARDING
    assert manager.state == SessionState.ONBOARDING


@pytest.mark.asyncio
async def test_sign_in_survives_profile_fetch_failure(manager, identity, profiles) -> None:
    profiles.fail_fetch = True

    profile = await _sign_in(manager, identity)

    assert profile.id == "user-1"
    assert manager.state == SessionState.ONBOARDING


@pytest.mark.asyncio
async def test_sign_in_wrong_password(manager, identity) -> None:
    identity.add_account(EMAIL, PASSWORD)
    await manager.start()

    with pytest.raises(SessionError) as exc:
        await manager.sign_in(EMAIL, "wrong")

    assert exc.value.kind == SessionErrorKind.AUTHENTICATION_FAILED
    assert exc.value.user_message == "Incorrect email or password."
    assert manager.state == SessionState.SIGNED_OUT
    assert not manager.is_authenticated


@pytest.mark.asyncio
async def test_sign_in_translates_unexpected_identity_errors(manager, identity) -> None:
    identity.add_account(EMAIL, PASSWORD)
    identity.errors["sign_in"] = RuntimeError("provider exploded")
    await manager.start()

    with pytest.raises(SessionError) as exc:
        await manager.sign_in(EMAIL, PASSWORD)

    assert exc.value.kind == SessionErrorKind.UNKNOWN


@pytest.mark.asyncio
async def test_sign_in_persists_snapshot_and_token(manager, identity, storage) -> None:
    await _sign_in(manager, identity)

    assert storage.load_user().id == "user-1"
    assert storage.load_token() == "token-user-1"


@pytest.mark.asyncio
async def test_sign_in_replaces_temporary_profile(manager, identity) -> None:
    await manager.submit_step1(AthleteType.AMATEUR, "Tennis", "1999-05-01", "")
    assert manager.is_temporary_user()

    await _sign_in(manager, identity)

    assert not manager.is_temporary_user()
    assert manager.current_user.id == "user-1"


@pytest.mark.asyncio
async def test_current_user_is_a_copy(manager, identity) -> None:
    await _sign_in(manager, identity)

    user = manager.current_user
    user.sport = "Rowing"

    assert manager.current_user.sport is None


@pytest.mark.asyncio
async def test_sign_out_during_pending_sign_in_discards_it(manager, identity, storage) -> None:
    identity.add_account(EMAIL, PASSWORD, user_id="user-1", name="Ana Ruiz")
    await manager.start()
    identity.sign_in_gate = asyncio.Event()

    task = asyncio.create_task(manager.sign_in(EMAIL, PASSWORD))
    await identity.sign_in_started.wait()

    await manager.sign_out()
    identity.sign_in_gate.set()

    with pytest.raises(SessionError) as exc:
        await task
    assert exc.value.kind == SessionErrorKind.SESSION_EXPIRED
    assert manager.state == SessionState.SIGNED_OUT
    assert not manager.is_authenticated
    assert manager.current_user is None
    assert storage.load_user() is None
    assert storage.load_token() is None
    assert identity.signed_in is None
    assert identity.sign_out_calls[-1] is False


# Onboarding


@pytest.mark.asyncio
async def test_onboarding_steps_advance_by_one(manager, identity, profiles) -> None:
    await _sign_in(manager, identity)

    step1 = await manager.submit_step1(AthleteType.COLLEGE, "Soccer", "2000-03-15", "")
    assert (step1.onboarding.steps_completed, step1.onboarding.current_step) == (1, 2)

    step2 = await manager.submit_step2([Interest.MUSIC, Interest.TRAVEL])
    assert (step2.onboarding.steps_completed, step2.onboarding.current_step) == (2, 3)

    step3 = await manager.submit_step3(LearningGoal.WEALTH_BUILDING)
    assert (step3.onboarding.steps_completed, step3.onboarding.current_step) == (3, 4)
    assert manager.state == SessionState.ONBOARDING

    done = await manager.skip_profile_picture()
    assert done.onboarding.steps_completed == 4
    assert done.onboarding.survey_completed
    assert done.onboarding.completion_timestamp == FIXED_NOW
    assert done.current_stage == UserStage.ACTIVE
    assert manager.state == SessionState.ACTIVE
    assert manager.navigation.route == AppRoute.MAIN

    assert profiles.update_types() == [
        "Step1Update",
        "Step2Update",
        "Step3Update",
        "CompletionUpdate",
    ]


@pytest.mark.asyncio
async def test_concurrent_steps_run_one_at_a_time(manager, identity, profiles) -> None:
    await _sign_in(manager, identity)
    profiles.gate = asyncio.Event()

    pending = asyncio.gather(
        manager.submit_step1(AthleteType.COLLEGE, "Soccer", "2000-03-15", ""),
        manager.submit_step2([Interest.MUSIC]),
        manager.submit_step3(LearningGoal.WEALTH_BUILDING),
    )
    await profiles.update_started.wait()
    await asyncio.sleep(0)
    assert manager.step_in_flight
    assert profiles.active_updates == 1
    assert profiles.updates == []

    profiles.gate.set()
    results = await pending

    assert [r.onboarding.steps_completed for r in results] == [1, 2, 3]
    assert profiles.max_active_updates == 1
    assert profiles.update_types() == ["Step1Update", "Step2Update", "Step3Update"]
    assert manager.current_user.onboarding.current_step == 4


@pytest.mark.asyncio
async def test_step1_records_fields_and_remote_payload(manager, identity, profiles) -> None:
    await _sign_in(manager, identity)

    profile = await manager.submit_step1(AthleteType.COLLEGE, "Soccer", "2000-03-16", "+15551234567")

    assert profile.athlete_type == AthleteType.COLLEGE
    assert profile.sport == "Soccer"
    assert profile.age == 25
    user_id, update = profiles.updates[-1]
    payload = update.to_payload()
    assert user_id == "user-1"
    assert payload["athleteType"] == "College Athlete"
    assert payload["age"] == 25
    assert payload["onboarding"]["stepsCompleted"] == 1
    assert identity.attributes["custom:athleteType"] == "College Athlete"
    assert identity.attributes["custom:dateOfBirth"] == "2000-03-16"
    assert identity.attributes["phone_number"] == "+15551234567"


@pytest.mark.asyncio
async def test_step1_age_counts_birthday_today(manager, identity) -> None:
    await _sign_in(manager, identity)

    profile = await manager.submit_step1(AthleteType.COLLEGE, "Soccer", "2000-03-15", "")

    assert profile.age == 26


@pytest.mark.asyncio
async def test_step1_invalid_date_of_birth_leaves_age_unset(manager, identity, profiles) -> None:
    await _sign_in(manager, identity)

    profile = await manager.submit_step1(AthleteType.PROFESSIONAL, "Golf", "15/03/2000", "")

    assert profile.age is None
    assert profile.onboarding.steps_completed == 1
    assert "age" not in profiles.updates[-1][1].to_payload()


@pytest.mark.asyncio
async def test_resubmitting_earlier_step_does_not_regress(manager, identity) -> None:
    await _sign_in(manager, identity)
    await manager.submit_step1(AthleteType.COLLEGE, "Soccer", "2000-01-01", "")
    await manager.submit_step2([Interest.GAMING])
    await manager.submit_step3(LearningGoal.CAREER_BUILDING)

    profile = await manager.submit_step1(AthleteType.RETIRED, "Soccer", "2000-01-01", "")

    assert profile.athlete_type == AthleteType.RETIRED
    assert profile.onboarding.steps_completed == 3
    assert profile.onboarding.current_step == 4


@pytest.mark.asyncio
async def test_step2_rejects_more_than_ten_interests(manager, identity, profiles) -> None:
    await _sign_in(manager, identity)

    with pytest.raises(SessionError) as exc:
        await manager.submit_step2(list(Interest)[:11])

    assert exc.value.kind == SessionErrorKind.INVALID_USER_DATA
    assert manager.current_user.interests is None
    assert manager.current_user.onboarding.steps_completed == 0
    assert profiles.updates == []


@pytest.mark.asyncio
async def test_step2_mirrors_sorted_interests(manager, identity) -> None:
    await _sign_in(manager, identity)

    profile = await manager.submit_step2([Interest.TRAVEL, Interest.MUSIC, Interest.TRAVEL])

    assert profile.interests == {Interest.MUSIC, Interest.TRAVEL}
    assert identity.attributes["custom:interests"] == '["Music", "Travel"]'


@pytest.mark.asyncio
async def test_step3_brand_building_maps_to_story_and_legacy(manager, identity) -> None:
    await _sign_in(manager, identity)

    profile = await manager.submit_step3(LearningGoal.BRAND_BUILDING)

    assert profile.preferred_content_type == ContentType.STORY
    assert profile.mindset_profile == MindsetProfile.LEGACY
    assert identity.attributes["custom:mindsetProfile"] == "Legacy"
    assert identity.attributes["custom:learningGoal"] == "Brand Building"


@pytest.mark.asyncio
async def test_completion_is_idempotent(manager, identity, profiles, clock) -> None:
    await _sign_in(manager, identity)
    first = await manager.skip_profile_picture()

    clock.advance(hours=1)
    second = await manager.skip_profile_picture()

    assert second.onboarding.steps_completed == 4
    assert second.onboarding.current_step == first.onboarding.current_step
    assert second.onboarding.completion_timestamp == FIXED_NOW
    assert second.last_active == FIXED_NOW + timedelta(hours=1)
    assert manager.state == SessionState.ACTIVE


@pytest.mark.asyncio
async def test_complete_with_picture_stores_url(manager, identity, profiles) -> None:
    await _sign_in(manager, identity)

    profile = await manager.complete_with_picture(b"\xff\xd8jpeg")

    assert profile.profile_picture_url == "https://cdn.astn.app/pictures/user-1.jpg"
    assert profile.onboarding.survey_completed
    assert profiles.uploads == [("user-1", b"\xff\xd8jpeg")]
    payload = profiles.updates[-1][1].to_payload()
    assert payload["profilePictureUrl"] == profile.profile_picture_url
    assert payload["currentStage"] == "active"


@pytest.mark.asyncio
async def test_picture_upload_failure_still_completes(manager, identity, profiles) -> None:
    await _sign_in(manager, identity)
    profiles.fail_upload = True

    profile = await manager.complete_with_picture(b"\xff\xd8jpeg")

    assert profile.profile_picture_url is None
    assert profile.onboarding.survey_completed
    assert manager.state == SessionState.ACTIVE


@pytest.mark.asyncio
async def test_steps_are_persisted_locally(manager, identity, storage) -> None:
    await _sign_in(manager, identity)

    await manager.submit_step1(AthleteType.COLLEGE, "Soccer", "2000-01-01", "")

    stored = storage.load_user()
    assert stored.onboarding.steps_completed == 1
    assert stored.sport == "Soccer"


@pytest.mark.asyncio
async def test_attribute_mirroring_failure_does_not_fail_step(manager, identity) -> None:
    await _sign_in(manager, identity)
    identity.errors["update_user_attributes"] = SessionError(SessionErrorKind.NETWORK_ERROR)

    profile = await manager.submit_step1(AthleteType.COLLEGE, "Soccer", "2000-01-01", "")

    assert profile.onboarding.steps_completed == 1


# Temporary profiles


@pytest.mark.asyncio
async def test_step_without_user_creates_temporary_profile(manager, identity, profiles, storage) -> None:
    profile = await manager.submit_step1(AthleteType.AMATEUR, "Tennis", "1999-05-01", "")

    assert profile.is_temporary_profile
    assert profile.email.startswith("temp_")
    assert profile.email.endswith("@astn.local")
    assert manager.is_temporary_user()
    assert not manager.is_authenticated
    assert manager.state == SessionState.ONBOARDING
    assert profiles.updates == []
    assert identity.attribute_updates == []
    assert storage.load_user().is_temporary_profile


@pytest.mark.asyncio
async def test_temporary_profile_helper_returns_a_copy(manager) -> None:
    profile = manager.create_temporary_user_if_needed()
    profile.sport = "Rowing"

    assert manager.is_temporary_user()
    assert manager.current_user.sport is None
    assert manager.create_temporary_user_if_needed().id == profile.id


@pytest.mark.asyncio
async def test_account_operations_reject_temporary_profile(manager) -> None:
    await manager.submit_step1(AthleteType.AMATEUR, "Tennis", "1999-05-01", "")

    with pytest.raises(SessionError) as exc:
        await manager.earn_points(10, "bonus")

    assert exc.value.kind == SessionErrorKind.NO_USER_LOGGED_IN


# Remote failure policy


@pytest.mark.asyncio
async def test_remote_failure_propagates_and_keeps_local_progress(
    manager, identity, profiles, storage
) -> None:
    await _sign_in(manager, identity)
    profiles.fail_updates = True

    with pytest.raises(ProfileClientError):
        await manager.submit_step1(AthleteType.COLLEGE, "Soccer", "2000-01-01", "")

    assert manager.current_user.onboarding.steps_completed == 1
    assert storage.load_user().onboarding.steps_completed == 0


@pytest.mark.asyncio
async def test_remote_failure_rolls_back_when_configured(identity, profiles, storage, clock) -> None:
    settings = SessionSettings(sign_out_grace_period=0, rollback_on_remote_failure=True)
    manager = SessionManager(identity, profiles, storage, settings=settings, clock=clock)
    await _sign_in(manager, identity)
    profiles.fail_updates = True

    with pytest.raises(ProfileClientError):
        await manager.submit_step1(AthleteType.COLLEGE, "Soccer", "2000-01-01", "")

    assert manager.current_user.onboarding.steps_completed == 0
    assert manager.current_user.athlete_type is None


@pytest.mark.asyncio
async def test_step3_remote_failure_is_tolerated(manager, identity, profiles, storage) -> None:
    await _sign_in(manager, identity)
    profiles.fail_updates = True

    profile = await manager.submit_step3(LearningGoal.WEALTH_BUILDING)

    assert profile.preferred_content_type == ContentType.TACTICAL
    assert profile.mindset_profile == MindsetProfile.SECURITY
    assert storage.load_user().mindset_profile == MindsetProfile.SECURITY


# Sign-out and identity events


@pytest.mark.asyncio
async def test_sign_out_clears_everything(manager, identity, storage) -> None:
    await _sign_in(manager, identity)
    manager.navigation.navigate_to_workout("Budget Blitz")

    result = await manager.sign_out()

    assert result.outcome == SignOutOutcome.COMPLETE
    assert identity.sign_out_calls == [True]
    assert manager.current_user is None
    assert manager.state == SessionState.SIGNED_OUT
    assert not manager.is_authenticated
    assert not manager.is_onboarding
    assert manager.navigation.route == AppRoute.SIGN_IN
    assert manager.navigation.active_workout is None
    assert storage.load_user() is None
    assert storage.load_token() is None


@pytest.mark.asyncio
async def test_sign_out_retries_when_session_survives(manager, identity) -> None:
    await _sign_in(manager, identity)
    identity.sticky_session = True

    result = await manager.sign_out()

    assert identity.sign_out_calls == [True, False]
    assert result.outcome == SignOutOutcome.COMPLETE
    assert identity.signed_in is None
    assert manager.state == SessionState.SIGNED_OUT


@pytest.mark.asyncio
async def test_sign_out_clears_locally_when_identity_fails(manager, identity, storage) -> None:
    await _sign_in(manager, identity)
    identity.errors["sign_out"] = SessionError(SessionErrorKind.NETWORK_ERROR)

    result = await manager.sign_out()

    assert result is None
    assert manager.state == SessionState.SIGNED_OUT
    assert storage.load_user() is None


@pytest.mark.asyncio
async def test_sign_out_during_in_flight_step_discards_result(
    manager, identity, profiles, storage
) -> None:
    await _sign_in(manager, identity)
    profiles.gate = asyncio.Event()

    task = asyncio.create_task(
        manager.submit_step1(AthleteType.COLLEGE, "Soccer", "2000-01-01", "")
    )
    await profiles.update_started.wait()
    assert manager.step_in_flight

    await manager.sign_out()
    profiles.gate.set()

    with pytest.raises(SessionError) as exc:
        await task
    assert exc.value.kind == SessionErrorKind.NO_USER_LOGGED_IN
    assert manager.current_user is None
    assert manager.state == SessionState.SIGNED_OUT
    assert storage.load_user() is None


@pytest.mark.asyncio
async def test_session_expired_event_clears_state(manager, identity, storage) -> None:
    await _sign_in(manager, identity)

    await identity.expire_session()

    assert manager.current_user is None
    assert manager.state == SessionState.SIGNED_OUT
    assert manager.navigation.route == AppRoute.SIGN_IN
    assert storage.load_user() is None


# Restore


@pytest.mark.asyncio
async def test_restore_prefers_matching_snapshot(manager, identity, storage) -> None:
    snapshot = UserProfile.new("user-1", EMAIL, FIXED_NOW, name="Ana Ruiz")
    snapshot.onboarding.advance_past(2)
    storage.save_user(snapshot)
    storage.save_token("stored-token")
    identity.signed_in = "user-1"

    profile = await manager.start()

    assert identity.restored_tokens == ["stored-token"]
    assert profile.onboarding.steps_completed == 2
    assert manager.is_authenticated
    assert manager.state == SessionState.ONBOARDING
    assert manager.navigation.route == AppRoute.ONBOARDING


@pytest.mark.asyncio
async def test_restore_synthesises_profile_from_attributes(manager, identity) -> None:
    identity.signed_in = "user-1"
    identity.attributes = {
        "sub": "user-1",
        "email": EMAIL,
        "name": "Ana Ruiz",
        "custom:athleteType": "College Athlete",
        "custom:sport": "Soccer",
        "custom:dateOfBirth": "2000-01-01",
        "custom:interests": '["Music", "Travel"]',
        "custom:mindsetProfile": "Growth",
    }

    profile = await manager.start()

    assert profile.id == "user-1"
    assert profile.name == "Ana Ruiz"
    assert profile.athlete_type == AthleteType.COLLEGE
    assert profile.sport == "Soccer"
    assert profile.age == 26
    assert profile.interests == {Interest.MUSIC, Interest.TRAVEL}
    assert profile.mindset_profile == MindsetProfile.GROWTH
    assert manager.state == SessionState.ACTIVE


@pytest.mark.asyncio
async def test_restore_ignores_snapshot_for_other_user(manager, identity, storage) -> None:
    storage.save_user(UserProfile.new("someone-else", "x@example.com", FIXED_NOW))
    identity.signed_in = "user-1"
    identity.attributes = {"sub": "user-1", "email": EMAIL}

    profile = await manager.start()

    assert profile.id == "user-1"
    assert storage.load_user().id == "user-1"


@pytest.mark.asyncio
async def test_restore_can_leave_synthesised_profile_onboarding(identity, profiles, storage, clock) -> None:
    settings = SessionSettings(sign_out_grace_period=0, assume_onboarded_on_restore=False)
    manager = SessionManager(identity, profiles, storage, settings=settings, clock=clock)
    identity.signed_in = "user-1"
    identity.attributes = {"sub": "user-1", "email": EMAIL}

    await manager.start()

    assert manager.state == SessionState.ONBOARDING


@pytest.mark.asyncio
async def test_restore_without_identity_session_clears_snapshot(manager, storage) -> None:
    storage.save_user(UserProfile.new("user-1", EMAIL, FIXED_NOW))

    assert await manager.start() is None

    assert manager.state == SessionState.SIGNED_OUT
    assert storage.load_user() is None


# Account activity


@pytest.mark.asyncio
async def test_earn_points_requires_sign_in(manager) -> None:
    with pytest.raises(SessionError) as exc:
        await manager.earn_points(10, "bonus")

    assert exc.value.kind == SessionErrorKind.NO_USER_LOGGED_IN


@pytest.mark.asyncio
async def test_earn_points_credits_balance(manager, identity, profiles) -> None:
    await _sign_in(manager, identity)

    await manager.earn_points(10, "daily login")
    profile = await manager.earn_points(15, "quiz")

    assert profile.points.balance == 25
    assert profile.points.total_earned == 25
    assert [t.reason for t in profile.points.history] == ["daily login", "quiz"]
    assert profiles.update_types()[-1] == "ActivityUpdate"


@pytest.mark.asyncio
async def test_earn_points_rejects_non_positive_amount(manager, identity) -> None:
    await _sign_in(manager, identity)

    with pytest.raises(SessionError) as exc:
        await manager.earn_points(0, "nothing")

    assert exc.value.kind == SessionErrorKind.INVALID_USER_DATA


@pytest.mark.asyncio
async def test_complete_workout_tracks_modules_points_and_streak(manager, identity, clock) -> None:
    await _sign_in(manager, identity)

    first = await manager.complete_workout("wealth-1", duration=300, score=80)
    assert first.modules_completed.wealth == 1
    assert first.points.balance == 15
    assert first.game_sessions[0].start_time == FIXED_NOW - timedelta(seconds=300)
    assert first.retention_metrics.streak_days == 1

    clock.advance(days=1)
    second = await manager.complete_workout("brand-2", duration=120, score=60)
    assert second.modules_completed.brand == 1
    assert second.points.balance == 30
    assert second.retention_metrics.streak_days == 2
    assert second.retention_metrics.day1_retention
    assert second.retention_metrics.session_frequency == 2.0


@pytest.mark.asyncio
async def test_failed_workout_records_session_without_points(manager, identity, clock) -> None:
    await _sign_in(manager, identity)

    profile = await manager.complete_workout(
        "wealth-2", duration=90, score=10, outcome=GameOutcome.FAIL, lives_used=3
    )

    assert profile.points is None
    assert profile.modules_completed is None
    assert profile.game_sessions[0].lives_used == 3


@pytest.mark.asyncio
async def test_streak_resets_after_missed_day(manager, identity, clock) -> None:
    await _sign_in(manager, identity)
    await manager.complete_workout("wealth-1", duration=60, score=50)

    clock.advance(days=3)
    profile = await manager.complete_workout("wealth-2", duration=60, score=50)

    assert profile.retention_metrics.streak_days == 1


# Wiring


@pytest.mark.asyncio
async def test_aclose_releases_clients(manager, profiles) -> None:
    await manager.start()

    await manager.aclose()

    assert profiles.closed


def test_create_session_manager_requires_client_id() -> None:
    with pytest.raises(ValueError):
        create_session_manager(SessionSettings())


@pytest.mark.asyncio
async def test_create_session_manager_wires_cognito() -> None:
    manager = create_session_manager(SessionSettings(cognito_client_id="client-123"))

    assert isinstance(manager.identity, CognitoIdentityService)
    assert manager.state == SessionState.SIGNED_OUT
    await manager.aclose()
