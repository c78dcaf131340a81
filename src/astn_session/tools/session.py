"""MCP tools exposing the session and onboarding operations."""

import base64
import binascii
from typing import Any, Optional

from astn_session.errors import ProfileClientError, SessionError
from astn_session.models.onboarding import LearningGoal
from astn_session.models.user import AthleteType, GameOutcome, Interest, UserProfile
from astn_session.session import SessionManager
from astn_session.utils.formatting import summarize_profile


def _profile_result(profile: Optional[UserProfile]) -> dict[str, Any]:
    return {"data": profile.to_snapshot() if profile is not None else None}


def _error_result(error: Exception) -> dict[str, Any]:
    if isinstance(error, SessionError):
        return {"error": error.user_message, "kind": error.kind.value}
    return {"error": str(error)}


def register_session_tools(mcp, manager: SessionManager):
    """Register session MCP tools."""

    @mcp.tool()
    async def get_session_status() -> dict[str, Any]:
        """
        Get the current authentication and onboarding state.

        Returns:
            Dictionary with the session state, flags, navigation and a profile summary
        """
        user = manager.current_user
        nav = manager.navigation
        return {
            "data": {
                "state": manager.state.value,
                "is_authenticated": manager.is_authenticated,
                "is_onboarding": manager.is_onboarding,
                "route": nav.route.value,
                "selected_tab_index": nav.selected_tab_index,
                "active_workout": nav.active_workout,
                "profile": summarize_profile(user) if user else None,
            }
        }

    @mcp.tool()
    async def restore_session() -> dict[str, Any]:
        """Reconcile the stored session with the identity provider."""
        try:
            return _profile_result(await manager.restore_session())
        except (SessionError, ProfileClientError) as e:
            return _error_result(e)

    @mcp.tool()
    async def sign_up(email: str, password: str, display_name: str) -> dict[str, Any]:
        """
        Register a new account.

        If the provider requires email confirmation the result carries
        kind "confirmationRequired"; call confirm_sign_up with the code.

        Args:
            email: Account email
            password: Account password
            display_name: Athlete's full name
        """
        try:
            return _profile_result(await manager.sign_up(email, password, display_name))
        except (SessionError, ProfileClientError) as e:
            return _error_result(e)

    @mcp.tool()
    async def confirm_sign_up(email: str, code: str) -> dict[str, Any]:
        """
        Confirm a registration with the emailed verification code.

        Args:
            email: Account email
            code: Verification code
        """
        try:
            return _profile_result(await manager.confirm_sign_up(email, code))
        except (SessionError, ProfileClientError) as e:
            return _error_result(e)

    @mcp.tool()
    async def sign_in(email: str, password: str) -> dict[str, Any]:
        """
        Sign in with email and password.

        Args:
            email: Account email
            password: Account password
        """
        try:
            return _profile_result(await manager.sign_in(email, password))
        except (SessionError, ProfileClientError) as e:
            return _error_result(e)

    @mcp.tool()
    async def sign_out() -> dict[str, Any]:
        """Sign out on every device and clear the local session."""
        result = await manager.sign_out()
        outcome = result.outcome.value if result is not None else None
        return {"data": {"signed_out": True, "outcome": outcome}}

    @mcp.tool()
    async def submit_onboarding_step1(
        athlete_type: str, sport: str, date_of_birth: str, phone_number: str = ""
    ) -> dict[str, Any]:
        """
        Submit onboarding step 1.

        Args:
            athlete_type: One of the athlete types, e.g. "College Athlete"
            sport: Sport played
            date_of_birth: Date of birth in YYYY-MM-DD format
            phone_number: Phone number in E.164 format
        """
        try:
            profile = await manager.submit_step1(
                AthleteType(athlete_type), sport, date_of_birth, phone_number
            )
            return _profile_result(profile)
        except (SessionError, ProfileClientError, ValueError) as e:
            return _error_result(e)

    @mcp.tool()
    async def submit_onboarding_step2(interests: list[str]) -> dict[str, Any]:
        """
        Submit onboarding step 2.

        Args:
            interests: Up to 10 interest names, e.g. ["Music", "Travel"]
        """
        try:
            profile = await manager.submit_step2([Interest(i) for i in interests])
            return _profile_result(profile)
        except (SessionError, ProfileClientError, ValueError) as e:
            return _error_result(e)

    @mcp.tool()
    async def submit_onboarding_step3(learning_goal: str) -> dict[str, Any]:
        """
        Submit onboarding step 3.

        Args:
            learning_goal: "Wealth Building", "Career Building" or "Brand Building"
        """
        try:
            return _profile_result(await manager.submit_step3(LearningGoal(learning_goal)))
        except (SessionError, ProfileClientError, ValueError) as e:
            return _error_result(e)

    @mcp.tool()
    async def upload_profile_picture(image_base64: str) -> dict[str, Any]:
        """
        Upload a profile picture and finish onboarding.

        Args:
            image_base64: Base64-encoded JPEG image
        """
        try:
            image_data = base64.b64decode(image_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            return {"error": f"Invalid base64 image: {e}"}
        try:
            return _profile_result(await manager.complete_with_picture(image_data))
        except (SessionError, ProfileClientError) as e:
            return _error_result(e)

    @mcp.tool()
    async def skip_profile_picture() -> dict[str, Any]:
        """Skip the profile picture and finish onboarding."""
        try:
            return _profile_result(await manager.skip_profile_picture())
        except (SessionError, ProfileClientError) as e:
            return _error_result(e)

    @mcp.tool()
    async def earn_points(amount: int, reason: str) -> dict[str, Any]:
        """
        Credit points to the signed-in athlete.

        Args:
            amount: Positive number of points
            reason: Why the points were earned
        """
        try:
            return _profile_result(await manager.earn_points(amount, reason))
        except (SessionError, ProfileClientError) as e:
            return _error_result(e)

    @mcp.tool()
    async def complete_workout(
        module_id: str,
        duration_seconds: int,
        score: int,
        outcome: str = "success",
        lives_used: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Record a completed workout module.

        Args:
            module_id: Module identifier, e.g. "wealth-3" or "brand-1"
            duration_seconds: Time spent in seconds
            score: Score achieved
            outcome: "success" or "fail"
            lives_used: Lives used, for games that have them
        """
        try:
            profile = await manager.complete_workout(
                module_id, duration_seconds, score, GameOutcome(outcome), lives_used
            )
            return _profile_result(profile)
        except (SessionError, ProfileClientError, ValueError) as e:
            return _error_result(e)

    @mcp.tool()
    async def navigate_to_tab(tab: str) -> dict[str, Any]:
        """
        Select a main tab.

        Args:
            tab: dashboard, challenges, reps, ownership or profile
        """
        manager.navigation.navigate_to_tab(tab)
        return {"data": {"selected_tab_index": manager.navigation.selected_tab_index}}
