"""Process-wide navigation state driven by the session and the UI."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

TAB_INDEXES = {
    "dashboard": 0,
    "home": 0,
    "challenges": 1,
    "reps": 2,
    "ownership": 3,
    "profile": 4,
}
TAB_COUNT = 5


class AppRoute(str, Enum):
    """Top-level flow currently presented."""

    SPLASH = "splash"
    SIGN_IN = "sign_in"
    ONBOARDING = "onboarding"
    MAIN = "main"


@dataclass
class AppNavigationState:
    """
    UI state that lives for the life of the process.

    Not persisted; a new instance starts at the defaults.
    """

    selected_tab_index: int = 0
    is_authenticated: bool = False
    show_onboarding: bool = False
    active_workout: Optional[str] = None
    route: AppRoute = AppRoute.SPLASH

    def navigate_to_tab(self, tab_name: str) -> None:
        """Select a tab by name; unknown names fall back to the dashboard."""
        self.selected_tab_index = TAB_INDEXES.get(tab_name.lower(), 0)

    def navigate_to_tab_index(self, index: int) -> None:
        if 0 <= index < TAB_COUNT:
            self.selected_tab_index = index

    def navigate_to_workout(self, workout_name: str) -> None:
        self.navigate_to_tab("reps")
        self.active_workout = workout_name

    def set_authenticated(self, authenticated: bool, show_onboarding: bool = False) -> None:
        self.is_authenticated = authenticated
        self.show_onboarding = show_onboarding

    def show_sign_in(self) -> None:
        self.set_authenticated(False)
        self.active_workout = None
        self.selected_tab_index = 0
        self.route = AppRoute.SIGN_IN

    def show_onboarding_flow(self) -> None:
        self.set_authenticated(True, show_onboarding=True)
        self.route = AppRoute.ONBOARDING

    def show_main_interface(self) -> None:
        self.set_authenticated(True, show_onboarding=False)
        self.route = AppRoute.MAIN
