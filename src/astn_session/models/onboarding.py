"""Onboarding wizard inputs and the rules derived from them."""

from enum import Enum
from typing import Iterable

from astn_session.models.user import ContentType, Interest, MindsetProfile

MAX_INTERESTS = 10


class LearningGoal(str, Enum):
    """Learning goal chosen in onboarding step 3."""

    WEALTH_BUILDING = "Wealth Building"
    CAREER_BUILDING = "Career Building"
    BRAND_BUILDING = "Brand Building"


LEARNING_GOAL_PROFILES: dict[LearningGoal, tuple[ContentType, MindsetProfile]] = {
    LearningGoal.WEALTH_BUILDING: (ContentType.TACTICAL, MindsetProfile.SECURITY),
    LearningGoal.BRAND_BUILDING: (ContentType.STORY, MindsetProfile.LEGACY),
    LearningGoal.CAREER_BUILDING: (ContentType.MIXED, MindsetProfile.GROWTH),
}


def profile_for_learning_goal(goal: LearningGoal) -> tuple[ContentType, MindsetProfile]:
    """Preferred content type and mindset implied by a learning goal."""
    return LEARNING_GOAL_PROFILES[goal]


class InterestSelection:
    """
    Toggle-style interest picker backing step 2.

    Selecting an already-selected interest deselects it; selections beyond
    MAX_INTERESTS are refused.
    """

    def __init__(self, initial: Iterable[Interest] = ()):
        self._selected: set[Interest] = set()
        for interest in initial:
            self.toggle(interest)

    def toggle(self, interest: Interest) -> bool:
        """
        Select or deselect an interest.

        Returns:
            True if the interest is selected after the call
        """
        if interest in self._selected:
            self._selected.discard(interest)
            return False
        if self.is_full:
            return False
        self._selected.add(interest)
        return True

    @property
    def is_full(self) -> bool:
        return len(self._selected) >= MAX_INTERESTS

    @property
    def selected(self) -> frozenset[Interest]:
        return frozenset(self._selected)

    def __contains__(self, interest: object) -> bool:
        return interest in self._selected

    def __len__(self) -> int:
        return len(self._selected)
