"""Session, identity and onboarding state for the ASTN athlete app."""

from astn_session.config import SessionSettings
from astn_session.errors import ProfileClientError, SessionError, SessionErrorKind
from astn_session.navigation import AppNavigationState, AppRoute
from astn_session.profile_client import ProfileClient
from astn_session.session import SessionManager, SessionState, create_session_manager
from astn_session.storage import SessionStorage

__version__ = "0.1.0"

__all__ = [
    "SessionManager",
    "SessionState",
    "create_session_manager",
    "SessionSettings",
    "SessionError",
    "SessionErrorKind",
    "ProfileClientError",
    "AppNavigationState",
    "AppRoute",
    "ProfileClient",
    "SessionStorage",
]
