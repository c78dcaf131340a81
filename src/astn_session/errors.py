"""Error types raised across the session layer."""

from enum import Enum
from typing import Optional


class SessionErrorKind(str, Enum):
    """Closed set of failure kinds reported by the Session Manager."""

    NO_USER_LOGGED_IN = "noUserLoggedIn"
    INVALID_USER_DATA = "invalidUserData"
    NETWORK_ERROR = "networkError"
    SESSION_EXPIRED = "sessionExpired"
    CONFIRMATION_REQUIRED = "confirmationRequired"
    CONFIRMATION_FAILED = "confirmationFailed"
    AUTHENTICATION_FAILED = "authenticationFailed"
    USER_NOT_FOUND = "userNotFound"
    USER_ALREADY_EXISTS = "userAlreadyExists"
    SIGN_UP_FAILED = "signUpFailed"
    SIGN_IN_FAILED = "signInFailed"
    UNKNOWN = "unknown"


USER_MESSAGES = {
    SessionErrorKind.NO_USER_LOGGED_IN: "Please sign in to continue.",
    SessionErrorKind.INVALID_USER_DATA: "Some of the information provided is not valid.",
    SessionErrorKind.NETWORK_ERROR: "Unable to reach the server. Check your connection and try again.",
    SessionErrorKind.SESSION_EXPIRED: "Your session has expired. Please sign in again.",
    SessionErrorKind.CONFIRMATION_REQUIRED: (
        "Please check your email for a verification code to complete signup."
    ),
    SessionErrorKind.CONFIRMATION_FAILED: "That verification code is invalid or has expired.",
    SessionErrorKind.AUTHENTICATION_FAILED: "Incorrect email or password.",
    SessionErrorKind.USER_NOT_FOUND: "No account exists for that email.",
    SessionErrorKind.USER_ALREADY_EXISTS: (
        "This email is already registered. Please use a different email or login."
    ),
    SessionErrorKind.SIGN_UP_FAILED: "Registration failed. Please try again.",
    SessionErrorKind.SIGN_IN_FAILED: "Sign in failed. Please try again.",
    SessionErrorKind.UNKNOWN: "Something went wrong. Please try again.",
}


class SessionError(Exception):
    """A session failure, always carrying one of the ``SessionErrorKind`` values."""

    def __init__(self, kind: SessionErrorKind, message: Optional[str] = None):
        self.kind = kind
        self.message = message or kind.value
        super().__init__(f"{kind.value}: {self.message}")

    @property
    def user_message(self) -> str:
        """Short human-readable text suitable for display."""
        return USER_MESSAGES[self.kind]


class ProfileClientError(Exception):
    """Failure talking to the remote profile backend."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
