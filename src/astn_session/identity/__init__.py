"""Identity provider adapters."""

from astn_session.identity.base import (
    AuthEvent,
    AuthEventHub,
    AuthSession,
    IdentityService,
    SignOutOutcome,
    SignOutResult,
    UserIdentity,
)
from astn_session.identity.cognito import CognitoIdentityService

__all__ = [
    "AuthEvent",
    "AuthEventHub",
    "AuthSession",
    "IdentityService",
    "SignOutOutcome",
    "SignOutResult",
    "UserIdentity",
    "CognitoIdentityService",
]
