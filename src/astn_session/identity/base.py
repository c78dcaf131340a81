"""Contract for identity providers and the auth event fan-out."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class AuthEvent(str, Enum):
    SIGNED_IN = "signedIn"
    SIGNED_OUT = "signedOut"
    SESSION_EXPIRED = "sessionExpired"


AuthEventListener = Callable[[AuthEvent], Awaitable[None]]


class AuthEventHub:
    """Delivers auth events to every subscribed async listener."""

    def __init__(self) -> None:
        self._listeners: list[AuthEventListener] = []

    def subscribe(self, listener: AuthEventListener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def emit(self, event: AuthEvent) -> None:
        logger.info("Auth event: %s", event.value)
        for listener in list(self._listeners):
            try:
                await listener(event)
            except Exception:
                logger.exception("Auth event listener failed for %s", event.value)


@dataclass
class UserIdentity:
    """An authenticated identity as reported by the provider."""

    user_id: str
    email: str
    display_name: Optional[str] = None


@dataclass
class AuthSession:
    is_signed_in: bool
    user_id: Optional[str] = None

    @classmethod
    def signed_out(cls) -> "AuthSession":
        return cls(is_signed_in=False)


class SignOutOutcome(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class SignOutResult:
    outcome: SignOutOutcome
    # Per-subsystem failure descriptions for partial or failed sign-outs
    errors: dict[str, str] = field(default_factory=dict)


class IdentityService(ABC):
    """
    Capability surface the Session Manager needs from an identity provider.

    Implementations translate every provider-specific failure into
    ``SessionError`` before it leaves the adapter.
    """

    def __init__(self) -> None:
        self.events = AuthEventHub()

    @abstractmethod
    async def sign_up(self, email: str, password: str, display_name: str) -> UserIdentity:
        """Register an account; raises confirmationRequired when a code must be entered."""

    @abstractmethod
    async def confirm_sign_up(self, email: str, code: str) -> bool:
        """Confirm a pending registration with the emailed code."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> UserIdentity:
        ...

    @abstractmethod
    async def current_session(self) -> AuthSession:
        """Report whether a user is signed in. Never raises."""

    @abstractmethod
    async def fetch_user_attributes(self) -> dict[str, str]:
        ...

    @abstractmethod
    async def update_user_attributes(self, attributes: dict[str, str]) -> set[str]:
        """Update attributes; returns the keys still pending confirmation."""

    @abstractmethod
    async def sign_out(self, global_sign_out: bool = True) -> SignOutResult:
        ...

    async def access_token(self) -> Optional[str]:
        """Bearer token for calls to app backends, if signed in."""
        return None

    @property
    def session_token(self) -> Optional[str]:
        """Opaque serialised credentials for the local token blob."""
        return None

    def restore_session_token(self, token: str) -> None:
        """Reload credentials previously exported via ``session_token``."""

    async def aclose(self) -> None:
        """Release network resources."""
