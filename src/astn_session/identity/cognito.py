"""Identity adapter for an AWS Cognito user pool."""

import base64
import hashlib
import hmac
import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Optional

import httpx

from astn_session.errors import SessionError, SessionErrorKind
from astn_session.identity.base import (
    AuthEvent,
    AuthSession,
    IdentityService,
    SignOutOutcome,
    SignOutResult,
    UserIdentity,
)

logger = logging.getLogger(__name__)

# Provider error codes with a fixed meaning regardless of the operation
ERROR_KINDS = {
    "UsernameExistsException": SessionErrorKind.USER_ALREADY_EXISTS,
    "AliasExistsException": SessionErrorKind.USER_ALREADY_EXISTS,
    "UserNotConfirmedException": SessionErrorKind.CONFIRMATION_REQUIRED,
    "UserNotFoundException": SessionErrorKind.USER_NOT_FOUND,
    "CodeMismatchException": SessionErrorKind.CONFIRMATION_FAILED,
    "ExpiredCodeException": SessionErrorKind.CONFIRMATION_FAILED,
    "PasswordResetRequiredException": SessionErrorKind.AUTHENTICATION_FAILED,
    "InvalidPasswordException": SessionErrorKind.INVALID_USER_DATA,
}


@dataclass
class CognitoTokens:
    access_token: str
    id_token: str
    refresh_token: str
    expires_at: float
    username: str
    user_sub: Optional[str] = None

    def is_expired(self, skew: float = 60.0) -> bool:
        return time.time() >= self.expires_at - skew


class CognitoIdentityService(IdentityService):
    """Client for the Cognito user-pool JSON API."""

    TARGET_PREFIX = "AWSCognitoIdentityProviderService"

    def __init__(
        self,
        client_id: str,
        region: str = "us-east-1",
        client_secret: Optional[str] = None,
        timeout: float = 30.0,
        endpoint: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Cognito adapter.

        Args:
            client_id: User-pool app client ID
            region: AWS region hosting the user pool
            client_secret: App client secret, if the client was created with one
            timeout: Per-request timeout in seconds
            endpoint: Override for the service endpoint
            transport: Optional httpx transport (used by tests)
        """
        super().__init__()
        self.client_id = client_id
        self.client_secret = client_secret
        self.endpoint = endpoint or f"https://cognito-idp.{region}.amazonaws.com/"
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self.tokens: Optional[CognitoTokens] = None

    # Low-level API

    def _secret_hash(self, username: str) -> Optional[str]:
        if not self.client_secret:
            return None
        digest = hmac.new(
            self.client_secret.encode(),
            (username + self.client_id).encode(),
            hashlib.sha256,
        ).digest()
        return base64.b64encode(digest).decode()

    async def _call(
        self, action: str, payload: dict[str, Any], failure_kind: SessionErrorKind
    ) -> dict[str, Any]:
        """POST one API action and translate failures into SessionError."""
        headers = {
            "Content-Type": "application/x-amz-json-1.1",
            "X-Amz-Target": f"{self.TARGET_PREFIX}.{action}",
        }
        try:
            response = await self.client.post(
                self.endpoint, content=json.dumps(payload), headers=headers
            )
        except httpx.TransportError as e:
            raise SessionError(SessionErrorKind.NETWORK_ERROR, f"{action}: {e}") from e

        if response.status_code != 200:
            raise self._translate_error(action, response, failure_kind)
        if not response.content:
            return {}
        return response.json()

    @staticmethod
    def _translate_error(
        action: str, response: httpx.Response, failure_kind: SessionErrorKind
    ) -> SessionError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        code = str(body.get("__type", "")).split("#")[-1]
        message = body.get("message") or body.get("Message") or response.text
        detail = f"{action} failed ({code or response.status_code}): {message}"

        if code in ERROR_KINDS:
            return SessionError(ERROR_KINDS[code], detail)
        if code == "NotAuthorizedException":
            if failure_kind == SessionErrorKind.SIGN_IN_FAILED:
                return SessionError(SessionErrorKind.AUTHENTICATION_FAILED, detail)
            return SessionError(SessionErrorKind.SESSION_EXPIRED, detail)
        if response.status_code >= 500:
            return SessionError(SessionErrorKind.NETWORK_ERROR, detail)
        return SessionError(failure_kind, detail)

    def _require_tokens(self) -> CognitoTokens:
        if self.tokens is None:
            raise SessionError(SessionErrorKind.NO_USER_LOGGED_IN, "No Cognito session")
        return self.tokens

    async def _refresh(self) -> None:
        tokens = self._require_tokens()
        params = {"REFRESH_TOKEN": tokens.refresh_token}
        secret_hash = self._secret_hash(tokens.user_sub or tokens.username)
        if secret_hash:
            params["SECRET_HASH"] = secret_hash
        data = await self._call(
            "InitiateAuth",
            {"AuthFlow": "REFRESH_TOKEN_AUTH", "ClientId": self.client_id, "AuthParameters": params},
            SessionErrorKind.SESSION_EXPIRED,
        )
        result = data.get("AuthenticationResult") or {}
        tokens.access_token = result["AccessToken"]
        tokens.id_token = result.get("IdToken", tokens.id_token)
        tokens.refresh_token = result.get("RefreshToken", tokens.refresh_token)
        tokens.expires_at = time.time() + int(result.get("ExpiresIn", 3600))
        logger.info("Cognito tokens refreshed")

    async def _access_token(self) -> str:
        tokens = self._require_tokens()
        if tokens.is_expired():
            await self._refresh()
        return tokens.access_token

    async def _get_user(self) -> dict[str, str]:
        data = await self._call(
            "GetUser", {"AccessToken": await self._access_token()}, SessionErrorKind.UNKNOWN
        )
        attributes = {a["Name"]: a["Value"] for a in data.get("UserAttributes", [])}
        if self.tokens is not None and "sub" in attributes:
            self.tokens.user_sub = attributes["sub"]
        return attributes

    # IdentityService

    async def sign_up(self, email: str, password: str, display_name: str) -> UserIdentity:
        payload: dict[str, Any] = {
            "ClientId": self.client_id,
            "Username": email,
            "Password": password,
            "UserAttributes": [
                {"Name": "email", "Value": email},
                {"Name": "name", "Value": display_name},
            ],
        }
        secret_hash = self._secret_hash(email)
        if secret_hash:
            payload["SecretHash"] = secret_hash

        data = await self._call("SignUp", payload, SessionErrorKind.SIGN_UP_FAILED)
        if not data.get("UserConfirmed", False):
            raise SessionError(
                SessionErrorKind.CONFIRMATION_REQUIRED, f"Confirmation code sent for {email}"
            )
        return UserIdentity(user_id=data["UserSub"], email=email, display_name=display_name)

    async def confirm_sign_up(self, email: str, code: str) -> bool:
        payload = {"ClientId": self.client_id, "Username": email, "ConfirmationCode": code}
        secret_hash = self._secret_hash(email)
        if secret_hash:
            payload["SecretHash"] = secret_hash
        await self._call("ConfirmSignUp", payload, SessionErrorKind.CONFIRMATION_FAILED)
        return True

    async def sign_in(self, email: str, password: str) -> UserIdentity:
        params = {"USERNAME": email, "PASSWORD": password}
        secret_hash = self._secret_hash(email)
        if secret_hash:
            params["SECRET_HASH"] = secret_hash

        data = await self._call(
            "InitiateAuth",
            {"AuthFlow": "USER_PASSWORD_AUTH", "ClientId": self.client_id, "AuthParameters": params},
            SessionErrorKind.SIGN_IN_FAILED,
        )
        if "ChallengeName" in data:
            raise SessionError(
                SessionErrorKind.SIGN_IN_FAILED, f"Unsupported challenge {data['ChallengeName']}"
            )
        result = data.get("AuthenticationResult")
        if not result:
            raise SessionError(SessionErrorKind.SIGN_IN_FAILED, "No authentication result")

        self.tokens = CognitoTokens(
            access_token=result["AccessToken"],
            id_token=result.get("IdToken", ""),
            refresh_token=result.get("RefreshToken", ""),
            expires_at=time.time() + int(result.get("ExpiresIn", 3600)),
            username=email,
        )
        attributes = await self._get_user()
        await self.events.emit(AuthEvent.SIGNED_IN)
        return UserIdentity(
            user_id=attributes.get("sub", email),
            email=attributes.get("email", email),
            display_name=attributes.get("name"),
        )

    async def current_session(self) -> AuthSession:
        if self.tokens is None:
            return AuthSession.signed_out()
        try:
            attributes = await self._get_user()
        except SessionError as e:
            if e.kind == SessionErrorKind.SESSION_EXPIRED:
                self.tokens = None
                await self.events.emit(AuthEvent.SESSION_EXPIRED)
            logger.warning("Session check failed: %s", e)
            return AuthSession.signed_out()
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.warning("Session check failed: %s", e)
            return AuthSession.signed_out()
        return AuthSession(is_signed_in=True, user_id=attributes.get("sub"))

    async def fetch_user_attributes(self) -> dict[str, str]:
        return await self._get_user()

    async def update_user_attributes(self, attributes: dict[str, str]) -> set[str]:
        if not attributes:
            return set()
        data = await self._call(
            "UpdateUserAttributes",
            {
                "AccessToken": await self._access_token(),
                "UserAttributes": [{"Name": k, "Value": v} for k, v in attributes.items()],
            },
            SessionErrorKind.UNKNOWN,
        )
        pending = {d["AttributeName"] for d in data.get("CodeDeliveryDetailsList", [])}
        if pending:
            logger.info("Attributes pending confirmation: %s", sorted(pending))
        return pending

    async def sign_out(self, global_sign_out: bool = True) -> SignOutResult:
        if self.tokens is None:
            return SignOutResult(SignOutOutcome.COMPLETE)

        errors: dict[str, str] = {}
        if global_sign_out:
            try:
                await self._call(
                    "GlobalSignOut",
                    {"AccessToken": self.tokens.access_token},
                    SessionErrorKind.UNKNOWN,
                )
            except SessionError as e:
                if e.kind == SessionErrorKind.NETWORK_ERROR:
                    return SignOutResult(SignOutOutcome.FAILED, {"global": e.message})
                errors["global"] = e.message

        revoke: dict[str, Any] = {"ClientId": self.client_id, "Token": self.tokens.refresh_token}
        if self.client_secret:
            revoke["ClientSecret"] = self.client_secret
        try:
            await self._call("RevokeToken", revoke, SessionErrorKind.UNKNOWN)
        except SessionError as e:
            errors["revoke"] = e.message

        self.tokens = None
        await self.events.emit(AuthEvent.SIGNED_OUT)
        outcome = SignOutOutcome.PARTIAL if errors else SignOutOutcome.COMPLETE
        return SignOutResult(outcome, errors)

    async def access_token(self) -> Optional[str]:
        if self.tokens is None:
            return None
        return await self._access_token()

    @property
    def session_token(self) -> Optional[str]:
        if self.tokens is None:
            return None
        return json.dumps(asdict(self.tokens))

    def restore_session_token(self, token: str) -> None:
        try:
            self.tokens = CognitoTokens(**json.loads(token))
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring unreadable auth token: %s", e)
            self.tokens = None

    async def aclose(self) -> None:
        await self.client.aclose()
