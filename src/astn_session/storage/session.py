"""Local snapshot storage for the current user and auth token."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from astn_session.models.user import UserProfile
from astn_session.storage.base import BaseStorage

logger = logging.getLogger(__name__)

SNAPSHOT_SCHEMA_VERSION = 1


class SessionStorage(BaseStorage):
    """
    Whole-value storage for the persisted session.

    Two blobs are kept under fixed keys: the serialised current user
    (wrapped in a versioned envelope) and the opaque auth token. None of
    the methods raise; failures are logged and reported as "nothing stored".
    """

    USER_KEY = "current_user.json"
    TOKEN_KEY = "auth_token.txt"

    def __init__(self, root: Optional[Path] = None) -> None:
        """Initialize session storage in the session_data directory."""
        super().__init__("session_data", root=root)

    @property
    def user_path(self) -> Path:
        return self.data_dir / self.USER_KEY

    @property
    def token_path(self) -> Path:
        return self.data_dir / self.TOKEN_KEY

    def load_user(self) -> Optional[UserProfile]:
        """
        Load the persisted user snapshot.

        Returns:
            The stored profile, or None if absent, unreadable or from a newer schema
        """
        raw = self._load_json(self.user_path)
        if raw is None:
            return None
        if not isinstance(raw, dict):
            logger.warning("Discarding malformed user snapshot")
            return None

        version, payload = self._unwrap(raw)
        if version > SNAPSHOT_SCHEMA_VERSION:
            logger.warning(
                "Discarding user snapshot with unsupported schema version %s", version
            )
            return None
        try:
            return UserProfile.from_snapshot(payload)
        except ValidationError as e:
            logger.warning("Failed to decode stored user: %s", e)
            return None

    def save_user(self, user: UserProfile) -> bool:
        """Persist the user snapshot. Returns False if the write failed."""
        envelope = {
            "schema_version": SNAPSHOT_SCHEMA_VERSION,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "user": user.to_snapshot(),
        }
        try:
            self._save_json(self.user_path, envelope)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Failed to persist user snapshot: %s", e)
            return False
        return True

    def load_token(self) -> Optional[str]:
        token = self._load_text(self.token_path)
        return token or None

    def save_token(self, token: str) -> bool:
        try:
            self._save_text(self.token_path, token)
        except OSError as e:
            logger.warning("Failed to persist auth token: %s", e)
            return False
        return True

    def clear(self) -> None:
        """Remove both stored blobs."""
        for path in (self.user_path, self.token_path):
            try:
                self._delete(path)
            except OSError as e:
                logger.warning("Failed to remove %s: %s", path.name, e)

    @staticmethod
    def _unwrap(raw: dict[str, Any]) -> tuple[int, dict[str, Any]]:
        # Snapshots written before the envelope existed are bare user objects
        if "schema_version" not in raw:
            return 0, raw
        try:
            version = int(raw["schema_version"])
        except (TypeError, ValueError):
            version = SNAPSHOT_SCHEMA_VERSION + 1
        payload = raw.get("user")
        return version, payload if isinstance(payload, dict) else {}
