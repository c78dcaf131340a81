"""Settings for the session layer, read from the environment."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SessionSettings(BaseSettings):
    """
    Runtime configuration for the Session Manager and its collaborators.

    Every field is read from an ``ASTN_``-prefixed environment variable or a
    ``.env`` file; environment variables win over the file. Sets are given
    as JSON lists, e.g. ``ASTN_TOLERATE_REMOTE_FAILURE_STEPS=[1, 3]``.
    """

    model_config = SettingsConfigDict(
        env_prefix="ASTN_",
        env_file=".env",
        env_file_encoding="utf-8",
        # The same .env also carries ASTN_DATA_DIR for storage and logging
        extra="ignore",
    )

    cognito_region: str = "us-east-1"
    cognito_client_id: str = ""
    cognito_client_secret: Optional[str] = None
    profile_api_url: str = "https://api.astn.app"

    http_timeout: float = Field(default=30.0, gt=0)
    sign_out_grace_period: float = Field(default=1.0, ge=0)

    # Steps whose remote failure is logged and passed over instead of raised
    tolerate_remote_failure_steps: frozenset[int] = frozenset({3})
    rollback_on_remote_failure: bool = False
    assume_onboarded_on_restore: bool = True

    @property
    def identity_enabled(self) -> bool:
        return bool(self.cognito_client_id)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "SessionSettings":
        """
        Build settings from the environment and a .env file.

        Args:
            env_file: Optional explicit path to a .env file used instead of ./.env

        Returns:
            Populated settings

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value
        """
        if env_file:
            return cls(_env_file=env_file)
        return cls()
