"""
Application configuration using pydantic-settings.
Loads from environment variables with .env file support.
"""

from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class CredentialPolicy:
    """Validity windows and cost parameters shared by the credential managers."""

    login_token_ttl: timedelta = timedelta(minutes=30)
    reset_code_ttl: timedelta = timedelta(hours=24)
    hash_work_factor: int = 12
    reset_code_bit_length: int = 256


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./loginvault.db"

    # Base URL of the web app that receives password reset links
    app_url: str = "http://localhost:3000"

    # Notifications (empty queue URL logs events instead of posting them)
    notifier_queue_url: str = ""
    notifier_timeout_seconds: float = 5.0
    notifier_queue_size: int = 1000

    # Credential lifecycle
    login_token_ttl_minutes: int = Field(default=30, gt=0)
    reset_code_ttl_hours: int = Field(default=24, gt=0)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    reset_code_bit_length: int = Field(default=256, ge=64)

    # Application
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR
    project_name: str = "loginvault"
    version: str = "0.1.0"

    def credential_policy(self) -> CredentialPolicy:
        """Build the policy handed to the credential managers."""
        return CredentialPolicy(
            login_token_ttl=timedelta(minutes=self.login_token_ttl_minutes),
            reset_code_ttl=timedelta(hours=self.reset_code_ttl_hours),
            hash_work_factor=self.bcrypt_rounds,
            reset_code_bit_length=self.reset_code_bit_length,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
