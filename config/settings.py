"""
Configuration settings for the Business Verification Portal.
Uses pydantic-settings for environment variable management.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
import os
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Backend
    API_BASE_URL: str = Field(
        "http://localhost:3000",
        description="Base URL of the verification platform REST API"
    )
    APP_BASE_URL: str = Field(
        "http://localhost:8501",
        description="Public URL of this portal (used to build payment callback URLs)"
    )
    REQUEST_TIMEOUT_SECONDS: float = Field(15.0, description="Timeout for each REST call")

    # Application Mode
    DEMO_MODE: bool = Field(False, description="Serve the REST contract from the in-process sandbox")
    LOG_LEVEL: str = Field("INFO", description="Root log level")

    # Durable client storage (customerToken / adminToken)
    SESSION_COOKIE_DAYS: int = Field(7, description="Lifetime of the browser cookies holding portal tokens")
    SESSION_STORE_PATH: str = Field(
        ".portal_session.json",
        description="JSON file holding portal tokens for headless use"
    )

    # Wallet top-up
    TOPUP_MIN_NAIRA: int = Field(100, description="Minimum top-up amount in naira")
    TOPUP_MAX_NAIRA: int = Field(1_000_000, description="Maximum top-up amount in naira")
    TOPUP_POLL_INTERVAL_SECONDS: float = Field(3.0, description="Delay between verification polls")
    TOPUP_MAX_POLL_ATTEMPTS: int = Field(20, description="Verification polls before giving up")

    # Dashboard
    BALANCE_REFRESH_SECONDS: int = Field(30, description="Wallet balance refresh interval on the dashboard")

    # Sandbox
    SANDBOX_PENDING_POLLS: int = Field(1, description="Pending answers the sandbox gives before settling a top-up")
    SANDBOX_DEMO_EMAIL: Optional[str] = Field("demo@example.com", description="Seeded sandbox customer")
    SANDBOX_DEMO_PASSWORD: Optional[str] = Field("demo12345", description="Seeded sandbox password")
    SANDBOX_ADMIN_EMAIL: Optional[str] = Field("admin@example.com", description="Seeded sandbox admin")
    SANDBOX_ADMIN_PASSWORD: Optional[str] = Field("admin12345", description="Seeded sandbox admin password")

    @property
    def api_root(self) -> str:
        """API base URL without a trailing slash."""
        return self.API_BASE_URL.rstrip("/")


def get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


def validate_settings() -> tuple[bool, list[str]]:
    """
    Validate the loaded settings.
    Returns (is_valid, list of missing/invalid settings).
    """
    issues = []

    try:
        s = settings

        if not s.DEMO_MODE and not s.API_BASE_URL.startswith(("http://", "https://")):
            issues.append("API_BASE_URL must be an http(s) URL")

        if not s.APP_BASE_URL.startswith(("http://", "https://")):
            issues.append("APP_BASE_URL must be an http(s) URL")

        if s.TOPUP_MIN_NAIRA <= 0 or s.TOPUP_MAX_NAIRA < s.TOPUP_MIN_NAIRA:
            issues.append("TOPUP_MIN_NAIRA / TOPUP_MAX_NAIRA are inconsistent")

        if s.TOPUP_MAX_POLL_ATTEMPTS < 1:
            issues.append("TOPUP_MAX_POLL_ATTEMPTS must be at least 1")

        if s.SESSION_COOKIE_DAYS < 1:
            issues.append("SESSION_COOKIE_DAYS must be at least 1")

    except Exception as e:
        issues.append(f"Configuration error: {str(e)}")

    return len(issues) == 0, issues


# Load .env from project root
env_path = get_project_root() / ".env"
if env_path.exists():
    from dotenv import load_dotenv
    load_dotenv(env_path)

# On Streamlit Cloud, secrets are in .streamlit/secrets.toml
# Load them into os.environ so pydantic-settings can find them
try:
    import streamlit as st
    for key, value in st.secrets.items():
        if isinstance(value, str) and key not in os.environ:
            os.environ[key] = value
except Exception:
    pass

# Global settings instance
settings = Settings()
