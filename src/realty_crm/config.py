"""Application configuration."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    """Database configuration."""

    url: str = "sqlite+aiosqlite:///data/realty_crm.db"
    echo: bool = False


class SecuritySettings(BaseModel):
    """Secrets used for tokens and credentials at rest."""

    # Fernet key (urlsafe base64, 32 bytes) for stored mailbox passwords
    encryption_key: str = ""

    jwt_secret_key: str = ""
    jwt_expiry_minutes: int = 60
    jwt_algorithm: str = "HS256"


class ResendSettings(BaseModel):
    """Resend transactional email API configuration."""

    api_key: str = ""
    api_url: str = "https://api.resend.com"
    default_from: str = "PropAI <no-reply@yourdomain.com>"


class EmailSettings(BaseModel):
    """Email gateway configuration."""

    provider: str = "resend"  # resend, mock
    # Per-account SMTP connections
    smtp_timeout: float = 30.0
    resend: ResendSettings = Field(default_factory=ResendSettings)


class GmailOAuthSettings(BaseModel):
    """Google OAuth client used to link Gmail accounts."""

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = "http://localhost:8080/api/v1/auth/gmail/callback"
    scopes: list[str] = Field(
        default_factory=lambda: [
            "https://www.googleapis.com/auth/gmail.readonly",
            "https://www.googleapis.com/auth/gmail.send",
            "https://www.googleapis.com/auth/gmail.modify",
            "https://www.googleapis.com/auth/userinfo.email",
        ]
    )
    timeout: float = 15.0


class IntegrationsSettings(BaseModel):
    """External integrations configuration."""

    email: EmailSettings = Field(default_factory=EmailSettings)
    gmail: GmailOAuthSettings = Field(default_factory=GmailOAuthSettings)


class Settings(BaseSettings):
    """Application settings.

    Loaded from:
    1. Environment variables (CRM_*)
    2. configs/{environment}.yaml
    3. configs/default.yaml
    """

    model_config = SettingsConfigDict(
        env_prefix="CRM_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Environment
    environment: str = "development"
    debug: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Frontend base URL (OAuth redirects land here)
    app_url: str = "http://localhost:5173"
    cors_origins: list[str] = Field(default_factory=list)

    # Subsystems
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    integrations: IntegrationsSettings = Field(default_factory=IntegrationsSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings object loaded from config files and environment.
    """
    import os
    from dynaconf import Dynaconf

    config_dir = Path("configs")
    env = os.getenv("CRM_ENV", "development")

    settings_files = []
    if (config_dir / "default.yaml").exists():
        settings_files.append(str(config_dir / "default.yaml"))
    if (config_dir / f"{env}.yaml").exists():
        settings_files.append(str(config_dir / f"{env}.yaml"))

    dynaconf = Dynaconf(
        envvar_prefix="CRM",
        settings_files=settings_files,
        load_dotenv=True,
    )

    config_dict: dict[str, Any] = {}
    for key in dynaconf.keys():
        if not key.startswith("_"):
            config_dict[key.lower()] = _lower_keys(dynaconf[key])

    config_dict["environment"] = env

    return Settings(**config_dict)


def _lower_keys(value: Any) -> Any:
    """Recursively lower-case mapping keys coming from Dynaconf."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def validate_production_settings(settings: Settings) -> list[str]:
    """Validate settings for production readiness.

    Args:
        settings: Application settings to validate.

    Returns:
        List of validation error messages (empty if all valid).
    """
    errors: list[str] = []

    if settings.environment not in ("production", "staging", "prod"):
        return errors

    if not settings.security.jwt_secret_key:
        errors.append("CRM_SECURITY__JWT_SECRET_KEY must be set in production")

    if not settings.security.encryption_key:
        errors.append("CRM_SECURITY__ENCRYPTION_KEY must be set in production")

    email = settings.integrations.email
    if email.provider == "resend" and not email.resend.api_key:
        errors.append(
            "CRM_INTEGRATIONS__EMAIL__RESEND__API_KEY must be set when Resend is the provider"
        )

    gmail = settings.integrations.gmail
    if gmail.client_id and not gmail.client_secret:
        errors.append(
            "CRM_INTEGRATIONS__GMAIL__CLIENT_SECRET must be set when a Gmail client id is configured"
        )

    return errors


def require_valid_settings() -> Settings:
    """Get settings and raise if production validation fails.

    Raises:
        ValueError: If production settings are invalid.

    Returns:
        Validated settings.
    """
    settings = get_settings()
    errors = validate_production_settings(settings)

    if errors:
        error_list = "\n  - ".join(errors)
        raise ValueError(
            f"Production configuration errors:\n  - {error_list}"
        )

    return settings
