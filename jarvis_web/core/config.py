"""Application configuration loaded from environment variables.

Settings for the password + OTP gate, token signing, the Telegram delivery
channel and the downstream agent API. Uses pydantic-settings for validation
and .env file support.
"""

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # CORS (Security)
    # Default allows localhost:3000 for the Next.js chat UI in development.
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Shared credential (single user, compared in constant time)
    auth_password: SecretStr = SecretStr("")

    # Token signing
    # OTP tokens use OTP_SECRET when set, otherwise a key derived from
    # AUTH_SECRET. Session and OTP tokens never share a key.
    auth_secret: SecretStr = SecretStr("")
    otp_secret: SecretStr = SecretStr("")
    auth_issuer: str = "jarvis-web"
    session_subject: str = "jarvis-web-user"

    # Static credential for machine clients that skip the password/OTP flow.
    # Empty disables it.
    service_api_key: SecretStr = SecretStr("")

    # Lifetimes and ceilings
    otp_ttl_seconds: int = 300
    session_ttl_days: int = 7
    login_max_failures: int = 5
    login_lockout_minutes: int = 15
    otp_max_attempts: int = 5

    # Client address resolution: honour the first X-Forwarded-For entry.
    # The deployment sits behind a hosting proxy that always sets it.
    trust_forwarded_for: bool = True

    # Out-of-band delivery (Telegram bot)
    telegram_bot_token: SecretStr = SecretStr("")
    telegram_chat_id: str = ""

    # Downstream agent API
    agent_api_url: str = "http://localhost:3456"
    agent_api_key: SecretStr = SecretStr("")

    # Rate Limiting (Security)
    # Route-level throttle on the auth endpoints, on top of the lockout.
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_auth: str = "10/minute"
    rate_limit_enabled: bool = True  # Disable for testing

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate limits and production security requirements.

        Checks:
        - Lifetimes, thresholds and ceilings must be positive (all environments)
        - CORS must not use wildcard origin (all environments)
        - AUTH_PASSWORD must be set in production
        - AUTH_SECRET must be set and >= 32 chars in production
        """
        for name in (
            "otp_ttl_seconds",
            "session_ttl_days",
            "login_max_failures",
            "login_lockout_minutes",
            "otp_max_attempts",
        ):
            value = getattr(self, name)
            if value <= 0:
                msg = f"{name.upper()} must be positive. Got: {value}"
                raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "The chat UI sends an Authorization header cross-origin."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if not self.auth_password.get_secret_value():
                msg = "AUTH_PASSWORD must be set in production."
                raise ValueError(msg)

            secret_value = self.auth_secret.get_secret_value()
            if not secret_value:
                msg = (
                    "AUTH_SECRET must be set in production. "
                    'Generate with: python -c "import secrets; '
                    'print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)
            if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                msg = (
                    f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                    "characters for adequate security."
                )
                raise ValueError(msg)

        return self


settings = Settings()
