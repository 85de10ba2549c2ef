import sys
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database path - can be overridden via DATABASE_PATH env var for Docker
    database_path: str = "account_requests.db"
    # JWT_SECRET must be set via environment variable - no default
    jwt_secret: str = ""
    # Environment: "dev" (default) or "prod"
    env: str = "dev"
    # CORS origins for prod (comma-separated)
    cors_origins: str = ""
    # Outgoing email: "console" logs messages, "memory" keeps them in an outbox
    email_backend: str = "console"
    email_sender: str = "no-reply@peerfeedback.local"
    # Base URL of the frontend, used to build registration links in emails
    frontend_url: str = "http://localhost:8000"
    # Product name shown in validation messages
    app_name: str = "PeerFeedback"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


def _load_settings() -> Settings:
    """Load settings and validate critical security requirements."""
    s = Settings()

    # JWT_SECRET is required - no hardcoded fallback
    if not s.jwt_secret:
        print("ERROR: JWT_SECRET environment variable is required but not set.", file=sys.stderr)
        print("Set JWT_SECRET to a secure random string (at least 32 characters).", file=sys.stderr)
        sys.exit(1)

    if len(s.jwt_secret) < 32:
        print("ERROR: JWT_SECRET must be at least 32 characters.", file=sys.stderr)
        sys.exit(1)

    if s.email_backend not in ("console", "memory"):
        print(f"ERROR: EMAIL_BACKEND must be 'console' or 'memory', got '{s.email_backend}'.", file=sys.stderr)
        sys.exit(1)

    return s


settings = _load_settings()
