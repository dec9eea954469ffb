# backend/app/config.py
import os
from pathlib import Path
from dotenv import load_dotenv

BACKEND_DIR = Path(__file__).resolve().parents[1]   # backend/
REPO_DIR = BACKEND_DIR.parent                        # repo root

ENV_BACKEND = BACKEND_DIR / ".env"
ENV_REPO = REPO_DIR / ".env"
ENV_FILE = ENV_BACKEND if ENV_BACKEND.exists() else ENV_REPO

load_dotenv(dotenv_path=str(ENV_FILE), override=False)


def _build_database_url() -> str:
    """Use DATABASE_URL directly, else individual Postgres components, else local SQLite."""
    direct_url = os.getenv("DATABASE_URL")
    if direct_url:
        return direct_url

    host = os.getenv("DB_HOST")
    if host:
        from urllib.parse import quote_plus

        port = os.getenv("DB_PORT", "5432")
        user = os.getenv("DB_USER", "postgres")
        password = quote_plus(os.getenv("DB_PASSWORD", ""))
        db = os.getenv("DB_NAME", "postgres")
        return f"postgresql://{user}:{password}@{host}:{port}/{db}"

    return "sqlite:///./cei_calls.db"


def _parse_origins(raw: str) -> list[str]:
    # split, strip, drop empties, drop trailing slashes
    out = []
    for o in (raw or "").split(","):
        o = (o or "").strip().rstrip("/")
        if o:
            out.append(o)
    return out


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


class Settings:
    DATABASE_URL: str = _build_database_url()

    # ================= Environment / Logging =================
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: str | None = os.getenv("LOG_FILE")

    CORS_ORIGINS: list[str] = _parse_origins(
        os.getenv(
            "CORS_ORIGINS",
            "http://127.0.0.1:5173,http://localhost:5173,http://127.0.0.1:3000,http://localhost:3000",
        )
    )

    # ================= ElevenLabs Configuration =================
    ELEVENLABS_API_KEY: str | None = os.getenv("ELEVENLABS_API_KEY")

    # Shared secret for post-call webhooks. Unset means UNSIGNED mode:
    # every webhook is accepted without verification (logged loudly).
    ELEVENLABS_WEBHOOK_SECRET: str | None = os.getenv("ELEVENLABS_WEBHOOK_SECRET")

    ELEVENLABS_BASE_URL: str = os.getenv("ELEVENLABS_BASE_URL", "https://api.elevenlabs.io")
    ELEVENLABS_AGENT_NAME: str = os.getenv("ELEVENLABS_AGENT_NAME", "Jess")

    # ================= Twilio (SMS alerts) =================
    TWILIO_ACCOUNT_SID: str | None = os.getenv("TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN: str | None = os.getenv("TWILIO_AUTH_TOKEN")
    TWILIO_PHONE_NUMBER: str | None = os.getenv("TWILIO_PHONE_NUMBER")

    # Fixed operations number that receives the post-call summary
    OPS_ALERT_PHONE: str | None = os.getenv("OPS_ALERT_PHONE")

    # Bound on any outbound call (enrichment lookup, SMS delivery)
    OUTBOUND_TIMEOUT_SECONDS: float = _float_env("OUTBOUND_TIMEOUT_SECONDS", 10.0)

    # ================= Call matching / owner resolution =================
    CALL_MATCH_EXTERNAL_ID_WINDOW_MINUTES: int = _int_env("CALL_MATCH_EXTERNAL_ID_WINDOW_MINUTES", 60)
    CALL_MATCH_PLACEHOLDER_WINDOW_MINUTES: int = _int_env("CALL_MATCH_PLACEHOLDER_WINDOW_MINUTES", 30)
    RECENT_LEAD_WINDOW_MINUTES: int = _int_env("RECENT_LEAD_WINDOW_MINUTES", 10)
    DEFAULT_OWNER_ID: str | None = os.getenv("DEFAULT_OWNER_ID")

    @property
    def webhook_trust_mode(self) -> str:
        return "hmac" if (self.ELEVENLABS_WEBHOOK_SECRET or "").strip() else "unsigned"


settings = Settings()


# =============================================================================
# CONFIGURATION VALIDATION
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def validate_config(raise_on_error: bool = True) -> dict:
    """
    Validate all configuration settings.

    Args:
        raise_on_error: If True, raises ConfigValidationError on critical errors.
                       If False, returns dict with errors and warnings.

    Returns:
        Dict with 'errors' (critical) and 'warnings' (non-critical) lists.
    """
    errors = []
    warnings = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is required")

    if settings.webhook_trust_mode == "unsigned":
        warnings.append(
            "ELEVENLABS_WEBHOOK_SECRET missing - UNSIGNED MODE: post-call webhooks are accepted without verification"
        )

    if not settings.ELEVENLABS_API_KEY:
        warnings.append("ELEVENLABS_API_KEY missing - conversation summary enrichment disabled")

    twilio_parts = [settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN, settings.TWILIO_PHONE_NUMBER]
    if not all(twilio_parts):
        warnings.append("Twilio credentials incomplete - SMS call alerts disabled")
    if not settings.OPS_ALERT_PHONE:
        warnings.append("OPS_ALERT_PHONE missing - SMS call alerts disabled")

    if settings.ENVIRONMENT == "production":
        if settings.DATABASE_URL.startswith("sqlite"):
            warnings.append("DATABASE_URL points at SQLite in production")
        if not settings.CORS_ORIGINS or any("localhost" in o for o in settings.CORS_ORIGINS):
            warnings.append("CORS_ORIGINS includes localhost in production - consider restricting")

    result = {"errors": errors, "warnings": warnings}

    if raise_on_error and errors:
        raise ConfigValidationError(f"Configuration errors: {'; '.join(errors)}")

    return result


def get_config_status() -> dict:
    """Configuration presence flags for health check endpoints (never values)."""
    return {
        "environment": settings.ENVIRONMENT,
        "database_configured": bool(settings.DATABASE_URL),
        "webhook_trust_mode": settings.webhook_trust_mode,
        "elevenlabs_enrichment_configured": bool(settings.ELEVENLABS_API_KEY),
        "sms_alerts_configured": all([
            settings.TWILIO_ACCOUNT_SID,
            settings.TWILIO_AUTH_TOKEN,
            settings.TWILIO_PHONE_NUMBER,
            settings.OPS_ALERT_PHONE,
        ]),
        "default_owner_configured": bool(settings.DEFAULT_OWNER_ID),
    }
