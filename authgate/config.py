import os
from pathlib import Path

from dotenv import load_dotenv


_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent

# Root .env is canonical; authgate/.env remains a fallback for local runs.
load_dotenv(_PROJECT_ROOT / ".env")
load_dotenv(_PACKAGE_DIR / ".env")

_PLACEHOLDER = "change-me-in-production"


def _first_non_empty_env(*names: str, default: str) -> str:
    """Returns the first non-empty env var value from `names`, else `default`."""
    for name in names:
        value = os.getenv(name)
        if value is not None and value != "":
            return value
    return default


def _parse_int_env(*names: str, default: int) -> int:
    """Parses the first non-empty env var in `names` as int, else returns `default`."""
    raw = _first_non_empty_env(*names, default=str(default))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _parse_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _parse_list_env(name: str, default: str) -> list[str]:
    raw = _first_non_empty_env(name, default=default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class BaseConfig:

    # Flask secret. Falls back to AUTH_SECRET for compatibility.
    SECRET_KEY: str = _first_non_empty_env(
        "SECRET_KEY",
        "AUTH_SECRET",
        default=_PLACEHOLDER,
    )

    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False

    JSON_SORT_KEYS: bool = False

    # ── Session tokens ─────────────────────────────────────────────────────
    # Durations are "<digits><m|h|d>" strings. They are parsed once, in
    # AuthSettings.from_config(), when the app is created.
    AUTH_SECRET: str = _first_non_empty_env("AUTH_SECRET", default=_PLACEHOLDER)
    AUTH_SECRET_EXPIRES_IN: str = _first_non_empty_env(
        "AUTH_SECRET_EXPIRES_IN", default="15m"
    )
    AUTH_REFRESH_SECRET: str = _first_non_empty_env(
        "AUTH_REFRESH_SECRET", default=_PLACEHOLDER
    )
    AUTH_REFRESH_SECRET_EXPIRES_IN: str = _first_non_empty_env(
        "AUTH_REFRESH_SECRET_EXPIRES_IN", default="24h"
    )
    JWT_ALGORITHM: str = "HS256"

    # ── CSRF (double-submit) ───────────────────────────────────────────────
    CSRF_SECRET: str = _first_non_empty_env(
        "CSRF_SECRET",
        "SECRET_KEY",
        default=_PLACEHOLDER,
    )

    # ── Email verification ─────────────────────────────────────────────────
    EMAIL_VERIFICATION_EXPIRATION: str = _first_non_empty_env(
        "EMAIL_VERIFICATION_EXPIRATION", default="15m"
    )
    EMAIL_HOST: str = _first_non_empty_env("EMAIL_HOST", default="localhost")
    EMAIL_PORT: int = _parse_int_env("EMAIL_PORT", default=587)
    EMAIL_SECURE: bool = _parse_bool_env("EMAIL_SECURE", default=False)
    EMAIL_USER: str = _first_non_empty_env("EMAIL_USER", default="")
    EMAIL_PASS: str = _first_non_empty_env("EMAIL_PASS", default="")
    EMAIL_TIMEOUT_SECONDS: int = _parse_int_env("EMAIL_TIMEOUT_SECONDS", default=10)

    # bcrypt cost factor ("10 rounds").
    BCRYPT_LOG_ROUNDS: int = _parse_int_env("BCRYPT_LOG_ROUNDS", default=10)

    COOKIE_SECURE: bool = False

    CORS_ORIGINS: list[str] = _parse_list_env(
        "CORS_ORIGINS",
        default="http://localhost:3000",
    )


class DevelopmentConfig(BaseConfig):
    DEBUG:   bool = True
    TESTING: bool = False

    SQLALCHEMY_DATABASE_URI: str = os.getenv(
        "DATABASE_URL",
        "sqlite:///authgate.db",
    )
    SQLALCHEMY_ECHO: bool = False


class TestingConfig(BaseConfig):

    DEBUG:   bool = True
    TESTING: bool = True

    SQLALCHEMY_DATABASE_URI: str = os.getenv(
        "TEST_DATABASE_URL",
        "sqlite://",
    )
    SQLALCHEMY_ECHO: bool = False

    # Distinct, fixed secrets so tests never depend on the developer's .env.
    SECRET_KEY: str = "testing-secret-key"
    AUTH_SECRET: str = "testing-access-secret-0123456789abcdef"
    AUTH_REFRESH_SECRET: str = "testing-refresh-secret-0123456789abcdef"
    CSRF_SECRET: str = "testing-csrf-secret-0123456789abcdef"
    AUTH_SECRET_EXPIRES_IN: str = "15m"
    AUTH_REFRESH_SECRET_EXPIRES_IN: str = "24h"
    EMAIL_VERIFICATION_EXPIRATION: str = "15m"

    BCRYPT_LOG_ROUNDS: int = 4


class ProductionConfig(BaseConfig):

    DEBUG:   bool = False
    TESTING: bool = False
    SQLALCHEMY_ECHO: bool = False

    COOKIE_SECURE: bool = True

    # Heroku / Render return 'postgres://' which SQLAlchemy 1.4+ rejects;
    # normalise to 'postgresql://'.
    _raw_db_url: str = os.getenv("DATABASE_URL", "")
    SQLALCHEMY_DATABASE_URI: str = (
        _raw_db_url.replace("postgres://", "postgresql://", 1)
        if _raw_db_url.startswith("postgres://")
        else _raw_db_url
    )


def validate_production_config(app) -> None:
    """
    Fail-fast guard for production configuration.

    Must be called in the app factory immediately after
    app.config.from_object(ProductionConfig):

        app.config.from_object(ProductionConfig)
        validate_production_config(app)   # raises ValueError if misconfigured

    Raises ValueError if any required production value is missing or insecure.
    """
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        raise ValueError(
            "DATABASE_URL environment variable is required in production. "
            "Set it to a valid PostgreSQL connection string."
        )
    for key in ("SECRET_KEY", "AUTH_SECRET", "AUTH_REFRESH_SECRET", "CSRF_SECRET"):
        if app.config.get(key) == _PLACEHOLDER:
            raise ValueError(
                f"{key} must be set to a strong random value in production. "
                "Do not use the default placeholder."
            )
    if app.config.get("AUTH_SECRET") == app.config.get("AUTH_REFRESH_SECRET"):
        raise ValueError(
            "AUTH_SECRET and AUTH_REFRESH_SECRET must differ, otherwise an "
            "access token would verify as a refresh token."
        )


# ── Config selector ────────────────────────────────────────────────────────
#
# Used by the app factory:
#   from authgate.config import config_by_name
#   app.config.from_object(config_by_name[flask_env])
# ──────────────────────────────────────────────────────────────────────────

config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
}
