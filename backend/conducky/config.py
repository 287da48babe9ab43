import json
import os
import threading
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field


load_dotenv()

ALLOWED_DATABASE_SCHEMES = {"postgresql+asyncpg", "sqlite+aiosqlite"}
ALLOWED_EMAIL_PROVIDERS = {"console", "http"}
ALLOWED_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean value")


def _parse_positive_int(name: str, raw: str | int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value <= 0:
        raise ValueError(f"{name} must be greater than 0")
    return value


def _parse_origins(raw_allowed_origins: str) -> list[str]:
    # Support both CSV format and JSON array format
    if raw_allowed_origins.startswith("["):
        try:
            parsed_list = json.loads(raw_allowed_origins)
        except json.JSONDecodeError as exc:
            raise ValueError(f"ALLOWED_ORIGINS JSON is malformed: {exc}") from exc
        if not isinstance(parsed_list, list):
            raise ValueError("ALLOWED_ORIGINS JSON must be an array")
        allowed_origins = [
            origin.strip() for origin in parsed_list if isinstance(origin, str) and origin.strip()
        ]
    else:
        allowed_origins = [
            origin.strip() for origin in raw_allowed_origins.split(",") if origin.strip()
        ]

    if not allowed_origins:
        raise ValueError("ALLOWED_ORIGINS must contain at least one origin")
    if "*" in allowed_origins:
        raise ValueError(
            "ALLOWED_ORIGINS cannot contain '*' when credentialed requests are used"
        )
    for origin in allowed_origins:
        parsed = urlparse(origin)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                "ALLOWED_ORIGINS must contain valid http/https origins with host"
            )
    return allowed_origins


class Settings(BaseModel):
    app_name: str = Field(default="Conducky Backend")
    debug: bool = Field(default=False)
    database_url: str = Field(default="")
    redis_url: str = Field(default="redis://localhost:6379/0")
    allowed_origins: list[str] = Field(default_factory=list)
    secret_key: str | None = Field(default=None)
    algorithm: str = Field(default="HS256")
    app_base_url: str = Field(default="http://localhost:3000")
    anonymous_reports: bool = Field(default=False)
    email_provider: str = Field(default="console")
    email_api_url: str | None = Field(default=None)
    email_api_key: str | None = Field(default=None)
    email_from: str = Field(default="noreply@conducky.local")
    notification_max_concurrency: int = Field(default=10)
    password_reset_max_attempts: int = Field(default=3)
    password_reset_window_seconds: int = Field(default=900)
    log_level: str = Field(default="INFO")

    @classmethod
    def from_env(cls) -> "Settings":
        secret_key = os.getenv("SECRET_KEY", "").strip()
        if not secret_key:
            raise ValueError("SECRET_KEY environment variable must be set")

        raw_allowed_origins = os.getenv("ALLOWED_ORIGINS", "").strip()
        if not raw_allowed_origins:
            raise ValueError("ALLOWED_ORIGINS environment variable must be set")
        allowed_origins = _parse_origins(raw_allowed_origins)

        database_url = os.getenv("DATABASE_URL", "").strip()
        if not database_url:
            raise ValueError("DATABASE_URL environment variable must be set")
        parsed_db = urlparse(database_url)
        if parsed_db.scheme not in ALLOWED_DATABASE_SCHEMES:
            raise ValueError(
                "DATABASE_URL must start with 'postgresql+asyncpg://' or 'sqlite+aiosqlite://'"
            )
        if parsed_db.scheme == "postgresql+asyncpg" and not parsed_db.hostname:
            raise ValueError("DATABASE_URL must include hostname")

        app_base_url = os.getenv(
            "APP_BASE_URL", cls.model_fields["app_base_url"].default
        ).strip().rstrip("/")
        parsed_base = urlparse(app_base_url)
        if parsed_base.scheme not in {"http", "https"} or not parsed_base.netloc:
            raise ValueError("APP_BASE_URL must be a valid http/https URL")

        email_provider = os.getenv(
            "EMAIL_PROVIDER", cls.model_fields["email_provider"].default
        ).strip().lower()
        if email_provider not in ALLOWED_EMAIL_PROVIDERS:
            raise ValueError(
                f"EMAIL_PROVIDER must be one of: {', '.join(sorted(ALLOWED_EMAIL_PROVIDERS))}"
            )
        email_api_url = os.getenv("EMAIL_API_URL", "").strip() or None
        if email_provider == "http" and not email_api_url:
            raise ValueError("EMAIL_API_URL must be set when EMAIL_PROVIDER=http")

        log_level = os.getenv("LOG_LEVEL", cls.model_fields["log_level"].default).strip().upper()
        if log_level not in ALLOWED_LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of: {', '.join(ALLOWED_LOG_LEVELS)}")

        return cls(
            app_name=os.getenv("APP_NAME", cls.model_fields["app_name"].default),
            debug=_parse_bool("DEBUG", os.getenv("DEBUG", "false")),
            database_url=database_url,
            redis_url=os.getenv("REDIS_URL", cls.model_fields["redis_url"].default).strip(),
            allowed_origins=allowed_origins,
            secret_key=secret_key,
            algorithm=os.getenv("ALGORITHM", cls.model_fields["algorithm"].default),
            app_base_url=app_base_url,
            anonymous_reports=_parse_bool(
                "ANONYMOUS_REPORTS", os.getenv("ANONYMOUS_REPORTS", "false")
            ),
            email_provider=email_provider,
            email_api_url=email_api_url,
            email_api_key=os.getenv("EMAIL_API_KEY", "").strip() or None,
            email_from=os.getenv("EMAIL_FROM", cls.model_fields["email_from"].default).strip(),
            notification_max_concurrency=_parse_positive_int(
                "NOTIFICATION_MAX_CONCURRENCY",
                os.getenv(
                    "NOTIFICATION_MAX_CONCURRENCY",
                    cls.model_fields["notification_max_concurrency"].default,
                ),
            ),
            password_reset_max_attempts=_parse_positive_int(
                "PASSWORD_RESET_MAX_ATTEMPTS",
                os.getenv(
                    "PASSWORD_RESET_MAX_ATTEMPTS",
                    cls.model_fields["password_reset_max_attempts"].default,
                ),
            ),
            password_reset_window_seconds=_parse_positive_int(
                "PASSWORD_RESET_WINDOW_SECONDS",
                os.getenv(
                    "PASSWORD_RESET_WINDOW_SECONDS",
                    cls.model_fields["password_reset_window_seconds"].default,
                ),
            ),
            log_level=log_level,
        )


_settings_instance: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get settings instance, creating it on first access.

    The module can be imported without environment validation; validation
    happens on first access (typically during startup).

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    global _settings_instance

    if _settings_instance is not None:
        return _settings_instance

    with _settings_lock:
        if _settings_instance is None:
            _settings_instance = Settings.from_env()

    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings_instance
    with _settings_lock:
        _settings_instance = None


class _SettingsProxy:
    """Proxy to defer settings creation until first attribute access."""

    def __getattr__(self, name: str):
        return getattr(get_settings(), name)


settings = _SettingsProxy()  # type: ignore[assignment]
