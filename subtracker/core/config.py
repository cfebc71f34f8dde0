import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.app_env = os.getenv("APP_ENV", "development").strip().lower()
        self.jwt_secret = self._get("JWT_SECRET")
        self.session_ttl_days = self._get_int("SESSION_TTL_DAYS", default=7)
        self.reset_token_ttl_minutes = self._get_int("RESET_TOKEN_TTL_MINUTES", default=60)
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/subtracker.db")).resolve()
        self.db_pool_size = self._get_int("DB_POOL_SIZE", default=10)
        self.db_pool_timeout = self._get_int("DB_POOL_TIMEOUT", default=10)
        self.bcrypt_rounds = self._get_int("BCRYPT_ROUNDS", default=12)
        self.admin_user_id = self._get_optional_int("ADMIN_USER_ID")
        self.smtp_host = os.getenv("SMTP_HOST")
        self.smtp_port = self._get_int("SMTP_PORT", default=587)
        self.smtp_username = os.getenv("SMTP_USERNAME")
        self.smtp_password = os.getenv("SMTP_PASSWORD")
        self.smtp_from_email = os.getenv("SMTP_FROM_EMAIL")
        self.frontend_base_url = os.getenv("FRONTEND_BASE_URL", "http://localhost:3000")
        self.notification_workers = self._get_int("NOTIFICATION_WORKERS", default=2)
        self.cookie_secure = self._get_bool("COOKIE_SECURE", default=self.app_env == "production")
        self.cors_allow_origins = self._get_list("CORS_ALLOW_ORIGINS", default=[self.frontend_base_url])

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @staticmethod
    def _get(key: str) -> str:
        value = os.getenv(key)
        if not value:
            raise RuntimeError(f"Missing required environment variable: {key}")
        return value

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc

    @classmethod
    def _get_optional_int(cls, key: str) -> Optional[int]:
        if not os.getenv(key):
            return None
        return cls._get_int(key)

    @staticmethod
    def _get_bool(key: str, default: bool = False) -> bool:
        value = os.getenv(key)
        if value is None or not value.strip():
            return default
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise RuntimeError(f"Environment variable {key} must be a boolean")

    @staticmethod
    def _get_list(key: str, default: List[str]) -> List[str]:
        value = os.getenv(key)
        if not value:
            return list(default)
        return [item.strip() for item in value.split(",") if item.strip()]
