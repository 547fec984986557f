import os
from pathlib import Path
from typing import Optional, List

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env file if exists
env_path = BASE_DIR / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    try:
        return int(value) if value else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    try:
        return float(value) if value else default
    except ValueError:
        return default


class Settings:
    """
    Runtime configuration, read from the environment when instantiated.

    Tests build their own instance after patching the environment; the
    module-level ``settings`` is what the running server uses.
    """

    def __init__(self):
        # JWT Settings
        self.jwt_secret_key: str = os.getenv("JWT_SECRET_KEY", "your-secret-key-change-in-production")
        self.jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
        self.jwt_expire_days: int = _env_int("JWT_EXPIRE_DAYS", 7)
        self.bcrypt_rounds: int = _env_int("BCRYPT_ROUNDS", 12)

        # CORS Settings
        self.cors_origins: List[str] = os.getenv(
            "CORS_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000"
        ).split(",")

        # Key-value store. No REDIS_URL means an in-process store.
        self.redis_url: Optional[str] = os.getenv("REDIS_URL") or None
        self.redis_socket_timeout: float = _env_float("REDIS_SOCKET_TIMEOUT", 5.0)
        self.kv_fallback_enabled: bool = _env_bool("KV_FALLBACK_ENABLED", True)

        # none | lock | cas
        self.concurrency_strategy: str = os.getenv("CONCURRENCY_STRATEGY", "lock").strip().lower()
        self.cas_max_attempts: int = _env_int("CAS_MAX_ATTEMPTS", 5)

        # Recommendations
        self.recommendation_ttl_hours: float = _env_float("RECOMMENDATION_TTL_HOURS", 24.0)
        # time | ratings
        self.recommendation_invalidation: str = os.getenv("RECOMMENDATION_INVALIDATION", "time").strip().lower()
        self.recommendation_default_count: int = _env_int("RECOMMENDATION_DEFAULT_COUNT", 5)

        # OpenAI (optional, recommendations are unavailable without it)
        self.openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY") or None
        self.openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.openai_timeout_seconds: float = _env_float("OPENAI_TIMEOUT_SECONDS", 30.0)

        # Admin API is disabled unless a secret is set
        self.admin_secret: Optional[str] = os.getenv("ADMIN_SECRET") or None

        self.request_timeout_seconds: float = _env_float("REQUEST_TIMEOUT_SECONDS", 120.0)
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
