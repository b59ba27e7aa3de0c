# auth_api/core/config.py
import os
from typing import ClassVar, List

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _default_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url and url.strip():
        return url
    data_dir = os.path.abspath(os.getenv("DATA_DIR", "./data"))
    os.makedirs(data_dir, exist_ok=True)
    return f"sqlite:///{os.path.join(data_dir, 'auth.db')}"


class Settings(BaseModel):
    # Constant (not a pydantic field)
    DATA_DIR: ClassVar[str] = os.path.abspath(os.getenv("DATA_DIR", "./data"))

    DATABASE_URL: str = Field(default_factory=_default_database_url)

    # Access tokens
    SECRET_KEY: str = Field(default_factory=lambda: os.getenv("SECRET_KEY", "CHANGE_ME_SUPER_SECRET"))
    ALGORITHM: str = Field(default_factory=lambda: os.getenv("JWT_ALGORITHM", "HS256"))
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default_factory=lambda: int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")))

    # Refresh tokens
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default_factory=lambda: int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7")))
    REFRESH_TOKEN_ROTATION: bool = Field(default_factory=lambda: _env_bool("REFRESH_TOKEN_ROTATION", "false"))

    # Ephemeral tokens; 0 hours = verification tokens never expire
    PASSWORD_RESET_TOKEN_EXPIRE_MINUTES: int = Field(default_factory=lambda: int(os.getenv("PASSWORD_RESET_TOKEN_EXPIRE_MINUTES", "60")))
    EMAIL_VERIFICATION_TOKEN_EXPIRE_HOURS: int = Field(default_factory=lambda: int(os.getenv("EMAIL_VERIFICATION_TOKEN_EXPIRE_HOURS", "24")))

    BCRYPT_ROUNDS: int = Field(default_factory=lambda: int(os.getenv("BCRYPT_ROUNDS", "10")), ge=4, le=31)

    # Links sent by the notifier point here
    FRONTEND_URL: str = Field(default_factory=lambda: os.getenv("FRONTEND_URL", "http://localhost:3000"))

    CLEANUP_INTERVAL_SECONDS: int = Field(default_factory=lambda: int(os.getenv("CLEANUP_INTERVAL_SECONDS", "3600")))
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(default_factory=lambda: _env_bool("RUN_MIGRATIONS_ON_STARTUP", "true"))

    # Seeded on startup when both are set
    ADMIN_EMAIL: str | None = Field(default_factory=lambda: os.getenv("ADMIN_EMAIL") or None)
    ADMIN_PASSWORD: str | None = Field(default_factory=lambda: os.getenv("ADMIN_PASSWORD") or None)

    METRICS_ENABLED: bool = Field(default_factory=lambda: _env_bool("METRICS_ENABLED", "true"))
    LOG_LEVEL: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    )
