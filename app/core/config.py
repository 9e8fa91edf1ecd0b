from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Dealer Deal Room"
    environment: str = "dev"
    log_level: str = "INFO"
    app_base_url: str = "http://localhost:3000"

    # ─────────── API ───────────
    api_prefix: str = "/api/v1"
    request_id_header: str = "X-Request-Id"

    # ─────────── DATABASE ───────────
    database_url: str = "sqlite:///./dealroom.db"

    # ─────────── JWT / AUTH ───────────
    jwt_secret_key: str = "dev-only-change-me"
    jwt_algorithm: str = "HS256"
    jwt_access_token_minutes: int = 1440  # 24 hours

    # ─────────── EMAIL ───────────
    email_api_url: Optional[str] = None  # unset = email disabled
    email_api_key: Optional[str] = None
    email_sender: str = "deals@dealroom.local"
    email_timeout_seconds: float = 10.0

    # ─────────── DEALS ───────────
    max_conflict_retries: int = 3
    amount_unit_rupees: int = 100000  # one lakh


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
