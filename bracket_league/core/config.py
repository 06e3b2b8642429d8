from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATA_DIR: str = "data"
    LOCK_TIMEOUT_SECONDS: float = 10.0
    LOG_LEVEL: str = "INFO"
    # Comma separated; empty means admin routes are open (local development)
    ADMIN_WALLETS: str = ""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def admin_wallets(self) -> List[str]:
        return [w.strip().lower() for w in self.ADMIN_WALLETS.split(",") if w.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
