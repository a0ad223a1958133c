"""
Stockgate — Configuration
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    SERVICE_NAME: str = "stockgate"
    SERVICE_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8003

    # ── PostgreSQL ────────────────────────────────────────────
    POSTGRES_HOST: str = "stock-db"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "marketplace"
    POSTGRES_USER: str = "storefront"
    POSTGRES_PASSWORD: str = "storefront_pass"

    # Explicit URLs win over the POSTGRES_* parts
    DATABASE_URL: str | None = None
    # Privileged role used only by the batch decrementer
    LEDGER_DATABASE_URL: str | None = None
    LEDGER_SERVICE_TOKEN: str = "CHANGE_ME_IN_PRODUCTION"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def ledger_database_url(self) -> str:
        return self.LEDGER_DATABASE_URL or self.database_url

    # ── Redis ─────────────────────────────────────────────────
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # ── Checkout ──────────────────────────────────────────────
    CHECKOUT_COOLDOWN_SECONDS: int = 60
    ADMISSION_TIMEOUT_SECONDS: float = 10.0
    MAX_CART_LINES: int = 50

    # ── Observability ─────────────────────────────────────────
    METRICS_ENABLED: bool = True
    HEALTH_CHECK_TIMEOUT: float = 5.0


@lru_cache()
def get_settings() -> Settings:
    return Settings()
