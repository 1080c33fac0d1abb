from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    DATABASE_URL: str = "sqlite+aiosqlite:///./satsgame.db"
    REDIS_URL: str = "redis://localhost:6379/0"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440
    CORS_ORIGINS: str = ""
    LOG_LEVEL: str = "INFO"

    # Ledger rules
    BASE_ASSET: str = "BTC"
    INITIAL_GRANT_SATS: int = 100_000_000
    MIN_TRADE_SATS: int = 100_000
    LOCK_DURATION_HOURS: int = 24

    PRICE_CACHE_TTL_SECONDS: int = 60
    AUDIT_CRON_HOUR: int = 3

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def convert_database_url(cls, v):
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

settings = Settings()
