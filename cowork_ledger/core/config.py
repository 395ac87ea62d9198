from datetime import date

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Cowork Ledger"
    version: str = "0.1.0"
    DEBUG: bool = False
    APP_DATA_PATH: str = "/tmp"
    APP_DATABASE_DSN: str = "sqlite:////tmp/cowork_ledger.db"
    REDIS_URL: str = "redis://localhost:6379"

    # Stats cache (closed periods only)
    STATS_CACHE_PATH: str = "/tmp/cowork_ledger/cache.json"
    STATS_CACHE_FLUSH_DELAY: float = 10.0  # seconds after the last mutation
    STATS_CONCURRENCY: int = 8  # in-flight ledger reads per request

    # Operating costs, JSON list of {"from", "to", "amount"}
    PERIODIC_CHARGES_PATH: str = ""

    # Ticket pricing
    TICKET_UNIT_PRICE: float = 6.0
    TICKET_PRICING_START: date = date(2017, 2, 1)

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"


settings = Settings()
