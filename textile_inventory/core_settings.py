from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    SERVICE_NAME: str = "textile-inventory-service"
    SERVICE_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "textile"
    POSTGRES_USER: str = "textile"
    POSTGRES_PASSWORD: str = "textile"
    # Full SQLAlchemy URL; wins over the POSTGRES_* parts when set
    DATABASE_URL: Optional[str] = None
    RUN_MIGRATIONS_ON_STARTUP: bool = True

    # Sale price = weighted cost x markup
    THREAD_PURCHASE_MARKUP: Decimal = Decimal("1.2")
    DYED_THREAD_MARKUP: Decimal = Decimal("1.2")
    FABRIC_MARKUP: Decimal = Decimal("1.3")
    MANUAL_TRANSACTION_MARKUP: Decimal = Decimal("1.2")

    THREAD_LOCATION: str = "Warehouse"
    DYED_THREAD_LOCATION: str = "Dye Facility"
    FABRIC_LOCATION: str = "Production Floor"
    THREAD_MIN_STOCK_LEVEL: int = 100
    DYED_THREAD_MIN_STOCK_LEVEL: int = 100
    FABRIC_MIN_STOCK_LEVEL: int = 50

    SYNC_TASK_MAX_ATTEMPTS: int = 5

    class Config:
        env_file = ".env"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
