from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "solar"
    POSTGRES_USER: str = "solar"
    POSTGRES_PASSWORD: str = "solar"
    # Overrides the Postgres settings above, e.g. "sqlite://" for local runs
    DATABASE_URL: Optional[str] = None
    DB_ECHO: bool = False
    # Run "alembic upgrade head" on startup before creating missing tables
    RUN_MIGRATIONS: bool = False

    JWT_SECRET: str = "change-me"
    JWT_ALG: str = "HS256"
    ADMIN_ROLES: list[str] = ["admin"]

    SERVICE_NAME: str = "solar-orders"
    SERVICE_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

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
