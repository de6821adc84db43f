from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "StockBox API"
    APP_PORT: int = 3000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_VERSION: str = "v1"
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Authentication
    SECRET_KEY: str = "stockbox-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours

    # Database (SQL Server)
    DB_SERVER: str = "localhost"
    DB_PORT: int = 1433
    DB_USER: str = "sa"
    DB_PASSWORD: str = ""
    DB_NAME: str = "stockbox"
    DB_DRIVER: str = "ODBC Driver 18 for SQL Server"
    DB_ENCRYPT: bool = True
    DB_TRUST_SERVER_CERTIFICATE: bool = False
    DB_POOL_SIZE: int = 10
    DB_POOL_TIMEOUT: int = 30
    DATABASE_URL_OVERRIDE: Optional[str] = None

    # Web frontend
    API_BASE_URL: str = "http://localhost:3000/api/v1/internal"
    QUERY_STALE_SECONDS: int = 2 * 60

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        encrypt = "yes" if self.DB_ENCRYPT else "no"
        trust = "yes" if self.DB_TRUST_SERVER_CERTIFICATE else "no"
        return (
            f"mssql+pyodbc://{quote_plus(self.DB_USER)}:{quote_plus(self.DB_PASSWORD)}"
            f"@{self.DB_SERVER}:{self.DB_PORT}/{self.DB_NAME}"
            f"?driver={quote_plus(self.DB_DRIVER)}&Encrypt={encrypt}&TrustServerCertificate={trust}"
        )

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
