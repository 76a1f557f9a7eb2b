from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Metadata database (projects, datasets, source files)
    DATABASE_URL: str
    # init_db waits for the database this many times, DB_CONNECT_RETRY_SECONDS apart
    DB_CONNECT_ATTEMPTS: int = 30
    DB_CONNECT_RETRY_SECONDS: float = 2.0

    # Warehouse holding the dynamic dataset tables. Falls back to DATABASE_URL.
    DWH_DATABASE_URL: Optional[str] = None

    # App Configuration
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Datahub Backend"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Cache / Redis (also the Celery broker)
    REDIS_URL: Optional[str] = None
    REDIS_PASSWORD: Optional[str] = None
    CACHE_TTL_SECONDS: int = 300

    # Uploaded source files are written here; API and worker must share it.
    UPLOAD_DIR: str = "uploads"

    # Import source files inside the request instead of queueing a Celery task.
    PROCESS_IMPORT_SYNC: bool = False
    IMPORT_BATCH_SIZE: int = 1000
    IMPORT_QUEUE: str = "imports"
    IMPORT_TASK_TIME_LIMIT: int = 1200

    DEFAULT_PER_PAGE: int = 10

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8080",
    ]

    @property
    def dwh_database_url(self) -> str:
        return self.DWH_DATABASE_URL or self.DATABASE_URL

    @model_validator(mode='after')
    def assemble_redis_url(self) -> 'Settings':
        if self.REDIS_PASSWORD and self.REDIS_URL:
            # URL already carries credentials (redis://:password@host)
            if "@" in self.REDIS_URL:
                return self

            import urllib.parse
            if "redis://" in self.REDIS_URL:
                encoded_pwd = urllib.parse.quote_plus(self.REDIS_PASSWORD)
                self.REDIS_URL = self.REDIS_URL.replace("redis://", f"redis://:{encoded_pwd}@", 1)
        return self

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
