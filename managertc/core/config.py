from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    """Environment-driven settings, read once at import from the process env and ``.env``."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    APP_NAME: str = "manageRTC HR Backend"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "production"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Storage. DATABASE_URL overrides the MySQL parts below.
    DATABASE_URL: Optional[str] = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "root"
    DB_PASSWORD: str = "root"
    DB_NAME: str = "managertc"
    DB_CHARSET: str = "utf8mb4"

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    CACHE_ENABLED: bool = True
    CACHE_TTL: int = 300

    KAFKA_ENABLED: bool = False
    KAFKA_BOOTSTRAP_SERVERS: str = "localhost:9092"

    # Tokens are issued by an external identity provider and only verified here.
    AUTH_ISSUER_URL: str = ""
    AUTH_JWKS_URL: str = ""
    JWT_AUDIENCE: Optional[str] = None

    CORS_ORIGINS: str = "http://localhost:3000"
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = ["*"]
    CORS_ALLOW_HEADERS: List[str] = ["*"]

    SOCKET_RATE_LIMIT: int = 100
    SOCKET_RATE_WINDOW_SECONDS: int = 60

    EXPORT_DIR: str = "exports"
    EXPORT_CLEANUP_SECONDS: int = 3600

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    def _mysql_url(self, database: Optional[str]) -> URL:
        return URL.create(
            "mysql+pymysql",
            username=self.DB_USER,
            password=self.DB_PASSWORD,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=database,
            query={"charset": self.DB_CHARSET},
        )

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return self._mysql_url(self.DB_NAME).render_as_string(hide_password=False)

    @property
    def database_url_without_db(self) -> str:
        """Server-level URL used to create the schema before the engine connects to it."""
        return self._mysql_url(None).render_as_string(hide_password=False)


settings = Settings()
