"""
Application configuration using Pydantic Settings.

Configuration is layered. Pydantic Settings resolves each field from, in
order of priority:
  1. Keyword arguments passed to Settings(...) (used by tests)
  2. Environment variables
  3. The .env file
  4. A YAML config file (path taken from USER_SERVICE_CONFIG, default
     "config.yaml"; a missing file is simply skipped)
  5. Defaults defined here

There is no module-level settings instance. The entry point
builds one Settings object and hands it to create_app(), which passes the
pieces each component needs into its constructor.

Usage:
    from user_service.config import Settings
    settings = Settings()
    print(settings.database_url)
"""

import os

from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)
from sqlalchemy.engine import URL

CONFIG_FILE_ENV = "USER_SERVICE_CONFIG"
DEFAULT_CONFIG_FILE = "config.yaml"

# Log level used for each mode when LOG_LEVEL is not set explicitly
_MODE_LOG_LEVELS = {
    "debug": "DEBUG",
    "test": "INFO",
    "production": "WARNING",
}


class Settings(BaseSettings):
    """
    Central configuration for the User Service.

    Required fields (no defaults) MUST be set in the environment, .env or
    the YAML file:
      - JWT_SECRET: Shared secret used to sign bearer tokens
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    APP_NAME: str = "User Service"
    APP_VERSION: str = "0.1.0"
    # debug | test | production
    APP_MODE: str = "debug"
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    LOG_LEVEL: str | None = None

    # --- Database ---
    # A full URL wins; otherwise the URL is assembled from the DB_* parts.
    DATABASE_URL: str | None = None
    DB_DRIVER: str = "sqlite+aiosqlite"
    DB_HOST: str | None = None
    DB_PORT: int | None = None
    DB_USER: str | None = None
    DB_PASSWORD: str | None = None
    DB_NAME: str = "./data/users.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 90

    # --- Authentication ---
    # REQUIRED: No default, forces the operator to set a real secret
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_HOURS: int = 24
    JWT_ISSUER: str = "user-service"

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["*"]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        yaml_file = os.environ.get(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file),
            file_secret_settings,
        )

    @property
    def database_url(self) -> str:
        """The SQLAlchemy URL, either given directly or built from DB_* parts."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        url = URL.create(
            drivername=self.DB_DRIVER,
            username=self.DB_USER,
            password=self.DB_PASSWORD,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
        )
        return url.render_as_string(hide_password=False)

    @property
    def debug(self) -> bool:
        return self.APP_MODE == "debug"

    @property
    def log_level(self) -> str:
        if self.LOG_LEVEL:
            return self.LOG_LEVEL.upper()
        return _MODE_LOG_LEVELS.get(self.APP_MODE, "INFO")
