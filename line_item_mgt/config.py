# line_item_mgt/config.py
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # Database Configuration
    database_url: str = Field("sqlite+aiosqlite:///./line_item_mgt.db", env="DATABASE_URL")
    database_echo: bool = Field(False, env="DATABASE_ECHO")

    # Storage Configuration
    storage_key: str = Field("line-item-mgt-users", env="STORAGE_KEY")

    # Clock Configuration
    tick_interval_seconds: float = Field(1.0, env="TICK_INTERVAL_SECONDS")
    display_timezone: str = Field("Asia/Tokyo", env="DISPLAY_TIMEZONE")

    # API Configuration
    api_host: str = Field("127.0.0.1", env="API_HOST")
    api_port: int = Field(8000, env="API_PORT")

    # Logging Configuration
    log_level: str = Field("INFO", env="LOG_LEVEL")

    class Config:
        env_file = ".env"

settings = Settings()
