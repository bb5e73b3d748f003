"""Application configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the task manager client."""
    model_config = SettingsConfigDict(env_prefix="TASKAPP_", extra="ignore")

    base_url: str = "https://task-manager-backend-nest-js-1.onrender.com"
    auth_path: str = "user"
    request_timeout_seconds: float = 30.0
    storage_backend: str = "file"  # options: memory, file, redis
    storage_path: str = "./.taskapp/storage.json"
    storage_redis_url: str | None = None
    storage_redis_prefix: str = "taskapp:"
    query_workers: int = 4
    auto_invalidate: bool = False
    api_key: str | None = None
    log_level: str = "INFO"
    skip_backend_check: bool = False

    @field_validator("base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("auth_path", mode="after")
    @classmethod
    def strip_path_slashes(cls, v: str) -> str:
        """Store the auth group path without leading or trailing slashes."""
        return str(v).strip("/")

    @property
    def auth_base_url(self) -> str:
        """Base address of the auth resource group (signin/signup)."""
        return f"{self.base_url}/{self.auth_path}" if self.auth_path else self.base_url


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
