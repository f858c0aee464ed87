"""Application settings for the docxstream API."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "docxstream-server"
    api_prefix: str = "/v1"
    environment: str = "local"
    log_level: str = "INFO"

    max_upload_bytes: int = 50 * 1024 * 1024
    default_stream_step: int = 1
    max_stream_slices: int = 500

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
