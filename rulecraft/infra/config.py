from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Centralized application settings.
    Reads from environment variables and an optional .env file.
    Passed explicitly to the store, the ruling pipeline and the web app.
    """

    environment: str = "dev"
    groq_api_key: str | None = None
    ruling_model: str = "llama-3.3-70b-versatile"
    ruling_max_tokens: int = 1024
    ruling_timeout_s: float = 30.0
    sqlite_path: str = ".data/rulecraft.db"
    rules_dir: str = "knowledge/rules"
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"
    enable_json_logs: bool = True

    # Load from a .env file
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def ruling_configured(self) -> bool:
        return bool(self.groq_api_key and self.groq_api_key.strip())
