"""Load configuration from environment (e.g. .env)."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "LabWise"
    app_version: str = "0.1.0"

    # Database (use DATABASE_URL in .env; for async use postgresql+asyncpg://...)
    database_url: str = "postgresql+asyncpg://localhost:5432/labwise_db"

    @property
    def database_url_async(self) -> str:
        url = self.database_url
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    # Azure Document Intelligence (text acquisition)
    azure_doc_intel_endpoint: str = ""
    azure_doc_intel_key: str = ""

    # Azure OpenAI (extraction + summary)
    azure_openai_endpoint: str = ""
    azure_openai_key: str = ""
    azure_openai_deployment: str = "gpt-4o"
    azure_openai_api_version: str = "2024-02-15-preview"
    summary_deployment: str = ""

    extraction_max_tokens: int = 1800
    extraction_temperature: float = 0.2
    summary_temperature: float = 0.3
    extraction_use_vision: bool = True

    # 0 keeps the single-call behaviour; >0 retries language-model calls with backoff
    llm_max_retries: int = 0
    llm_retry_base_delay: float = 1.0
    # None leaves the SDK transport default in place
    service_timeout_seconds: float | None = None

    # Delete a document's previous rows before inserting a re-run's rows
    replace_existing_results: bool = True

    cors_origins: str = "*"
    log_level: str = "INFO"
    # Rotating log file in addition to stdout; unset logs to stdout only
    log_file: str | None = None

    # Server (for run script; uvicorn CLI can override with --port)
    port: int = 8000
    host: str = "0.0.0.0"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def summary_deployment_name(self) -> str:
        return self.summary_deployment or self.azure_openai_deployment


@lru_cache
def get_settings() -> Settings:
    return Settings()
