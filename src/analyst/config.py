from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True,)

    # Report generator (Groq, OpenAI-compatible chat completions)
    groq_api_key: str | None = Field(None, alias="GROQ_API_KEY")
    groq_base_url: str = Field("https://api.groq.com/openai/v1", alias="GROQ_BASE_URL")
    groq_model: str = Field("llama-3.3-70b-versatile", alias="GROQ_MODEL")
    groq_temperature: float = Field(0.3, alias="GROQ_TEMPERATURE")
    groq_max_tokens: int = Field(4096, alias="GROQ_MAX_TOKENS")
    groq_timeout_seconds: float = Field(60.0, alias="GROQ_TIMEOUT_SECONDS")  # stuck calls surface as job failures
    groq_max_retries: int = Field(0, alias="GROQ_MAX_RETRIES")

    # Worker pool
    analysis_max_workers: int = Field(4, alias="ANALYSIS_MAX_WORKERS")

    # Job retention
    job_retention_hours: int = Field(24, alias="JOB_RETENTION_HOURS")
    job_sweep_interval_minutes: int = Field(60, alias="JOB_SWEEP_INTERVAL_MINUTES")

    # Audit trail
    audit_log_capacity: int = Field(1000, alias="AUDIT_LOG_CAPACITY")

    # App
    app_host: str = Field("0.0.0.0", alias="APP_HOST")
    app_port: int = Field(8000, alias="APP_PORT")
    debug: bool = Field(False, alias="DEBUG")
    log_level: str = Field("INFO", alias="LOG_LEVEL")


settings = Settings()
