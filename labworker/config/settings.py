from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "labworker"
    db_username: str = "labworker"
    db_password: str = "secret"
    db_pool_max_size: int = 10

    job_poll_interval_seconds: int = 5

    files_root: str = "/app/files"
    storage_base_url: str = ""
    storage_timeout_seconds: int = 60

    pdf_engine: str = "pymupdf"

    page_chunk_threshold: int = 4
    merge_value_tolerance: float = 0.01
    merge_conflict_policy: str = "keep_both"
    default_gender: str = "male"
    debug_preview_chars: int = 2000
    standardization_match_threshold: float = 90.0

    extraction_provider: str = "openai"
    extraction_api_key: str = ""
    extraction_model_name: str = "gpt-4.1"
    extraction_base_url: str = ""
    extraction_timeout_seconds: int = 600
    extraction_temperature: float = 0.1
    extraction_max_output_tokens: int = 32000

    verification_provider: str = "openai"
    verification_api_key: str = ""
    verification_model_name: str = "gpt-4.1"
    verification_base_url: str = ""
    verification_timeout_seconds: int = 600
    verification_temperature: float = 0.0
    verification_max_output_tokens: int = 32000
