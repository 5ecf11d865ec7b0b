from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "formflow"
    db_username: str = "formflow"
    db_password: str = "secret"
    db_pool_max_size: int = 10

    original_forms_dir: str = "storage/forms"
    filled_forms_dir: str = "storage/filled"

    pdf_engine: str = "pdfplumber"
    ocr_language: str = "eng"

    completion_provider: str = "groq"
    completion_api_key: str = ""
    completion_base_url: str = ""
    completion_timeout_seconds: int = 60
    completion_max_retries: int = 3
    completion_base_delay_seconds: float = 0.8

    analysis_model_name: str = "deepseek-r1-distill-llama-70b"
    extraction_model_name: str = "llama-3.3-70b-versatile"
    filling_model_name: str = "llama-3.3-70b-versatile"

    quota_enabled: bool = True
    default_plan: str = "free"

    max_batch_size: int = 50
