from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"
    default_language: str = "english"

    max_file_size_bytes: int = 50 * 1024 * 1024
    pipeline_version: str = "1.0.0"
    validation_timeout_seconds: float = 5.0
    extraction_timeout_seconds: float = 15.0
    processing_timeout_seconds: float = 30.0
    classification_timeout_seconds: float = 10.0
    formatting_timeout_seconds: float = 5.0
    output_timeout_seconds: float = 10.0

    classifier_keyword_weight: float = 0.3
    classifier_pattern_weight: float = 0.4
    classifier_ai_weight: float = 0.3
    classifier_minimum_confidence: float = Field(default=0.6, ge=0.0, le=1.0)

    batch_size: int = Field(default=10, ge=1)
    max_concurrent_documents: int = Field(default=3, ge=1)
    batch_max_file_size_bytes: int = 10 * 1024 * 1024
    retry_attempts: int = Field(default=0, ge=0)
    retry_backoff_seconds: float = 1.0

    pdf_engine: str = "pdfplumber"
    pdf_max_pages: int = 50

    intelligence_provider: str = "openai"
    intelligence_max_tokens: int = 4096

    intelligence_openai_api_key: str = ""
    intelligence_openai_model_name: str = "gpt-4o-mini"
    intelligence_openai_timeout_seconds: int = 30
    intelligence_openai_temperature: float = 0.2

    intelligence_openai_compatible_api_key: str = ""
    intelligence_openai_compatible_model_name: str = ""
    intelligence_openai_compatible_base_url: str = ""
    intelligence_openai_compatible_timeout_seconds: int = 30

    intelligence_openrouter_api_key: str = ""
    intelligence_openrouter_model_name: str = ""
    intelligence_openrouter_timeout_seconds: int = 30

    intelligence_groq_api_key: str = ""
    intelligence_groq_model_name: str = ""
    intelligence_groq_timeout_seconds: int = 30

    intelligence_gemini_api_key: str = ""
    intelligence_gemini_model_name: str = "gemini-1.5-pro"
    intelligence_gemini_timeout_seconds: int = 30

    intelligence_ollama_api_key: str = "ollama"
    intelligence_ollama_model_name: str = ""
    intelligence_ollama_timeout_seconds: int = 60

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "docpipe"
    db_username: str = "docpipe"
    db_password: str = "secret"
    archive_reports: bool = False
