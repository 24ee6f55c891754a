"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for the available variables.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Provider credentials default to empty strings: a provider without
    credentials reports itself as unavailable instead of failing at import.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # Comma-separated origins, empty = default list in quizgen.main
    cors_origins: str = ""

    # ===========================================
    # IMAGE GENERATION - PROVIDER SELECTION
    # ===========================================
    image_generation_enabled: bool = True
    image_provider: str = "openai"  # openai, gemini

    # ===========================================
    # OPENAI API (Provider: openai)
    # ===========================================
    openai_api_key: str = ""
    openai_image_model: str = "dall-e-3"
    openai_image_size: str = "1024x1024"
    openai_image_quality: str = "standard"
    # Model used to draft quiz questions
    openai_text_model: str = "gpt-4o-mini"
    openai_text_temperature: float = 0.7
    openai_request_timeout: float = 120.0

    # ===========================================
    # GOOGLE VERTEX AI IMAGEN (Provider: gemini)
    # ===========================================
    google_cloud_project_id: str = ""
    google_cloud_location: str = "us-central1"
    google_cloud_service_account_email: str = ""
    # PEM key; literal "\n" sequences from .env are turned into newlines
    google_cloud_private_key: str = ""
    google_oauth_token_url: str = "https://oauth2.googleapis.com/token"
    google_vertex_image_model: str = "imagen-3.0-generate-001"
    google_vertex_fallback_model: str = "imagegeneration@006"
    google_vertex_timeout: float = 120.0

    # ===========================================
    # BATCH TUNABLES (per provider)
    # ===========================================
    openai_max_concurrent_requests: int = 4
    openai_delay_between_batches_ms: int = 700
    openai_retry_delay_ms: int = 2000
    openai_max_retries: int = 1

    # Imagen quota is per minute, so the whole pipeline runs serially
    gemini_max_concurrent_requests: int = 1
    gemini_delay_between_batches_ms: int = 65000
    gemini_retry_delay_ms: int = 65000
    gemini_max_retries: int = 1

    # ===========================================
    # STORAGE
    # ===========================================
    storage_backend: str = "local"  # local, supabase
    storage_base_path: str = "data/images"
    storage_public_base_url: str = "http://localhost:8000/static/images"
    storage_timeout: float = 30.0
    supabase_url: str = ""
    supabase_service_key: str = ""
    max_upload_size_mb: int = 5
    allowed_upload_content_types: str = "image/jpeg,image/jpg,image/png,image/webp"

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("openai_max_concurrent_requests", "gemini_max_concurrent_requests")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max concurrent requests must be at least 1")
        return v

    @field_validator(
        "openai_delay_between_batches_ms",
        "openai_retry_delay_ms",
        "openai_max_retries",
        "gemini_delay_between_batches_ms",
        "gemini_retry_delay_ms",
        "gemini_max_retries",
    )
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("delays and retry counts must not be negative")
        return v

    @field_validator("google_cloud_private_key")
    @classmethod
    def normalize_private_key(cls, v: str) -> str:
        return v.replace("\\n", "\n")

    @field_validator("allowed_upload_content_types")
    @classmethod
    def parse_content_types(cls, v: str) -> str:
        return v.lower().strip()

    @property
    def allowed_upload_content_types_set(self) -> set[str]:
        return {t.strip() for t in self.allowed_upload_content_types.split(",") if t.strip()}

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
