"""
Application configuration using Pydantic Settings
Reads from environment variables and .env file
"""
import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    content_root: str = Field(default_factory=os.getcwd, alias="CONTENT_ROOT")
    cors_origins: str = Field(default="http://localhost:5173", alias="CORS_ORIGINS")

    # Reference dataset
    reference_file_path: str = Field(default="data/hs_codes.xlsx", alias="REFERENCE_FILE_PATH")

    @property
    def reference_path(self) -> Path:
        """Resolve the reference file against the content root"""
        path = Path(self.reference_file_path)
        if path.is_absolute():
            return path
        return (Path(self.content_root) / path).resolve()

    # External classifier
    classifier_provider: str = Field(default="ollama", alias="CLASSIFIER_PROVIDER")
    classifier_timeout_seconds: float = Field(default=300, gt=0, alias="CLASSIFIER_TIMEOUT_SECONDS")

    ollama_base_url: str = Field(default="http://localhost:11434", alias="OLLAMA_BASE_URL")
    ollama_model: str = Field(default="llama3.2-vision", alias="OLLAMA_MODEL")
    ollama_text_model: str = Field(default="llama3:8b", alias="OLLAMA_TEXT_MODEL")

    anthropic_api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")
    anthropic_model: str = Field(default="claude-sonnet-4-5", alias="ANTHROPIC_MODEL")

    # Classification jobs
    job_ttl_minutes: float = Field(default=30, gt=0, alias="JOB_TTL_MINUTES")
    min_image_bytes: int = Field(default=0, ge=0, alias="MIN_IMAGE_BYTES")

    # Monitoring
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")

    @property
    def cors_origin_list(self) -> List[str]:
        """Split the comma separated CORS origins"""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment"""
        valid_envs = ["development", "staging", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"ENVIRONMENT must be one of {valid_envs}")
        return v.lower()

    @field_validator("classifier_provider")
    @classmethod
    def validate_classifier_provider(cls, v):
        """Validate classifier provider"""
        valid_providers = ["ollama", "anthropic"]
        if v.lower() not in valid_providers:
            raise ValueError(f"CLASSIFIER_PROVIDER must be one of {valid_providers}")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
