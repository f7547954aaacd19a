"""Application configuration using pydantic-settings."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict


class PhotoImportConfig(BaseModel):
    """Resolved credentials and model selection for one pipeline instance."""

    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = None
    extraction_model: str = "gemini-2.5-pro"
    grouping_model: str = "gemini-2.5-flash-lite"
    extraction_max_tokens: int = 4096
    grouping_max_tokens: int = 2048
    temperature: float = 0.2
    concurrency: int = 3

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    gemini_api_key: Optional[str] = None

    # Server
    port: int = 8080
    host: str = "0.0.0.0"

    # Logging
    log_level: str = "INFO"

    # Rate Limiting
    rate_limit_per_hour: int = 100
    rate_limit_enabled: bool = True

    # CORS
    cors_origins: str = "*"  # Comma-separated origins or "*" for all

    # Gemini Settings
    gemini_extraction_model: str = "gemini-2.5-pro"
    gemini_grouping_model: str = "gemini-2.5-flash-lite"
    gemini_temperature: float = 0.2
    extraction_max_tokens: int = 4096
    grouping_max_tokens: int = 2048

    # Compression
    gzip_minimum_size: int = 1000

    # Photo import
    photo_import_concurrency: int = 3
    max_image_bytes: int = 10 * 1024 * 1024  # 10MB per image
    max_total_image_bytes: int = 50 * 1024 * 1024  # 50MB per request

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Get list of CORS origins."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    def photo_import_config(self) -> PhotoImportConfig:
        """Snapshot the settings relevant to the extraction pipeline."""
        return PhotoImportConfig(
            api_key=self.gemini_api_key,
            extraction_model=self.gemini_extraction_model,
            grouping_model=self.gemini_grouping_model,
            extraction_max_tokens=self.extraction_max_tokens,
            grouping_max_tokens=self.grouping_max_tokens,
            temperature=self.gemini_temperature,
            concurrency=self.photo_import_concurrency,
        )


# Global settings instance
settings = Settings()
