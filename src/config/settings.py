"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock modes enable local development without a blob store or ImageMagick.
"""

import tempfile
from functools import lru_cache
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# SigV4 presigned URLs cannot outlive one week
MAX_SIGNING_EXPIRY_SECONDS = 7 * 24 * 60 * 60


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like api_keys), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Image Derivative API"
    api_keys: str = Field(
        default="",
        description="Comma-separated API keys. Empty disables authentication (legacy behavior)."
    )

    # Derivative pipeline
    bucket_name: str = Field(
        default="images",
        description="Bucket holding both source images and their derivatives"
    )
    signing_expiry_seconds: int = Field(
        default=24 * 60 * 60,
        gt=0,
        le=MAX_SIGNING_EXPIRY_SECONDS,
        description="Lifetime of issued signed URLs in seconds"
    )
    derivative_suffix: str = Field(
        default="_modified",
        min_length=1,
        description="Appended to the source object name to form the derivative name"
    )
    sign_source_url: bool = Field(
        default=False,
        description="Also issue a signed URL for the source object (exposed as a header)"
    )
    scratch_root: str = Field(
        default_factory=tempfile.gettempdir,
        description="Directory under which per-request scratch directories are created"
    )

    # Transform engine
    transform_binary_path: str = Field(
        default="convert",
        description="Path or name of the ImageMagick convert binary"
    )
    transform_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Kill the transform process if it runs longer than this"
    )
    transform_mock_mode: bool = Field(
        default=False,
        description="Copy the source through instead of running ImageMagick. Enables local dev without it."
    )

    # Request parameter defaults and bounds
    default_quality: int = Field(default=10, description="Quality percent when none is given")
    default_scale: int = Field(default=100, description="Scale percent when none is given")
    min_quality: int = Field(default=1, ge=1)
    max_quality: int = 100
    min_scale: int = Field(default=1, ge=1)
    max_scale: int = Field(
        default=1000,
        description="Upper bound on scale percent. Keeps callers from requesting huge upscales."
    )

    # S3-compatible storage configuration
    storage_access_key_id: str = Field(
        default="",
        description="Access key ID for the S3-compatible store"
    )
    storage_secret_access_key: str = Field(
        default="",
        description="Secret access key for the S3-compatible store"
    )
    storage_endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom endpoint (R2, MinIO, GCS interop). None means AWS S3."
    )
    storage_region: str = Field(
        default="auto",
        description="Region name passed to boto3"
    )
    storage_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of a real store. Enables local dev without object storage."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def check_bounds(self) -> "Settings":
        if not self.min_quality <= self.default_quality <= self.max_quality:
            raise ValueError("default_quality must lie within [min_quality, max_quality]")
        if not self.min_scale <= self.default_scale <= self.max_scale:
            raise ValueError("default_scale must lie within [min_scale, max_scale]")
        if "/" in self.derivative_suffix:
            raise ValueError("derivative_suffix must not contain '/'")
        return self

    @property
    def api_keys_list(self) -> list[str]:
        """Parse comma-separated API keys into a list."""
        return [key.strip() for key in self.api_keys.split(",") if key.strip()]

    @property
    def auth_enabled(self) -> bool:
        return bool(self.api_keys_list)

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on whether we're in mock mode.
        """
        missing = []

        if not self.bucket_name:
            missing.append("BUCKET_NAME")

        # Credentials only required if not in mock mode
        if not self.storage_mock_mode:
            if not self.storage_access_key_id:
                missing.append("STORAGE_ACCESS_KEY_ID")
            if not self.storage_secret_access_key:
                missing.append("STORAGE_SECRET_ACCESS_KEY")

        if not self.transform_mock_mode and not self.transform_binary_path:
            missing.append("TRANSFORM_BINARY_PATH")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, call get_settings.cache_clear() to reset.
    """
    return Settings()
