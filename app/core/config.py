# Settings management (reads env vars/secrets)
# app/core/config.py

import logging
import os
from functools import lru_cache
from typing import Annotated, List, Optional, Union

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Set up basic logging configuration early
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    """
    Application configuration settings loaded from environment variables or .env file.
    """
    # --- Project Info ---
    PROJECT_NAME: str = Field("MoviePass API", validation_alias="PROJECT_NAME")
    API_V1_STR: str = Field("/v1", validation_alias="API_V1_STR") # Base path for API endpoints
    VERSION: str = Field("1.0.0", validation_alias="APP_VERSION")

    # --- Logging ---
    LOG_LEVEL: str = Field("INFO", validation_alias="LOG_LEVEL")

    # --- Database (SQLAlchemy, async driver) ---
    # Use SecretStr to prevent accidental logging of credentials in the URL
    DATABASE_URL: SecretStr = Field(..., validation_alias="DATABASE_URL")
    DATABASE_ECHO: bool = Field(False, validation_alias="DATABASE_ECHO")
    DATABASE_CREATE_TABLES: bool = Field(
        default=True,
        validation_alias="DATABASE_CREATE_TABLES",
        description="Create missing tables and seed indicative ratings at startup"
    )

    # --- Cache / sessions / task queue (Redis) ---
    REDIS_URL: SecretStr = Field(..., validation_alias="REDIS_URL")

    # --- Sessions ---
    SESSION_SECRET_KEY: SecretStr = Field(..., validation_alias="SESSION_SECRET_KEY") # Signs session tokens
    JWT_ALGORITHM: str = Field("HS256", validation_alias="JWT_ALGORITHM")
    SESSION_TTL_SECONDS: int = Field(
        default=86400,  # 24 hours
        validation_alias="SESSION_TTL_SECONDS",
        description="Lifetime of a session token and its cached session record"
    )
    SESSION_KEY_PREFIX: str = Field("session:", validation_alias="SESSION_KEY_PREFIX")

    # --- Storage (S3-compatible object store) ---
    STORAGE_BUCKET_NAME: Optional[str] = Field(None, validation_alias="STORAGE_BUCKET_NAME")
    STORAGE_ENDPOINT_URL: Optional[str] = Field(
        None,
        validation_alias="STORAGE_ENDPOINT_URL",
        description="Endpoint for S3-compatible storage. Use None for AWS S3."
    )
    STORAGE_ACCESS_KEY: Optional[SecretStr] = Field(None, validation_alias="STORAGE_ACCESS_KEY")
    STORAGE_SECRET_KEY: Optional[SecretStr] = Field(None, validation_alias="STORAGE_SECRET_KEY")
    STORAGE_REGION: Optional[str] = Field(None, validation_alias="STORAGE_REGION")
    STORAGE_PUBLIC_BASE_URL: Optional[str] = Field(
        None,
        validation_alias="STORAGE_PUBLIC_BASE_URL",
        description="Public base URL that serves objects of the bucket"
    )
    STORAGE_KEY_PREFIX: str = Field("movies/", validation_alias="STORAGE_KEY_PREFIX")

    # --- Image task queue ---
    UPLOAD_QUEUE_NAME: str = Field("queue:movie-image:upload", validation_alias="UPLOAD_QUEUE_NAME")
    DELETE_QUEUE_NAME: str = Field("queue:movie-image:delete", validation_alias="DELETE_QUEUE_NAME")
    QUEUE_MAX_ATTEMPTS: int = Field(
        default=3,
        validation_alias="QUEUE_MAX_ATTEMPTS",
        description="Deliveries of one task before it is moved to the dead-letter list"
    )
    QUEUE_POLL_TIMEOUT_SECONDS: int = Field(5, validation_alias="QUEUE_POLL_TIMEOUT_SECONDS")
    RUN_QUEUE_WORKER: bool = Field(
        default=False,
        validation_alias="RUN_QUEUE_WORKER",
        description="Run the image task consumer inside the API process"
    )

    # --- Movie images ---
    MAX_IMAGES_PER_MOVIE: int = Field(5, validation_alias="MAX_IMAGES_PER_MOVIE")
    MAX_IMAGE_SIZE_BYTES: int = Field(5 * 1024 * 1024, validation_alias="MAX_IMAGE_SIZE_BYTES")
    ALLOWED_IMAGE_CONTENT_TYPES: Annotated[List[str], NoDecode] = Field(
        default=["image/jpeg", "image/png", "image/webp"],
        validation_alias="ALLOWED_IMAGE_CONTENT_TYPES"
    )

    # --- Pagination ---
    DEFAULT_PAGE_SIZE: int = Field(10, validation_alias="DEFAULT_PAGE_SIZE")
    MAX_PAGE_SIZE: int = Field(100, validation_alias="MAX_PAGE_SIZE")

    # --- CORS ---
    # Expects a comma-separated string in env var like "http://localhost:3000,https://*.example.com"
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default=["*"],
        validation_alias="BACKEND_CORS_ORIGINS"
    )

    @field_validator("BACKEND_CORS_ORIGINS", mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            # If it's a string from env var, split by comma and strip whitespace
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, list):
            return v
        if v == "*":
            return ["*"]
        raise ValueError(f"Invalid BACKEND_CORS_ORIGINS format: {v}")

    @field_validator("ALLOWED_IMAGE_CONTENT_TYPES", mode='before')
    @classmethod
    def assemble_image_content_types(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip().lower() for i in v.split(",") if i.strip()]
        return v

    model_config = SettingsConfigDict(
        # Load .env file if it exists (useful for local development)
        env_file=".env",
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

# Use lru_cache to create a singleton instance of the settings
@lru_cache()
def get_settings() -> Settings:
    """Returns the application settings instance."""
    logger.info("Attempting to load application settings...")
    try:
        settings_instance = Settings()
        # Log some non-sensitive settings for verification
        logger.info(f"Settings loaded successfully for Project: {settings_instance.PROJECT_NAME}")
        logger.info(f"Log Level: {settings_instance.LOG_LEVEL}")
        logger.info(f"CORS Origins: {settings_instance.BACKEND_CORS_ORIGINS}")
        logger.info(f"Storage Bucket: {settings_instance.STORAGE_BUCKET_NAME or 'Not Set'}")
        logger.info(
            f"Image queues: {settings_instance.UPLOAD_QUEUE_NAME}, {settings_instance.DELETE_QUEUE_NAME} "
            f"(max attempts {settings_instance.QUEUE_MAX_ATTEMPTS})"
        )
        # DO NOT log SecretStr values directly in production logs!
        return settings_instance
    except Exception as e:
        logger.critical(f"CRITICAL ERROR: Failed to load application settings: {e}", exc_info=True)
        raise RuntimeError(f"Could not load settings: {e}")


# Create a single settings instance to be imported by other modules
settings: Settings = get_settings()
