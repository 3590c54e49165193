"""
Configuration management using Pydantic settings.
Handles database URL, identity provider secrets, and media storage for Docker deployment.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import List
from functools import lru_cache
import os


class Settings(BaseSettings):
    """Application settings with Docker environment variable support."""

    # Application configuration
    app_name: str = "Rental Listings API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False
    testing: bool = False
    log_level: str = "INFO"

    # Database configuration - Docker-compatible defaults
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/rental_listings"

    # Identity provider token verification
    identity_jwt_secret: str = "your-identity-provider-jwt-secret"
    identity_jwt_algorithm: str = "HS256"
    identity_jwt_audience: str = "authenticated"

    # Listing image storage - Docker volume compatible
    upload_dir: str = "./uploads"
    media_url_path: str = "/media"
    media_base_url: str = "http://localhost:3001/media"
    max_file_size: int = 5 * 1024 * 1024  # 5MB
    max_images_per_request: int = 10
    allowed_image_types: List[str] = ["image/jpeg", "image/jpg", "image/png"]
    allowed_image_extensions: List[str] = [".jpeg", ".jpg", ".png"]

    # API configuration
    api_prefix: str = "/api"
    cors_origins: List[str] = ["http://localhost:5173"]
    max_request_size: int = 10 * 1024 * 1024  # 10MB

    # Pagination defaults
    default_page_size: int = 20
    max_page_size: int = 100

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 3001

    @field_validator("database_url", mode="before")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure an async driver is used for PostgreSQL URLs."""
        if v and v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql+asyncpg://", 1)
        if v and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @field_validator("identity_jwt_secret", mode="before")
    @classmethod
    def validate_identity_jwt_secret(cls, v):
        """Identity tokens cannot be verified without a secret."""
        if not v:
            raise ValueError("IDENTITY_JWT_SECRET is required")
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "testing", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {allowed_envs}")
        return v

    @field_validator("upload_dir", mode="before")
    @classmethod
    def create_upload_directory(cls, v):
        """Ensure the upload directory exists so it can be served as static files."""
        if v and not os.path.exists(v):
            os.makedirs(v, exist_ok=True)
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing" or self.testing

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one instance of settings throughout the app lifecycle.
    """
    return Settings()


# Global settings instance
settings = get_settings()
