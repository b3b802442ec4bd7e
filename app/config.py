"""
Configuration management for the FastAPI application.
Uses Pydantic Settings for environment variable management.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    API_TITLE: str = "Restaurant Gallery API"
    API_VERSION: str = "0.1.0"
    API_DESCRIPTION: str = "Gallery image ingestion and management backend for the restaurant website"

    # CORS Configuration
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # Database Configuration
    # Empty value falls back to an in-memory SQLite database
    DATABASE_URL: str = ""

    # Cloudinary Configuration (object storage for originals and variants)
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    CLOUDINARY_FOLDER: str = "gallery-images"

    # Upload validation
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB
    ALLOWED_EXTENSIONS: List[str] = ["jpeg", "jpg", "png", "webp", "avif"]
    ALLOWED_MIME_TYPES: List[str] = [
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/webp",
        "image/avif",
    ]

    # Pipeline deadlines and retries
    TRANSCODE_TIMEOUT_SECONDS: float = 60.0
    STORAGE_TIMEOUT_SECONDS: float = 30.0
    STORAGE_MAX_RETRIES: int = 3
    STORAGE_RETRY_BACKOFF_SECONDS: float = 1.0

    # JWT Configuration
    # SECRET_KEY should be a long random string (e.g., generated with: openssl rand -hex 32)
    # IMPORTANT: Keep this secret and use a strong, unique value in production
    JWT_SECRET_KEY: str = "your-secret-key-change-this-in-production-use-openssl-rand-hex-32"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings


# Global settings instance
settings = Settings()
