"""
Configuration settings for Snapgram Service
"""
from pydantic_settings import BaseSettings
from typing import List, Literal


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Snapgram API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    BASE_API_URL: str = "/api/v1"

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DATABASE: str = "snapgram"

    # JWT Settings
    JWT_SECRET_KEY: str = "your-secret-key-change-this-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 360
    REFRESH_TOKEN_EXPIRE_HOURS: int = 72
    REFRESH_TOKEN_COOKIE_NAME: str = "refresh_token"
    ACCESS_TOKEN_COOKIE_NAME: str = "access_token"
    COOKIE_SECURE: bool = False

    # Password Settings
    PASSWORD_MIN_LENGTH: int = 8
    PASSWORD_HASH_SCHEMES: list = ["bcrypt"]
    BCRYPT_ROUNDS: int = 12
    RESET_TOKEN_EXPIRE_MINUTES: int = 60

    # S3/MinIO Storage
    STORAGE_TYPE: Literal["s3", "minio"] = "minio"
    S3_BUCKET_NAME: str = "snapgram-media"
    S3_ENDPOINT_URL: str = "http://localhost:9000"
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "us-east-1"
    MEDIA_BASE_URL: str = "http://localhost:9000/snapgram-media"
    MEDIA_FOLDER: str = "snapgram"

    # Image uploads
    MAX_IMAGE_SIZE_BYTES: int = 1024 * 1024
    ALLOWED_IMAGE_TYPES: dict = {
        "image/jpeg": "JPEG",
        "image/png": "PNG",
        "image/webp": "WEBP",
    }
    MAX_POST_IMAGES: int = 10

    # Email (SMTP relay)
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT: int = 30
    EMAIL_FROM: str = "no-reply@snapgram.com"
    FRONTEND_URL: str = "http://localhost:3000"

    # Kafka (real-time notification relay)
    KAFKA_ENABLED: bool = False
    KAFKA_BOOTSTRAP_SERVERS: str = "localhost:9092"
    KAFKA_TOPIC_NOTIFICATIONS: str = "notification.created"

    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = ["*"]
    CORS_ALLOW_HEADERS: List[str] = ["*"]

    # Pagination
    DEFAULT_PAGE_SIZE: int = 10
    DEFAULT_USERS_PAGE_SIZE: int = 9
    MAX_PAGE_SIZE: int = 100
    TOP_CREATORS_LIMIT: int = 8

    # Comment trees deeper than this are not walked on delete
    MAX_COMMENT_DEPTH: int = 256

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
