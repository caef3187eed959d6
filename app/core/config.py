import json
from typing import Annotated, List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # FastAPI Configuration
    PROJECT_NAME: str = "Document Share API"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    BASE_URL: str = Field(
        default="http://localhost:8000",
        description="Public base URL of this service (used for the presign exchange)",
    )

    # Session Configuration (sessions are written by the auth provider)
    SESSION_COOKIE_NAME: str = "session_token"
    SESSION_CACHE_SECONDS: int = Field(
        default=60, description="How long a validated session is cached in memory"
    )

    # PostgreSQL Configuration
    DATABASE_URL: Optional[str] = None  # Full connection URL (for local dev)
    DATABASE_NAME: str = "docshare"
    DATABASE_USER: str = "postgres"
    DATABASE_PASSWORD: str = ""
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432

    # Connection Pool Settings
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes
    DB_ECHO: bool = False

    # Storage backend selection: "gcs" or "supabase"
    STORAGE_BACKEND: str = "gcs"
    DOCUMENTS_BUCKET: str = "documents"

    # Google Cloud Storage
    GCP_PROJECT_ID: Optional[str] = None
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = None  # Path to service account file
    GCS_BUCKET_NAME: Optional[str] = None  # Falls back to DOCUMENTS_BUCKET

    # Supabase Storage
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None

    # File resolution
    UPLOAD_TRANSPORT: str = Field(
        default="s3",
        description="'s3' resolves object keys through the presign service; "
        "'gcs' or 'supabase' resolve them directly through the storage backend",
    )
    INTERNAL_API_KEY: Optional[str] = None
    PRESIGN_ENDPOINT: str = "/file/s3/get-presigned-get-url"  # relative to API_PREFIX
    PRESIGN_PROXY_ENDPOINT: str = "/file/s3/get-presigned-get-url-proxy"
    PRESIGN_TIMEOUT_SECONDS: float = 10.0
    SIGNED_URL_EXPIRATION_SECONDS: int = 3600

    # Upload Configuration
    MAX_UPLOAD_SIZE: int = 100 * 1024 * 1024  # 100MiB in bytes

    # Rate limiting (Redis backed, disabled when not configured)
    RATE_LIMIT_REDIS_URL: Optional[str] = None
    RATE_LIMIT_REDIS_TOKEN: Optional[str] = None
    RATE_LIMIT_REQUESTS: int = 10
    RATE_LIMIT_WINDOW_SECONDS: int = 10
    RATE_LIMIT_PREFIX: str = "docshare"

    # CORS Settings
    CORS_ORIGINS: Annotated[List[str], NoDecode] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    CORS_CREDENTIALS: bool = True
    CORS_METHODS: List[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"]
    CORS_HEADERS: List[str] = [
        "Authorization",
        "Content-Type",
        "X-Requested-With",
        "Accept",
        "Origin",
        "Cache-Control",
    ]
    ALLOWED_HOSTS: Annotated[List[str], NoDecode] = ["*"]

    @field_validator("CORS_ORIGINS", "ALLOWED_HOSTS", mode="before")
    @classmethod
    def parse_comma_separated(cls, v):
        """Parse list settings from comma-separated string or JSON array."""
        if isinstance(v, str):
            if v.startswith("["):
                return json.loads(v)
            return [x.strip() for x in v.split(",") if x.strip()]
        return v

    @field_validator("STORAGE_BACKEND", "UPLOAD_TRANSPORT")
    @classmethod
    def normalize_provider_name(cls, v: str) -> str:
        """Provider names are matched case-insensitively."""
        return v.strip().lower()

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # json or text

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def is_development(self) -> bool:
        """Check if the application is running in development mode."""
        return self.ENVIRONMENT.lower() in ["development", "dev", "local"]

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production mode."""
        return self.ENVIRONMENT.lower() in ["production", "prod"]

    @property
    def gcs_bucket_name(self) -> str:
        return self.GCS_BUCKET_NAME or self.DOCUMENTS_BUCKET

    @property
    def rate_limit_enabled(self) -> bool:
        """Rate limiting needs both the Redis URL and its token."""
        return bool(self.RATE_LIMIT_REDIS_URL and self.RATE_LIMIT_REDIS_TOKEN)


# Global settings instance
settings = Settings()
