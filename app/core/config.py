from pydantic_settings import BaseSettings
from pydantic import validator
from typing import List, Optional


DEFAULT_RESERVED_SUBDOMAINS = [
    "www", "api", "admin", "app", "mail", "ftp", "localhost", "staging", "test"
]

DEFAULT_SKIP_PATHS = [
    "/health", "/status", "/metrics", "/admin", "/platform",
    "/docs", "/redoc", "/openapi.json",
]


class Settings(BaseSettings):
    # App Configuration
    APP_NAME: str = "Jewelry ERP"
    ENVIRONMENT: str = "development"

    # Main (registry) database
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 30

    # Template URL for tenant databases; the database part is replaced per tenant
    TENANT_DATABASE_URL: Optional[str] = None

    # Tenancy
    TENANT_HEADER: str = "X-Tenant-Subdomain"
    TENANT_DATABASE_PREFIX: str = "tenant_"
    TENANT_SKIP_PATHS: List[str] = DEFAULT_SKIP_PATHS
    TENANT_RESERVED_SUBDOMAINS: List[str] = DEFAULT_RESERVED_SUBDOMAINS
    TENANT_MIGRATION_BACKEND: str = "alembic"  # alembic, metadata

    # Admin API
    ADMIN_API_TOKEN: Optional[str] = None

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"

    # Security
    ALLOWED_HOSTS: List[str] = ["*"]
    CORS_ORIGINS: List[str] = ["*"]

    # Monitoring
    PROMETHEUS_ENABLED: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    @validator("TENANT_SKIP_PATHS")
    def normalize_skip_paths(cls, v):
        paths = []
        for path in v:
            path = path.strip()
            if path.endswith("/*"):
                path = path[:-2]
            if not path.startswith("/"):
                path = "/" + path
            if len(path) > 1:
                path = path.rstrip("/")
            paths.append(path)
        return paths

    @validator("TENANT_RESERVED_SUBDOMAINS")
    def normalize_reserved(cls, v):
        return [i.strip().lower() for i in v if i.strip()]

    @validator("TENANT_MIGRATION_BACKEND")
    def check_migration_backend(cls, v):
        if v not in ("alembic", "metadata"):
            raise ValueError("TENANT_MIGRATION_BACKEND must be 'alembic' or 'metadata'")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
