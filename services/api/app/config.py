"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── HTTP surface ───────────────────────────────────────────────────────
    # Every route lives under this prefix (the edge function's mount point)
    api_prefix: str = "/make-server-a65856ea"
    cors_allow_origins: list[str] = ["*"]

    # ── Redis (key-value store) ────────────────────────────────────────────
    redis_host: str = "redis"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None

    # ── Auth provider (Supabase / GoTrue) ──────────────────────────────────
    supabase_url: str = "http://supabase-kong:8000"
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    auth_timeout_seconds: float = 5.0

    # ── Observability ──────────────────────────────────────────────────────
    otel_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "techdeep-api"
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
