"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Remote data store (backend-as-a-service REST API) ─────────────────
    datastore_url: str = "http://datastore:8080/api"
    datastore_api_key: str = ""
    datastore_timeout: float = 5.0

    # ── Redis (feed sessions) ──────────────────────────────────────────────
    redis_host: str = "redis"
    redis_port: int = 6379
    session_ttl: int = 21600             # 6h — lifetime of viewed/liked sets

    # ── Feed ───────────────────────────────────────────────────────────────
    candidate_pool_limit: int = 100      # most recent posts fetched per load
    feed_page_size: int = 20

    # ── Observability ──────────────────────────────────────────────────────
    otel_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "feed-service"
    environment: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
