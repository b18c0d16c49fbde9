from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tessera.upstream.query import MAX_QUERY_VALUES


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TESSERA_", env_file=".env", extra="ignore")

    app_name: str = "tessera"
    env: str = "dev"

    # Image cache (binary objects change rarely, cached longest)
    image_cache_ttl: float = 300.0
    image_cache_max_size: int = Field(default=1000, ge=0)
    images_bucket_id: str = "images"
    image_mime_type: str = "image/png"

    # User cache (shorter, users can be edited by external administration)
    user_cache_ttl: float = 180.0
    user_cache_max_size: int = Field(default=500, ge=0)

    # Closed projects per workspace
    closed_projects_cache_ttl: float = 120.0
    closed_projects_cache_max_size: int = Field(default=1000, ge=0)

    # Batch fetch / chunked query (upstream caps ids per query)
    query_chunk_size: int = Field(default=50, gt=0, le=MAX_QUERY_VALUES)
    batch_max_concurrency: int | None = Field(default=None, gt=0)

    # Client query cache
    query_stale_time: float = 180.0
    query_gc_time: float = 300.0

    # Background expiry sweep
    sweep_interval: float = Field(default=60.0, gt=0)

    # Upstream document/blob/identity service
    upstream_endpoint: str = Field(
        default="http://localhost/v1", validation_alias="UPSTREAM_ENDPOINT"
    )
    upstream_project_id: str | None = Field(default=None, validation_alias="UPSTREAM_PROJECT_ID")
    upstream_api_key: str | None = Field(default=None, validation_alias="UPSTREAM_API_KEY")
    upstream_timeout: float = 10.0
    upstream_database_id: str = "main"

    # Object store backend: "http" (upstream service) or "local" (filesystem)
    object_store_type: str = "http"
    object_store_path: str = "/var/lib/tessera/objects"

    # Observability
    enable_metrics: bool = Field(default=True, validation_alias="ENABLE_METRICS")
    log_level: str = "INFO"
    log_json: bool = True


settings = Settings()
