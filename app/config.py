"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_anon_key: str = ""

    # Record / object storage
    store_backend: str = "supabase"  # "supabase" or "memory"
    ledger_table: str = "gallery"
    storage_bucket: str = "directors-palette"

    # Replicate
    replicate_api_token: str = ""
    replicate_api_base: str = "https://api.replicate.com/v1"

    # Webhook callback
    public_base_url: str = "http://localhost:8000"
    webhook_path: str = "/api/webhooks/replicate"
    webhook_events_filter: List[str] = ["completed"]
    webhook_timestamp_tolerance_seconds: int = 300
    webhook_secret_prefix: str = "whsec_"

    # Outbound HTTP
    http_timeout_seconds: float = 30.0

    # Reconciliation
    materialization_claim_ttl_seconds: int = 900

    # Service
    port: int = 8000
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def webhook_url(self) -> str:
        """Absolute callback URL registered with every prediction."""
        return self.public_base_url.rstrip("/") + self.webhook_path

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
