"""Central environment-driven settings for the checkout service.

The process loads this once at startup. PayPal credentials are required;
everything else has a development default (see `.env.example`).
"""

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "checkout"
    log_level: str = "INFO"
    port: int = 4242
    paypal_client_id: str
    paypal_secret: SecretStr
    # Sandbox: https://api-m.sandbox.paypal.com | Live: https://api-m.paypal.com
    paypal_api_base: str = "https://api-m.sandbox.paypal.com"
    paypal_http_timeout_seconds: float = 10.0
    paypal_token_cache_seconds: int = 0
    public_base_url: str = "http://localhost:4242"
    brand_name: str = "Hole In One Challenge"
    currency_code: str = "USD"
    ledger_backend: str = "memory"
    database_url: str | None = None
    tracing_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = CommonSettings()
