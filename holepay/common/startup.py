"""Startup-time helpers for safe config logging."""

from pydantic import SecretStr
from pydantic_settings import BaseSettings

from holepay.common.logging import logger

# Not secret to PayPal, but no reason to put them in log aggregation either.
REDACTED_FIELDS = frozenset({"paypal_client_id", "database_url"})


def redacted_config(settings: BaseSettings, fields: list[str]) -> dict[str, object]:
    """Return selected settings with secrets replaced by a marker."""

    config: dict[str, object] = {}
    for name in fields:
        value = getattr(settings, name, None)
        if value is None or value == "":
            config[name] = "<unset>"
        elif isinstance(value, SecretStr) or name in REDACTED_FIELDS:
            config[name] = "<redacted>"
        else:
            config[name] = value
    return config


def log_startup_config(settings: BaseSettings, fields: list[str]) -> None:
    """Log selected startup config keys for quick troubleshooting."""

    config = {"service": settings.service_name, **redacted_config(settings, fields)}
    logger.info("startup_config=%s", config)
