"""Runtime settings, read once from the environment or a ``.env`` file.

Only the infrastructure layer reads settings; the application layer
receives plain policy values built from them.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from decouple import config


@dataclass(frozen=True)
class Settings:
    api_url: str
    api_token: str | None
    postal_lookup_url: str
    origin_postal_code: str
    http_timeout: float
    data_dir: Path
    poll_interval: float
    instant_transfer_timeout: float
    card_timeout: float
    fallback_expiry: float
    artifact_attempts: int
    artifact_delay: float
    log_level: str


def load_settings() -> Settings:
    return Settings(
        api_url=config("CHECKOUT_API_URL", default="http://localhost:3000/api"),
        api_token=config("CHECKOUT_API_TOKEN", default="") or None,
        postal_lookup_url=config("CHECKOUT_POSTAL_LOOKUP_URL", default="https://viacep.com.br/ws"),
        origin_postal_code=config("CHECKOUT_ORIGIN_POSTAL_CODE", default="01310100"),
        http_timeout=config("CHECKOUT_HTTP_TIMEOUT", default=30.0, cast=float),
        data_dir=Path(config("CHECKOUT_DATA_DIR", default="./data")),
        poll_interval=config("CHECKOUT_POLL_INTERVAL", default=5.0, cast=float),
        instant_transfer_timeout=config(
            "CHECKOUT_INSTANT_TRANSFER_TIMEOUT", default=300.0, cast=float
        ),
        card_timeout=config("CHECKOUT_CARD_TIMEOUT", default=600.0, cast=float),
        fallback_expiry=config("CHECKOUT_FALLBACK_EXPIRY", default=300.0, cast=float),
        artifact_attempts=config("CHECKOUT_ARTIFACT_ATTEMPTS", default=5, cast=int),
        artifact_delay=config("CHECKOUT_ARTIFACT_DELAY", default=2.0, cast=float),
        log_level=config("CHECKOUT_LOG_LEVEL", default="WARNING").upper(),
    )
