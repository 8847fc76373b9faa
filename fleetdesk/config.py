import logging
import os
from dataclasses import dataclass, field


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    database_path: str = field(default_factory=lambda: os.getenv("FLEETDESK_DB_PATH", "fleetdesk.db"))
    database_timeout: float = field(default_factory=lambda: _env_float("FLEETDESK_DB_TIMEOUT", 5.0))
    reference_prefix: str = field(default_factory=lambda: os.getenv("FLEETDESK_REFERENCE_PREFIX", "UNI"))
    log_level: str = field(default_factory=lambda: os.getenv("FLEETDESK_LOG_LEVEL", "INFO"))
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
