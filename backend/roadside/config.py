import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_csv_env(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _parse_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    if raw:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
    return default


def _parse_positive_float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r; using %s", name, raw, default)
        return default
    return value


@dataclass
class Settings:
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    trusted_hosts: list[str] = field(default_factory=lambda: ["*"])
    match_radius_miles: float = 10.0
    lifecycle_strict: bool = False
    derive_history_on_complete: bool = True
    seed_demo_data: bool = True


def load_settings() -> Settings:
    return Settings(
        cors_origins=_parse_csv_env("CORS_ORIGINS", "*"),
        trusted_hosts=_parse_csv_env("TRUSTED_HOSTS", "*"),
        match_radius_miles=_parse_positive_float_env("MATCH_RADIUS_MILES", 10.0),
        lifecycle_strict=_parse_bool_env("LIFECYCLE_STRICT", False),
        derive_history_on_complete=_parse_bool_env("DERIVE_HISTORY_ON_COMPLETE", True),
        seed_demo_data=_parse_bool_env("SEED_DEMO_DATA", True),
    )
