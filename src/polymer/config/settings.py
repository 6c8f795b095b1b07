from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float | None) -> float | None:
    val = os.getenv(name)
    if not val:
        return default
    return float(val)


def parse_listen_address(address: str) -> tuple[str, int]:
    """Split ``host:port``; an empty host means all interfaces (``:8080``)."""
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address: {address!r}")
    return host or "0.0.0.0", int(port)  # nosec B104


@dataclass
class Settings:
    config_file: str = os.getenv("POLYMER_CONFIG", ".polymer.yaml")
    listen_address: str = os.getenv("LISTEN_ADDRESS", ":8080")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    headless: bool = _env_bool("HEADLESS", True)
    # executor deadlines, seconds
    call_timeout: float = float(os.getenv("CALL_TIMEOUT", "30"))
    run_timeout: float | None = _env_float("RUN_TIMEOUT", None)
    # playwright timeouts, milliseconds
    navigation_timeout_ms: int = int(os.getenv("NAVIGATION_TIMEOUT_MS", "20000"))
    element_timeout_ms: int = int(os.getenv("ELEMENT_TIMEOUT_MS", "5000"))
    browser_pool_size: int = int(os.getenv("BROWSER_POOL_SIZE", "2"))
    browser_acquire_timeout: float = float(os.getenv("BROWSER_ACQUIRE_TIMEOUT", "30"))
    browser_max_requests: int = int(os.getenv("BROWSER_MAX_REQUESTS", "100"))
    browser_max_age_seconds: int = int(os.getenv("BROWSER_MAX_AGE", "3600"))


settings = Settings()
