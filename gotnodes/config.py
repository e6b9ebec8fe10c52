#!/usr/bin/env python3
"""
Runtime configuration
Upstream credentials and tunables, read once from the environment
"""

import os
import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Edge cache bounds for the chain-TVL lookup (seconds)
MIN_CACHE_TTL = 60
MAX_CACHE_TTL = 300

# Setting name -> environment variables checked in order
ENV_KEYS = {
    "beaconchain_api_key": ["BEACONCHA_IN_API_KEY"],
    "glacier_api_key": ["GLACIER_API_KEY"],
    "llama_api_key": ["VITE_LLAMA_API_KEY", "LLAMA_API_KEY"],
}


def _first_env(environ: Mapping[str, str], names) -> Optional[str]:
    for name in names:
        value = (environ.get(name) or "").strip()
        if value:
            return value
    return None


def _int_env(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(name, f"{name} must be an integer, got {raw!r}")


@dataclass
class Settings:
    """Explicit configuration handed to every component at construction"""
    beaconchain_api_key: Optional[str] = None
    glacier_api_key: Optional[str] = None
    llama_api_key: Optional[str] = None
    timeout: int = 10
    max_workers: int = 4
    tvl_cache_ttl: int = 120
    network: str = "mainnet"
    host: str = "127.0.0.1"
    port: int = 8788

    def __post_init__(self):
        self.tvl_cache_ttl = max(MIN_CACHE_TTL, min(MAX_CACHE_TTL, int(self.tvl_cache_ttl)))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> "Settings":
        """Build settings from the process environment (and a .env file when present)"""
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        return cls(
            beaconchain_api_key=_first_env(environ, ENV_KEYS["beaconchain_api_key"]),
            glacier_api_key=_first_env(environ, ENV_KEYS["glacier_api_key"]),
            llama_api_key=_first_env(environ, ENV_KEYS["llama_api_key"]),
            timeout=_int_env(environ, "GOTNODES_TIMEOUT", 10),
            max_workers=_int_env(environ, "GOTNODES_MAX_WORKERS", 4),
            tvl_cache_ttl=_int_env(environ, "GOTNODES_TVL_CACHE_TTL", 120),
            network=(environ.get("GOTNODES_NETWORK") or "mainnet").strip(),
            host=(environ.get("GOTNODES_HOST") or "127.0.0.1").strip(),
            port=_int_env(environ, "GOTNODES_PORT", 8788),
        )

    def validate(self) -> Dict[str, bool]:
        """Report which provider credentials are configured; logged once at startup"""
        status = {name: bool(getattr(self, name)) for name in ENV_KEYS}
        for name, present in status.items():
            if not present:
                env_names = " / ".join(ENV_KEYS[name])
                logger.warning(f"{env_names} not set - endpoints that need it will fail with configuration_error")
        if self.timeout <= 0:
            raise ConfigurationError("GOTNODES_TIMEOUT", "GOTNODES_TIMEOUT must be positive")
        if self.max_workers <= 0:
            raise ConfigurationError("GOTNODES_MAX_WORKERS", "GOTNODES_MAX_WORKERS must be positive")
        return status

    def require(self, name: str) -> str:
        """Return a credential or fail before any network call is attempted"""
        value = getattr(self, name, None)
        if not value:
            raise ConfigurationError(ENV_KEYS.get(name, [name])[0])
        return value
