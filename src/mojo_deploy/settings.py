"""
Settings and configuration for mojo-deploy.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables at client construction time.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional, Tuple

__all__ = ["Settings", "create_settings_from_env", "parse_hosts", "chunk_bundle_bound"]

DEFAULT_MAX_CHUNK_SIZE = 10 * 1024 * 1024
DEFAULT_MAX_BUNDLE_SIZE = 50 * 1024 * 1024

# Manifest, local and central headers, end of central directory
ARCHIVE_OVERHEAD = 1024

_HOST_PATTERN = re.compile(r"^(?:https?://)?[a-zA-Z0-9.-]+(?::[0-9]+)?$")


def chunk_bundle_bound(chunk_size: int) -> int:
    """
    Upper bound on the serialized size of a bundle carrying one chunk.

    Deflate never grows incompressible input by more than zlib's
    ``deflateBound``; entry paths are assumed to stay well under a few
    hundred bytes.
    """
    deflated = chunk_size + (chunk_size >> 12) + (chunk_size >> 14) + (chunk_size >> 25) + 13
    return deflated + ARCHIVE_OVERHEAD


def parse_hosts(value: str) -> Tuple[str, ...]:
    """Split a comma-separated host list, dropping blanks."""
    return tuple(h.strip() for h in value.split(",") if h.strip())


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for mojo-deploy.

    Remote engine settings:
        hosts: Hosts of the remote execution engine, tried in order
        port: HTTP port of the engine's JSON interface
        user: Username for the engine (optional)
        password: Password for the engine (optional)
        http_timeout_s: HTTP request timeout in seconds
        http_retry: Number of retries for timed out requests (0=no retry)

    Deployment settings:
        max_chunk_size: Resources of at least this many bytes are split
        max_bundle_size: Largest serialized bundle we will upload
        strict_probe: Fail on unrecognized probe errors instead of deploying
    """
    hosts: Tuple[str, ...] = ("localhost",)
    port: int = 8080
    user: Optional[str] = None
    password: Optional[str] = None
    http_timeout_s: float = 30.0
    http_retry: int = 0

    max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
    max_bundle_size: int = DEFAULT_MAX_BUNDLE_SIZE
    strict_probe: bool = False

    def __post_init__(self):
        """Validate settings on construction."""
        if not self.hosts:
            raise ValueError("at least one host is required")

        for host in self.hosts:
            if not _HOST_PATTERN.match(host):
                raise ValueError(f"Invalid host format: {host}")

        if not 0 < self.port < 65536:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")

        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        if self.http_retry < 0:
            raise ValueError(f"http_retry must be non-negative, got {self.http_retry}")

        if self.max_chunk_size <= 0:
            raise ValueError(f"max_chunk_size must be positive, got {self.max_chunk_size}")

        needed = chunk_bundle_bound(self.max_chunk_size)
        if self.max_bundle_size < needed:
            raise ValueError(
                f"max_bundle_size ({self.max_bundle_size}) cannot hold a chunk bundle of "
                f"max_chunk_size ({self.max_chunk_size}); needs at least {needed}"
            )

        if self.password and not self.user:
            raise ValueError("password specified but user is missing")


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        - MOJO_DEPLOY_HOSTS (default: localhost, comma-separated)
        - MOJO_DEPLOY_PORT (default: 8080)
        - MOJO_DEPLOY_USER (optional)
        - MOJO_DEPLOY_PASSWORD (optional)
        - MOJO_DEPLOY_HTTP_TIMEOUT (default: 30.0)
        - MOJO_DEPLOY_HTTP_RETRY (default: 0)
        - MOJO_DEPLOY_MAX_CHUNK_SIZE (default: 10 MiB)
        - MOJO_DEPLOY_MAX_BUNDLE_SIZE (default: 50 MiB)
        - MOJO_DEPLOY_STRICT_PROBE (default: false)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def str_to_bool(value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on')

    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        return int(value) if value else default

    hosts = parse_hosts(os.getenv("MOJO_DEPLOY_HOSTS", "localhost"))

    return Settings(
        hosts=hosts,
        port=get_int("MOJO_DEPLOY_PORT", 8080),
        user=os.getenv("MOJO_DEPLOY_USER"),
        password=os.getenv("MOJO_DEPLOY_PASSWORD"),
        http_timeout_s=get_float("MOJO_DEPLOY_HTTP_TIMEOUT", 30.0),
        http_retry=get_int("MOJO_DEPLOY_HTTP_RETRY", 0),
        max_chunk_size=get_int("MOJO_DEPLOY_MAX_CHUNK_SIZE", DEFAULT_MAX_CHUNK_SIZE),
        max_bundle_size=get_int("MOJO_DEPLOY_MAX_BUNDLE_SIZE", DEFAULT_MAX_BUNDLE_SIZE),
        strict_probe=str_to_bool(os.getenv("MOJO_DEPLOY_STRICT_PROBE", "false")),
    )
