"""
CLI Context for managing application dependencies.

Provides a clean way to manage CLI-level dependencies like settings and the
remote client, avoiding global state and enabling proper dependency injection.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Optional

from .http_client import VoltHttpClient
from .settings import Settings, create_settings_from_env, parse_hosts


@dataclass
class CLIContext:
    """
    Shared context for CLI commands.

    Holds the settings for one command execution and creates the remote
    client on first use.
    """
    settings: Settings
    _client: Optional[VoltHttpClient] = None

    @classmethod
    def from_env(cls, *, hosts: Optional[str] = None,
                 strict_probe: Optional[bool] = None,
                 max_chunk_size: Optional[int] = None) -> CLIContext:
        """
        Create CLI context from environment variables and command-line overrides.

        Args:
            hosts: Comma-separated host list overriding MOJO_DEPLOY_HOSTS
            strict_probe: Overrides MOJO_DEPLOY_STRICT_PROBE when given
            max_chunk_size: Overrides MOJO_DEPLOY_MAX_CHUNK_SIZE when given
        """
        settings = create_settings_from_env()
        overrides = {}
        if hosts:
            overrides["hosts"] = parse_hosts(hosts)
        if strict_probe is not None:
            overrides["strict_probe"] = strict_probe
        if max_chunk_size is not None:
            overrides["max_chunk_size"] = max_chunk_size
        if overrides:
            settings = dataclasses.replace(settings, **overrides)
        return cls(settings=settings)

    @property
    def client(self) -> VoltHttpClient:
        """Get or create the remote client (lazy initialization)."""
        if self._client is None:
            self._client = VoltHttpClient(self.settings)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
