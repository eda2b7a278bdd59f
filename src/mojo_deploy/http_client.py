"""
HTTP client for the engine's JSON interface.

Implements :class:`~mojo_deploy.client.RemoteExecutionClient` on top of the
VoltDB-style ``/api/1.0/`` endpoint: every call is a form POST carrying the
procedure name and a JSON array of parameters. System procedures
(``@UpdateClasses``, ``@AdHoc``) go through the same endpoint.
"""
from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .client import ClientResponse
from .errors import RemoteCallError
from .settings import Settings

logger = logging.getLogger(__name__)

__all__ = ["VoltHttpClient", "API_PATH"]

API_PATH = "/api/1.0/"

_TIMEOUTS = (httpx.ConnectTimeout, httpx.ReadTimeout, httpx.TimeoutException)


class VoltHttpClient:
    """
    HTTP client for remote procedure calls.

    Hosts are tried in order; a host that cannot be reached is skipped for
    the next one. Timeouts are retried ``settings.http_retry`` times with
    exponential backoff before the call fails.
    """

    def __init__(self, settings: Settings, *, transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize the client.

        Args:
            settings: Hosts, port, credentials and timeouts
            transport: Optional httpx transport (tests inject a mock transport)
        """
        self.settings = settings
        self.base_urls = [self._base_url(h, settings.port) for h in settings.hosts]
        self.client = httpx.Client(
            timeout=httpx.Timeout(settings.http_timeout_s, connect=min(5.0, settings.http_timeout_s)),
            headers={"User-Agent": "mojo-deploy/0.1.0"},
            transport=transport,
        )

    @staticmethod
    def _base_url(host: str, port: int) -> str:
        if host.startswith("http://") or host.startswith("https://"):
            return host.rstrip("/")
        if ":" in host:
            return f"http://{host}"
        return f"http://{host}:{port}"

    def call_procedure(self, name: str, *params: Any) -> ClientResponse:
        return self._invoke(name, list(params))

    def update_classes(self, bundle: bytes) -> ClientResponse:
        # Binary parameters travel as hex strings; the second argument is the
        # (empty) list of classes to delete.
        return self._invoke("@UpdateClasses", [bundle.hex(), None])

    def ad_hoc(self, statement: str) -> ClientResponse:
        return self._invoke("@AdHoc", [statement])

    def _invoke(self, procedure: str, params: List[Any]) -> ClientResponse:
        form = {"Procedure": procedure, "Parameters": json.dumps(params)}
        if self.settings.user:
            form["User"] = self.settings.user
            form["Password"] = self.settings.password or ""

        last_error: Optional[Exception] = None
        for base_url in self.base_urls:
            try:
                response = self._post(f"{base_url}{API_PATH}", form)
            except httpx.TransportError as e:
                logger.warning(f"Call to {procedure} on {base_url} failed: {e}")
                last_error = e
                continue
            except httpx.HTTPStatusError as e:
                raise RemoteCallError(
                    f"HTTP {e.response.status_code} calling {procedure} on {base_url}"
                ) from e
            return self._parse(procedure, response)

        raise RemoteCallError(f"No host reachable calling {procedure}: {last_error}") from last_error

    def _post(self, url: str, form: dict) -> httpx.Response:
        for attempt in Retrying(
            stop=stop_after_attempt(self.settings.http_retry + 1),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(_TIMEOUTS),
            reraise=True,
        ):
            with attempt:
                response = self.client.post(url, data=form)
                response.raise_for_status()
                return response

    @staticmethod
    def _parse(procedure: str, response: httpx.Response) -> ClientResponse:
        try:
            body = response.json()
        except json.JSONDecodeError as e:
            raise RemoteCallError(f"Invalid JSON in response to {procedure}: {e}") from e

        if not isinstance(body, dict) or "status" not in body:
            raise RemoteCallError(f"Malformed response to {procedure}: {body!r}")

        return ClientResponse(
            status=int(body["status"]),
            status_string=body.get("statusstring"),
            results=body.get("results") or [],
        )

    def close(self):
        """Close HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
