"""
Tests for the HTTP remote execution client.

Uses httpx.MockTransport in place of a running engine.
"""
from __future__ import annotations

import json
from urllib.parse import parse_qs

import httpx
import pytest

from mojo_deploy.client import GRACEFUL_FAILURE, SUCCESS, RemoteExecutionClient
from mojo_deploy.errors import RemoteCallError
from mojo_deploy.http_client import API_PATH, VoltHttpClient
from mojo_deploy.settings import Settings


def form_of(request: httpx.Request) -> dict:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


class Recorder:
    """Mock transport handler that records requests and replays one body."""

    def __init__(self, body=None, status_code=200):
        self.body = body if body is not None else {"status": SUCCESS, "results": []}
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.body, str):
            return httpx.Response(self.status_code, text=self.body)
        return httpx.Response(self.status_code, json=self.body)


def make_client(handler, **settings_kwargs) -> VoltHttpClient:
    return VoltHttpClient(Settings(**settings_kwargs), transport=httpx.MockTransport(handler))


class TestRequests:
    """Test what goes over the wire."""

    def test_satisfies_protocol(self):
        assert isinstance(make_client(Recorder()), RemoteExecutionClient)

    def test_call_procedure(self):
        recorder = Recorder({"status": SUCCESS, "results": [{"data": [["NO"]]}]})
        with make_client(recorder) as client:
            response = client.call_procedure("IsFlightLate", "SAN", "0730", 1)

        request = recorder.requests[0]
        assert str(request.url) == f"http://localhost:8080{API_PATH}"
        assert form_of(request) == {
            "Procedure": "IsFlightLate",
            "Parameters": json.dumps(["SAN", "0730", 1]),
        }
        assert response.ok
        assert response.results == [{"data": [["NO"]]}]

    def test_update_classes_sends_hex(self):
        recorder = Recorder()
        with make_client(recorder) as client:
            client.update_classes(b"\x50\x4b\x03\x04")

        form = form_of(recorder.requests[0])
        assert form["Procedure"] == "@UpdateClasses"
        assert json.loads(form["Parameters"]) == ["504b0304", None]

    def test_ad_hoc(self):
        recorder = Recorder()
        with make_client(recorder) as client:
            client.ad_hoc("PARTITION TABLE cached_results ON COLUMN origin;")

        form = form_of(recorder.requests[0])
        assert form["Procedure"] == "@AdHoc"
        assert json.loads(form["Parameters"]) == ["PARTITION TABLE cached_results ON COLUMN origin;"]

    def test_credentials(self):
        recorder = Recorder()
        with make_client(recorder, user="admin", password="secret") as client:
            client.call_procedure("P")

        form = form_of(recorder.requests[0])
        assert form["User"] == "admin"
        assert form["Password"] == "secret"

    def test_no_credentials_by_default(self):
        recorder = Recorder()
        with make_client(recorder) as client:
            client.call_procedure("P")

        assert "User" not in form_of(recorder.requests[0])


class TestResponses:

    def test_status_string_passed_through(self):
        recorder = Recorder({"status": GRACEFUL_FAILURE, "statusstring": "Procedure P was not found"})
        with make_client(recorder) as client:
            response = client.call_procedure("P")

        assert not response.ok
        assert response.status == GRACEFUL_FAILURE
        assert response.status_string == "Procedure P was not found"

    def test_invalid_json(self):
        with make_client(Recorder("<html>proxy error</html>")) as client:
            with pytest.raises(RemoteCallError, match="Invalid JSON"):
                client.call_procedure("P")

    def test_missing_status(self):
        with make_client(Recorder({"results": []})) as client:
            with pytest.raises(RemoteCallError, match="Malformed response"):
                client.call_procedure("P")

    def test_http_error(self):
        with make_client(Recorder({"status": SUCCESS}, status_code=500)) as client:
            with pytest.raises(RemoteCallError, match="HTTP 500") as exc_info:
                client.call_procedure("P")

        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)


class TestHosts:
    """Test host fallback."""

    def test_base_urls(self):
        client = make_client(Recorder(), hosts=("db1", "db2:8181", "https://db3"))
        assert client.base_urls == ["http://db1:8080", "http://db2:8181", "https://db3"]

    def test_unreachable_host_skipped(self):
        seen = []

        def handler(request):
            seen.append(request.url.host)
            if request.url.host == "db1":
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"status": SUCCESS})

        with make_client(handler, hosts=("db1", "db2")) as client:
            assert client.call_procedure("P").ok

        assert seen == ["db1", "db2"]

    def test_no_host_reachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with make_client(handler, hosts=("db1", "db2")) as client:
            with pytest.raises(RemoteCallError, match="No host reachable calling P") as exc_info:
                client.call_procedure("P")

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_timeout_without_retry(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        with make_client(handler) as client:
            with pytest.raises(RemoteCallError):
                client.call_procedure("P")

        assert len(calls) == 1

    @pytest.mark.slow
    def test_timeout_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, json={"status": SUCCESS})

        with make_client(handler, http_retry=1) as client:
            assert client.call_procedure("P").ok

        assert len(calls) == 2
