"""Tests for platform/http.py - HTTP client abstraction."""

from __future__ import annotations

import json
import threading
from collections.abc import Iterator
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest

from ship.core.result import Err, Ok
from ship.platform.http import HttpCall, HttpClient, HttpError, MockHttpClient, RealHttpClient


@pytest.fixture(autouse=True)
def _no_proxy(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("no_proxy", "127.0.0.1,localhost")
    monkeypatch.setenv("NO_PROXY", "127.0.0.1,localhost")


class TestHttpError:
    def test_str_with_status(self) -> None:
        error = HttpError(url="https://example.com/api", status=500, message="Internal Error")
        assert str(error) == "HTTP 500: Internal Error (https://example.com/api)"

    def test_str_without_status(self) -> None:
        error = HttpError(url="https://example.com", status=0, message="Timeout")
        assert str(error) == "Timeout (https://example.com)"

    def test_is_frozen(self) -> None:
        error = HttpError(url="https://example.com", status=404, message="Not Found")
        with pytest.raises(AttributeError):
            error.status = 500  # type: ignore[misc]


class TestMockHttpClient:
    def test_isinstance_check(self) -> None:
        assert isinstance(MockHttpClient(), HttpClient)

    def test_routes_by_method_and_prefix(self) -> None:
        http = MockHttpClient()
        http.on("POST", "https://api.example.com/releases", {"id": 1})

        assert http.request_json("POST", "https://api.example.com/releases") == Ok({"id": 1})
        result = http.request_json("GET", "https://api.example.com/releases")
        assert isinstance(result, Err)
        assert result.error.status == 404

    def test_error_response(self) -> None:
        http = MockHttpClient()
        http.on("POST", "https://x", HttpError(url="https://x", status=422, message="bad"))
        result = http.request_json("POST", "https://x/y", body={"a": 1})
        assert isinstance(result, Err)
        assert result.error.status == 422

    def test_callable_response_sees_call(self) -> None:
        http = MockHttpClient()
        http.on("POST", "https://x", lambda call: {"echo": call.body})
        assert http.request_json("POST", "https://x", body=[1]) == Ok({"echo": [1]})

    def test_records_calls(self) -> None:
        http = MockHttpClient()
        http.send_bytes("https://up", b"data", content_type="text/plain", headers={"A": "b"})
        assert http.calls == [
            HttpCall(
                method="POST",
                url="https://up",
                headers={"Content-Type": "text/plain", "A": "b"},
                data=b"data",
            )
        ]


class TestRealHttpClient:
    def test_isinstance_check(self) -> None:
        assert isinstance(RealHttpClient(), HttpClient)

    def test_invalid_url(self) -> None:
        result = RealHttpClient(timeout=1.0).request_json("GET", "not-a-url")
        assert isinstance(result, Err)
        assert result.error.status == 0

    def test_connection_refused(self) -> None:
        result = RealHttpClient(timeout=1.0).request_json("GET", "http://127.0.0.1:9/")
        assert isinstance(result, Err)
        assert result.error.status == 0


class _Handler(BaseHTTPRequestHandler):
    def do_POST(self) -> None:  # noqa: N802
        length = int(self.headers.get("Content-Length", "0"))
        payload = self.rfile.read(length)
        if self.path == "/fail":
            body = json.dumps({"message": "Validation Failed"}).encode("utf-8")
            self.send_response(422)
        elif self.path == "/empty":
            body = b""
            self.send_response(204)
        else:
            body = json.dumps(
                {
                    "content_type": self.headers.get("Content-Type"),
                    "auth": self.headers.get("Authorization"),
                    "size": len(payload),
                    "json": json.loads(payload) if self.path == "/json" else None,
                }
            ).encode("utf-8")
            self.send_response(201)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:
        pass


@pytest.fixture
def server_url() -> Iterator[str]:
    server = HTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()


class TestRealHttpClientLocalServer:
    def test_post_json(self, server_url: str) -> None:
        result = RealHttpClient(timeout=5.0).request_json(
            "POST", f"{server_url}/json", headers={"Authorization": "token t"}, body={"a": 1}
        )
        assert isinstance(result, Ok)
        assert result.value == {
            "content_type": "application/json",
            "auth": "token t",
            "size": len(b'{"a": 1}'),
            "json": {"a": 1},
        }

    def test_send_bytes(self, server_url: str) -> None:
        result = RealHttpClient(timeout=5.0).send_bytes(
            f"{server_url}/upload", b"12345", content_type="application/zip"
        )
        assert isinstance(result, Ok)
        assert isinstance(result.value, dict)
        assert result.value["content_type"] == "application/zip"
        assert result.value["size"] == 5

    def test_error_message_from_body(self, server_url: str) -> None:
        result = RealHttpClient(timeout=5.0).request_json("POST", f"{server_url}/fail", body={})
        assert isinstance(result, Err)
        assert result.error.status == 422
        assert result.error.message == "Validation Failed"

    def test_empty_response(self, server_url: str) -> None:
        result = RealHttpClient(timeout=5.0).request_json("POST", f"{server_url}/empty", body={})
        assert result == Ok(None)
