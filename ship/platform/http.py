"""HTTP client abstraction for hosted-git and metrics APIs.

This module provides:
- HttpClient: Protocol for HTTP operations (injectable for tests)
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Mock implementation for testing
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from ship.core.result import Err, Ok, Result

__all__ = [
    "HttpCall",
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
]


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors)
        message: Human-readable error message
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP operations.

    Bodies are JSON-encoded when given as objects; `send_bytes` posts a raw
    payload (asset uploads). Responses are decoded JSON (or None when the
    response body is empty).
    """

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: object | None = None,
    ) -> Result[object, HttpError]: ...

    def send_bytes(
        self,
        url: str,
        data: bytes,
        *,
        content_type: str,
        headers: Mapping[str, str] | None = None,
    ) -> Result[object, HttpError]: ...


class RealHttpClient:
    """Real HTTP client using urllib."""

    def __init__(self, timeout: float = 30.0, user_agent: str = "ship-release") -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def _send(
        self,
        method: str,
        url: str,
        *,
        data: bytes | None,
        headers: Mapping[str, str],
    ) -> Result[object, HttpError]:
        try:
            req = urllib.request.Request(
                url,
                data=data,
                method=method,
                headers={"User-Agent": self.user_agent, **headers},
            )
            with urllib.request.urlopen(
                req,
                timeout=self.timeout or None,
                context=self._ssl_context,
            ) as response:
                raw = response.read()
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=_error_message(e)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except (ValueError, OSError) as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

        if not raw:
            return Ok(None)
        try:
            return Ok(json.loads(raw.decode("utf-8")))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(HttpError(url=url, status=0, message=f"JSON parse error: {e}"))

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: object | None = None,
    ) -> Result[object, HttpError]:
        all_headers = {"Accept": "application/json", **(headers or {})}
        data: bytes | None = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            all_headers["Content-Type"] = "application/json"
        return self._send(method, url, data=data, headers=all_headers)

    def send_bytes(
        self,
        url: str,
        data: bytes,
        *,
        content_type: str,
        headers: Mapping[str, str] | None = None,
    ) -> Result[object, HttpError]:
        all_headers = {
            "Accept": "application/json",
            "Content-Type": content_type,
            "Content-Length": str(len(data)),
            **(headers or {}),
        }
        return self._send("POST", url, data=data, headers=all_headers)


def _error_message(e: urllib.error.HTTPError) -> str:
    try:
        payload = e.read().decode("utf-8")
    except (OSError, UnicodeDecodeError):
        payload = ""
    if payload:
        try:
            obj: object = json.loads(payload)
        except json.JSONDecodeError:
            return payload.strip()
        if isinstance(obj, dict) and isinstance(obj.get("message"), str):
            return str(obj["message"])
    return str(e.reason)


@dataclass(frozen=True, slots=True)
class HttpCall:
    """A request recorded by MockHttpClient."""

    method: str
    url: str
    headers: dict[str, str]
    body: object | None = None
    data: bytes | None = None


Responder = Callable[[HttpCall], object]


def _empty_calls() -> list[HttpCall]:
    return []


@dataclass
class MockHttpClient:
    """Mock HTTP client for testing.

    Responses are registered per (method, url-prefix). A response can be a
    JSON-like value, an HttpError, or a callable receiving the HttpCall.

    Usage:
        http = MockHttpClient()
        http.on("POST", "https://api.github.com/repos/o/r/releases", {"id": 1})
        result = http.request_json("POST", "https://api.github.com/repos/o/r/releases")
        assert http.calls[0].method == "POST"
    """

    calls: list[HttpCall] = field(default_factory=_empty_calls)
    _routes: list[tuple[str, str, object]] = field(default_factory=list)

    def on(self, method: str, url_prefix: str, response: object) -> None:
        self._routes.append((method.upper(), url_prefix, response))

    def _respond(self, call: HttpCall) -> Result[object, HttpError]:
        self.calls.append(call)
        for method, prefix, response in self._routes:
            if method != call.method or not call.url.startswith(prefix):
                continue
            if callable(response):
                response = response(call)
            if isinstance(response, HttpError):
                return Err(response)
            return Ok(response)
        return Err(HttpError(url=call.url, status=404, message="Not found (mock)"))

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: object | None = None,
    ) -> Result[object, HttpError]:
        return self._respond(
            HttpCall(method=method.upper(), url=url, headers=dict(headers or {}), body=body)
        )

    def send_bytes(
        self,
        url: str,
        data: bytes,
        *,
        content_type: str,
        headers: Mapping[str, str] | None = None,
    ) -> Result[object, HttpError]:
        all_headers = {"Content-Type": content_type, **(headers or {})}
        return self._respond(HttpCall(method="POST", url=url, headers=all_headers, data=data))
