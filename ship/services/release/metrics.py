"""Anonymous usage events.

Events are posted only when metrics are enabled and an endpoint is set in
the environment. Delivery is best effort: a failed post never affects the
release.
"""

from __future__ import annotations

import platform
import uuid
from collections.abc import Mapping

from ship.platform.http import HttpClient
from ship.services.release.config import METRICS_URL_ENV

__all__ = ["Metrics"]

_TRACKED_OPTIONS = ("increment", "pre_release", "dry_run", "verbose", "interactive", "use")


class Metrics:
    def __init__(
        self,
        *,
        enabled: bool,
        http: HttpClient,
        env: Mapping[str, str],
        version: str,
    ) -> None:
        self.url = env.get(METRICS_URL_ENV) or None
        self.enabled = enabled and self.url is not None
        self.http = http
        self.version = version
        self.session = uuid.uuid4().hex
        self.events: list[str] = []

    def _send(self, event: str, properties: Mapping[str, object]) -> None:
        self.events.append(event)
        if not self.enabled or self.url is None:
            return
        payload = {
            "event": event,
            "session": self.session,
            "version": self.version,
            "python": platform.python_version(),
            "os": platform.system().lower(),
            "properties": dict(properties),
        }
        # Delivery failures are ignored.
        self.http.request_json("POST", self.url, body=payload)

    def track_event(self, event: str, options: Mapping[str, object] | None = None) -> None:
        props = {k: options.get(k) for k in _TRACKED_OPTIONS} if options else {}
        self._send(event, props)

    def track_exception(self, error: object) -> None:
        kind = getattr(error, "kind", None) or type(error).__name__
        self._send("exception", {"kind": kind})
