from __future__ import annotations


DEFAULT_VERSION = "0.0.0"

GITHUB_API_URL = "https://api.github.com"
GITHUB_HOST = "github.com"
NPM_PACKAGE_URL = "https://www.npmjs.com/package"

PRE_RELEASE_DIST_TAG = "next"

# Usage events are only sent when an endpoint is configured.
METRICS_URL_ENV = "SHIP_METRICS_URL"
