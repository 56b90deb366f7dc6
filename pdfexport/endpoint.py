"""
Debugging endpoint of a browser: where it listens and what it reports.

Chrome's debug port exposes a REST-like API next to the CDP websockets. Only
/json/version is used here; it returns the browser's version string and the
websocket URL of the browser target:

    {"Browser": "HeadlessChrome/104.0.5112.79",
     "webSocketDebuggerUrl": "ws://127.0.0.1:9222/devtools/browser/<id>"}
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from .errors import EndpointResolutionError

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r"(\d+)\.[\d.]+")


@dataclass(frozen=True)
class DebugEndpoint:
    host: str
    port: int

    @classmethod
    def parse(cls, address):
        """Build an endpoint from a "host:port" string."""
        host, sep, port = str(address).rpartition(":")
        if not sep or not host or not port.isdigit():
            raise ValueError(f"Expected host:port, got {address!r}")
        return cls(host, int(port))

    @property
    def netloc(self):
        return f"{self.host}:{self.port}"

    @property
    def version_url(self):
        return f"http://{self.netloc}/json/version"

    def browser_url(self, browser_id):
        return f"ws://{self.netloc}/devtools/browser/{browser_id}"

    def page_url(self, target_id):
        return f"ws://{self.netloc}/devtools/page/{target_id}"


def json_version(endpoint: DebugEndpoint, timeout: float = 10.0) -> Optional[dict]:
    """
    Fetch /json/version from a running browser.

    Returns:
        dict: The decoded body on HTTP 200, None on any other status.

    Raises:
        EndpointResolutionError: If the endpoint is not reachable at all or
            answers 200 with something other than a JSON object.
    """
    url = endpoint.version_url
    try:
        response = httpx.get(url, timeout=timeout)
    except httpx.HTTPError as e:
        raise EndpointResolutionError(f"Browser not reachable at {url}: {e}") from e

    if response.status_code != 200:
        logger.warning(f"Unexpected status {response.status_code} from {url}")
        return None

    try:
        info = response.json()
    except ValueError as e:
        raise EndpointResolutionError(f"Invalid version info from {url}: {e}") from e
    if not isinstance(info, dict):
        raise EndpointResolutionError(f"Invalid version info from {url}: {info!r}")
    return info


def browser_id_from(version_info: dict) -> str:
    """Extract the browser target id from a /json/version body."""
    ws_url = version_info.get("webSocketDebuggerUrl") or ""
    browser_id = ws_url.rstrip("/").rsplit("/", 1)[-1]
    if "/devtools/browser/" not in ws_url or not browser_id:
        raise EndpointResolutionError(f"No browser websocket in version info: {version_info!r}")
    return browser_id


def parse_major_version(version: str) -> Optional[int]:
    """Major version of a version string like "Chrome/104.0.5112.79", None if unknown."""
    match = VERSION_PATTERN.search(version or "")
    if match:
        return int(match.group(1))
    return None
