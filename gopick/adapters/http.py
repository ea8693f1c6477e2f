"""
HTTP adapter — plain GET requests over ``urllib.request``.

Non-2xx responses are returned, not raised, so callers decide what a
status code means (retry, not-found, ...). Transport failures (DNS,
refused connections, timeouts) raise ``TransportError``.
"""

from __future__ import annotations

import logging
import urllib.error
import urllib.request
from dataclasses import dataclass

from gopick import __version__

logger = logging.getLogger(__name__)

USER_AGENT = f"gopick/{__version__} (+https://pkg.go.dev)"


class TransportError(Exception):
    """The request never produced an HTTP response."""


@dataclass(frozen=True)
class HttpResponse:
    status: int
    body: bytes = b""
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def http_get(url: str, timeout: float = 10.0) -> HttpResponse:
    """GET ``url`` and return status + body.

    Raises:
        TransportError: On network-level failure.
    """
    req = urllib.request.Request(
        url,
        headers={"User-Agent": USER_AGENT, "Accept": "text/html"},
    )
    logger.debug("GET %s", url)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            return HttpResponse(status=resp.status, body=resp.read(), url=url)
    except urllib.error.HTTPError as e:
        body = e.read() if e.fp is not None else b""
        return HttpResponse(status=e.code, body=body, url=url)
    except (urllib.error.URLError, OSError) as e:
        raise TransportError(f"GET {url} failed: {e}") from e
