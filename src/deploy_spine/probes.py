"""Readiness probes for deployable monitors.

A probe is a zero-argument callable returning ``True`` once the artifact is
live. Probes swallow transport-level failures and answer ``False``: a
connection refused while a web application is still starting is the normal
"not deployed yet" signal, not an error.

Features:
    - **http_ping_probe():** GET a URL via httpx, 2xx plus optional expected
      body content means deployed.

Examples:
    >>> probe = http_ping_probe("http://localhost:8080/shop/index.html",
    ...                         expected_content="Shop is up")
    >>> probe()
    False
"""

from __future__ import annotations

from collections.abc import Callable

import httpx

from deploy_spine.logging import get_logger

logger = get_logger(__name__)


def http_ping_probe(
    url: str,
    *,
    expected_content: str | None = None,
    request_timeout: float = 5.0,
    transport: httpx.BaseTransport | None = None,
) -> Callable[[], bool]:
    """Build a probe that pings *url*.

    ``transport`` is handed to ``httpx.Client`` (tests pass an
    ``httpx.MockTransport``).
    """

    def probe() -> bool:
        try:
            with httpx.Client(timeout=request_timeout, transport=transport) as client:
                resp = client.get(url)
        except httpx.HTTPError as exc:
            logger.debug("probe.unreachable", url=url, error=str(exc))
            return False
        if not resp.is_success:
            logger.debug("probe.status", url=url, status=resp.status_code)
            return False
        if expected_content is not None and expected_content not in resp.text:
            logger.debug("probe.content_mismatch", url=url)
            return False
        return True

    return probe
