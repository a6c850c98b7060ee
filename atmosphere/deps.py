# ABOUTME: Shared HTTP client factory for all dashboard feeds.
# ABOUTME: Applies the deployment proxy and TLS verification settings once at startup.

import httpx

from atmosphere.config import Settings

USER_AGENT = "AtmosphereApp/1.0"


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create the process-wide httpx client.

    Requests are never retried; each feed passes its own timeout per call.
    """
    return httpx.AsyncClient(
        proxy=settings.proxy,
        verify=settings.verify_tls,
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
    )
