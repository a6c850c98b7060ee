# ABOUTME: Visitor geolocation through the free ip-api.com JSON endpoint.
# ABOUTME: Maps transport, decoding, and provider-reported failures to distinct FeedErrors.

import logging

import httpx

from atmosphere.models import FeedError, GeoResult

logger = logging.getLogger(__name__)

GEOLOCATION_URL = "http://ip-api.com/json/{ip}"
GEOLOCATION_FIELDS = "status,message,country,regionName,city,zip,lat,lon"
GEOLOCATION_TIMEOUT = 5.0


async def geolocate_ip(client: httpx.AsyncClient, ip: str) -> GeoResult | FeedError:
    """Look up the approximate position of a public IP address.

    The free tier is limited to 45 requests per minute; reserved or private
    addresses come back with a provider failure status.
    """
    try:
        resp = await client.get(
            GEOLOCATION_URL.format(ip=ip),
            params={"lang": "fr", "fields": GEOLOCATION_FIELDS},
            timeout=GEOLOCATION_TIMEOUT,
        )
        resp.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("Geolocation request for %s failed: %s", ip, e)
        return FeedError(kind="network", message=f"Unable to reach the geolocation API: {e}")

    try:
        data = resp.json()
    except ValueError:
        data = None
    if not isinstance(data, dict):
        return FeedError(kind="malformed", message=f"Invalid JSON response: {resp.text[:100]}")

    if data.get("status") != "success":
        return FeedError(kind="provider", message=data.get("message") or "Geolocation failed")

    try:
        return GeoResult(
            latitude=data["lat"],
            longitude=data["lon"],
            city=data.get("city") or "",
            region=data.get("regionName") or "",
            zip=data.get("zip") or "",
            country=data.get("country") or "",
        )
    except (KeyError, ValueError) as e:
        return FeedError(kind="malformed", message=f"Incomplete geolocation response: {e}")
