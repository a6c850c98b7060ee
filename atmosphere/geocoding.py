# ABOUTME: Address geocoding through the OpenStreetMap Nominatim search API.
# ABOUTME: Used only to recover the landmark coordinates when the visitor is outside the target city.

import logging

import httpx

from atmosphere.models import FeedError, GeocodeResult

logger = logging.getLogger(__name__)

NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
GEOCODING_TIMEOUT = 10.0


async def geocode_address(client: httpx.AsyncClient, address: str) -> GeocodeResult | FeedError:
    """Geocode a free-text address, returning the first match.

    Nominatim rejects anonymous clients, so the shared client's User-Agent must be set.
    """
    try:
        resp = await client.get(
            NOMINATIM_URL,
            params={"q": address, "format": "json", "limit": 1},
            timeout=GEOCODING_TIMEOUT,
        )
        resp.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("Geocoding request for %r failed: %s", address, e)
        return FeedError(kind="network", message=f"Unable to geocode the address: {e}")

    try:
        data = resp.json()
    except ValueError:
        return FeedError(kind="malformed", message="Invalid JSON response")

    if not isinstance(data, list):
        return FeedError(kind="malformed", message="Unexpected geocoding response")
    if not data:
        return FeedError(kind="no_data", message="Address not found")

    r = data[0]
    try:
        return GeocodeResult(
            latitude=float(r["lat"]),
            longitude=float(r["lon"]),
            display_name=r.get("display_name", address),
        )
    except (KeyError, TypeError, ValueError) as e:
        return FeedError(kind="malformed", message=f"Incomplete geocoding result: {e}")
