# ABOUTME: Resolves the coordinates the dashboard is centred on for one visitor.
# ABOUTME: Falls back to the landmark, then to hardcoded coordinates, so a location always exists.

import logging

import httpx

from atmosphere.config import Settings
from atmosphere.geocoding import geocode_address
from atmosphere.geolocation import geolocate_ip
from atmosphere.models import FeedError, ResolvedLocation

logger = logging.getLogger(__name__)


async def resolve_location(client: httpx.AsyncClient, settings: Settings, client_ip: str) -> ResolvedLocation:
    """Locate the visitor, or the landmark when the visitor is outside the target city.

    - geolocation failure: default city coordinates
    - inside the target city: the visitor's own coordinates
    - elsewhere: the geocoded landmark, or its fixed coordinates if geocoding fails
    """
    geo = await geolocate_ip(client, client_ip)
    if isinstance(geo, FeedError):
        logger.info("Using default location for %s: %s", client_ip, geo.message)
        return ResolvedLocation(
            latitude=settings.default_latitude,
            longitude=settings.default_longitude,
            name=settings.target_city,
            source="default",
        )

    if settings.target_city.lower() in geo.city.lower():
        return ResolvedLocation(
            latitude=geo.latitude,
            longitude=geo.longitude,
            name=f"{geo.city}, {geo.region}",
            source="ip",
        )

    landmark = await geocode_address(client, settings.landmark_address)
    if isinstance(landmark, FeedError):
        logger.info("Landmark geocoding failed, using fixed coordinates: %s", landmark.message)
        return ResolvedLocation(
            latitude=settings.landmark_latitude,
            longitude=settings.landmark_longitude,
            name=settings.landmark_name,
            source="landmark_fallback",
        )
    return ResolvedLocation(
        latitude=landmark.latitude,
        longitude=landmark.longitude,
        name=settings.landmark_name,
        source="landmark",
    )
