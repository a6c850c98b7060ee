# ABOUTME: Assembles every feed of the dashboard for one page view.
# ABOUTME: Calls run one after another around the resolved location; failures stay inside their panel.

import logging

import httpx

from atmosphere.air_quality import get_air_quality
from atmosphere.config import Settings
from atmosphere.location import resolve_location
from atmosphere.models import Dashboard, FeedError
from atmosphere.traffic import get_traffic_incidents
from atmosphere.wastewater import get_wastewater_series
from atmosphere.weather import get_weather_html

logger = logging.getLogger(__name__)


async def build_dashboard(client: httpx.AsyncClient, settings: Settings, client_ip: str) -> Dashboard:
    """Resolve the location, then fetch weather, traffic, wastewater and air quality in order."""
    location = await resolve_location(client, settings, client_ip)
    logger.info("Dashboard for %s centred on %s (%s)", client_ip, location.name, location.source)

    weather_html = await get_weather_html(
        client,
        location.latitude,
        location.longitude,
        settings.infoclimat_auth,
        settings.infoclimat_c,
    )
    traffic = await get_traffic_incidents(
        client,
        location.latitude,
        location.longitude,
        settings.tomtom_api_key,
        settings.timezone,
    )
    wastewater = await get_wastewater_series(client, settings.wastewater_station)
    air_quality = await get_air_quality(client, settings.air_quality_zone, settings.timezone)

    for name, result in (("traffic", traffic), ("wastewater", wastewater), ("air quality", air_quality)):
        if isinstance(result, FeedError):
            logger.warning("%s feed unavailable (%s): %s", name, result.kind, result.message)

    return Dashboard(
        location=location,
        weather_html=weather_html,
        traffic=traffic,
        wastewater=wastewater,
        air_quality=air_quality,
    )
