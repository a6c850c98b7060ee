# ABOUTME: Real-time traffic incidents from the TomTom Traffic Incident Details v5 API.
# ABOUTME: Queries a fixed box around the location and flattens each incident for the map.

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

import httpx

from atmosphere.models import BoundingBox, FeedError, TrafficIncident

logger = logging.getLogger(__name__)

TOMTOM_URL = "https://api.tomtom.com/traffic/services/5/incidentDetails"
TRAFFIC_TIMEOUT = 10.0

# Roughly 11 km each way around Nancy
LAT_DELTA = 0.1
LON_DELTA = 0.15

INCIDENT_FIELDS = (
    "{incidents{type,geometry{type,coordinates},"
    "properties{iconCategory,magnitudeOfDelay,events{description,code,iconCategory},"
    "startTime,endTime,from,to,length,delay,roadNumbers,timeValidity}}}"
)
CATEGORY_FILTER = "0,1,2,3,4,5,6,7,8,9,10,11,14"

CATEGORY_LABELS = {
    0: "Incident inconnu",
    1: "Accident",
    2: "Brouillard",
    3: "Conditions dangereuses",
    4: "Pluie",
    5: "Glace",
    6: "Embouteillage",
    7: "Route fermée",
    8: "Travaux",
    9: "Vent",
    10: "Inondation",
    11: "Détour",
    14: "Route glissante",
}
DEFAULT_CATEGORY_LABEL = "Incident"


def bounding_box(latitude: float, longitude: float) -> BoundingBox:
    """Fixed-size query box centred on a point, rounded to avoid float noise in the request."""
    return BoundingBox(
        min_lon=round(longitude - LON_DELTA, 6),
        min_lat=round(latitude - LAT_DELTA, 6),
        max_lon=round(longitude + LON_DELTA, 6),
        max_lat=round(latitude + LAT_DELTA, 6),
    )


async def get_traffic_incidents(
    client: httpx.AsyncClient,
    latitude: float,
    longitude: float,
    api_key: str,
    timezone: str = "Europe/Paris",
) -> list[TrafficIncident] | FeedError:
    """Fetch the incidents currently active around a point."""
    if not api_key:
        return FeedError(kind="provider", message="TomTom API key is not configured")

    bbox = bounding_box(latitude, longitude)
    try:
        resp = await client.get(
            TOMTOM_URL,
            params={
                "key": api_key,
                "bbox": bbox.as_param(),
                "fields": INCIDENT_FIELDS,
                "language": "fr-FR",
                "categoryFilter": CATEGORY_FILTER,
                "timeValidityFilter": "present",
            },
            timeout=TRAFFIC_TIMEOUT,
        )
        resp.raise_for_status()
    except httpx.HTTPError as e:
        # The key travels in the query string, keep the URL out of the log
        logger.warning("TomTom request failed: %s", type(e).__name__)
        return FeedError(kind="network", message="Unable to reach the TomTom API")

    try:
        data = resp.json()
    except ValueError:
        return FeedError(kind="malformed", message="Invalid JSON response")
    if not isinstance(data, dict):
        return FeedError(kind="malformed", message="Invalid JSON response")

    incidents = data.get("incidents") or []
    if not isinstance(incidents, list):
        return FeedError(kind="malformed", message="Invalid incidents list")
    return parse_incidents(incidents, timezone)


def parse_incidents(raw: list[dict], timezone: str = "Europe/Paris") -> list[TrafficIncident]:
    """Normalize TomTom incidents, skipping those without usable coordinates or fields."""
    tz = ZoneInfo(timezone)
    result = []
    for incident in raw:
        if not isinstance(incident, dict):
            continue
        point = _first_point(_mapping(incident.get("geometry")).get("coordinates"))
        if point is None:
            continue
        lon, lat = point
        props = _mapping(incident.get("properties"))
        events = props.get("events")
        first_event = events[0] if isinstance(events, list) and events else None
        try:
            result.append(
                TrafficIncident(
                    lat=lat,
                    lon=lon,
                    type=CATEGORY_LABELS.get(props.get("iconCategory", 0), DEFAULT_CATEGORY_LABEL),
                    description=_mapping(first_event).get("description") or "",
                    from_=props.get("from") or "",
                    to=props.get("to") or "",
                    start_time=format_incident_time(props.get("startTime"), tz),
                    end_time=format_incident_time(props.get("endTime"), tz),
                    delay=_as_int(props.get("delay")),
                    severity=_as_int(props.get("magnitudeOfDelay")),
                )
            )
        except (ValueError, TypeError) as e:
            logger.warning("Skipping unusable traffic incident: %s", e)
    return result


def format_incident_time(value: str | None, tz: ZoneInfo) -> str:
    """ISO 8601 timestamp -> ``dd/mm/YYYY HH:MM`` local time, or "" when absent or unparsable."""
    if not value or not isinstance(value, str):
        return ""
    try:
        moment = datetime.fromisoformat(value)
    except ValueError:
        return ""
    if moment.tzinfo is not None:
        moment = moment.astimezone(tz)
    return moment.strftime("%d/%m/%Y %H:%M")


def _first_point(coords) -> tuple[float, float] | None:
    """Return ``(lon, lat)`` from a Point, or the first vertex of a LineString."""
    if not coords or not isinstance(coords, list):
        return None
    if isinstance(coords[0], list):
        coords = coords[0]
    if len(coords) < 2:
        return None
    try:
        return float(coords[0]), float(coords[1])
    except (TypeError, ValueError):
        return None


def _mapping(value) -> dict:
    return value if isinstance(value, dict) else {}


def _as_int(raw, default: int = 0) -> int:
    try:
        return int(raw) if raw is not None else default
    except (TypeError, ValueError, OverflowError):
        return default
