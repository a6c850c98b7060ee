# ABOUTME: Air-quality index from the ATMO Grand Est ArcGIS feature service.
# ABOUTME: Picks the record nearest to now, preferring observations over forecasts, and formats pollutants.

import logging
import time
from datetime import datetime
from zoneinfo import ZoneInfo

import httpx

from atmosphere.models import AirQuality, FeedError, PollutantIndex

logger = logging.getLogger(__name__)

ATMO_URL = "https://services3.arcgis.com/Is0UwT37raQYl9Jj/arcgis/rest/services/ind_grandest/FeatureServer/0/query"
AIR_QUALITY_TIMEOUT = 10.0

QUALITY_LABELS = {
    1: "Bon",
    2: "Moyen",
    3: "Dégradé",
    4: "Mauvais",
    5: "Très mauvais",
    6: "Extrêmement mauvais",
}

# Display name -> attribute holding its sub-index code
POLLUTANT_FIELDS = {
    "NO2": "code_no2",
    "O3": "code_o3",
    "PM10": "code_pm10",
    "PM2.5": "code_pm25",
}

DEFAULT_COLOR = "#50F0E6"


async def get_air_quality(
    client: httpx.AsyncClient,
    zone: str = "Nancy",
    timezone: str = "Europe/Paris",
    now: float | None = None,
) -> AirQuality | FeedError:
    """Fetch the air-quality index for a zone and select the record closest to now.

    The feed mixes the last days of observations with the next days of forecasts.
    """
    quoted_zone = zone.replace("'", "''")
    try:
        resp = await client.get(
            ATMO_URL,
            params={"where": f"lib_zone='{quoted_zone}'", "outFields": "*", "f": "pjson"},
            timeout=AIR_QUALITY_TIMEOUT,
        )
        resp.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("Air-quality request for %s failed: %s", zone, e)
        return FeedError(kind="network", message=f"Unable to fetch air-quality data: {e}")

    try:
        data = resp.json()
    except ValueError:
        data = None
    if not isinstance(data, dict) or not isinstance(data.get("features"), list):
        return FeedError(kind="malformed", message="Invalid JSON response")

    records = [
        f["attributes"] for f in data["features"] if isinstance(f, dict) and isinstance(f.get("attributes"), dict)
    ]
    if not records:
        return FeedError(kind="no_data", message=f"No data available for {zone}")

    selected = select_nearest_record(records, time.time() if now is None else now)
    if selected is None:
        return FeedError(kind="no_data", message="No valid record found")

    attrs, is_forecast = selected
    try:
        return parse_air_quality(attrs, is_forecast, timezone)
    except (ValueError, TypeError, OverflowError, OSError) as e:
        logger.warning("Unusable air-quality record for %s: %s", zone, e)
        return FeedError(kind="malformed", message="Invalid air-quality record")


def select_nearest_record(records: list[dict], now: float) -> tuple[dict, bool] | None:
    """Return the record whose ``date_ech`` is closest to ``now`` and whether it is a forecast.

    Past or current records always win; a future record is only chosen when no
    past record exists. Ties keep the first record seen.
    """
    past = []
    future = []
    for attrs in records:
        ts = _timestamp(attrs)
        if ts is None:
            continue
        if ts <= now:
            past.append((now - ts, attrs))
        else:
            future.append((ts - now, attrs))

    if past:
        return min(past, key=lambda item: item[0])[1], False
    if future:
        return min(future, key=lambda item: item[0])[1], True
    return None


def parse_air_quality(attrs: dict, is_forecast: bool, timezone: str = "Europe/Paris") -> AirQuality:
    """Build an AirQuality record from one feature's attributes, filling provider gaps."""
    code = _code(attrs.get("code_qual"))
    ts = _timestamp(attrs) or 0.0
    return AirQuality(
        zone=attrs.get("lib_zone") or "Grand Est",
        code_quality=code,
        quality_label=attrs.get("lib_qual") or QUALITY_LABELS.get(code, QUALITY_LABELS[1]),
        color=attrs.get("coul_qual") or DEFAULT_COLOR,
        date=datetime.fromtimestamp(ts, ZoneInfo(timezone)).strftime("%d/%m/%Y"),
        is_forecast=is_forecast,
        pollutants={name: _pollutant(attrs.get(field)) for name, field in POLLUTANT_FIELDS.items()},
        source=attrs.get("source") or "ATMO Grand Est",
    )


def pollutant_color(code: int) -> str:
    """Card color for a pollutant sub-index."""
    if code >= 4:
        return "#e74c3c"
    if code >= 3:
        return "#f39c12"
    if code >= 2:
        return "#3498db"
    return "#27ae60"


def recommendations(code: int) -> list[str]:
    """Travel advice for a global index code."""
    if code >= 4:
        return [
            "⛔ Évitez les déplacements en voiture si possible",
            "🎽 Limitez les activités physiques intenses en extérieur",
            "😷 Portez un masque pour les personnes sensibles",
        ]
    if code >= 3:
        return [
            "⚠️ Privilégiez les transports en commun ou le covoiturage",
            "🚶 Préférez la marche ou le vélo pour les courtes distances",
        ]
    return [
        "✅ Conditions favorables pour se déplacer",
        "🌳 Bonne qualité de l'air, profitez-en !",
    ]


def _timestamp(attrs: dict) -> float | None:
    """``date_ech`` in epoch seconds; the service sends epoch milliseconds."""
    raw = attrs.get("date_ech")
    if raw is None:
        return None
    try:
        return int(raw) / 1000
    except (TypeError, ValueError, OverflowError):
        return None


def _code(raw) -> int:
    try:
        return int(raw) if raw is not None else 1
    except (TypeError, ValueError):
        return 1


def _pollutant(raw) -> PollutantIndex:
    code = _code(raw)
    return PollutantIndex(code=code, label=QUALITY_LABELS.get(code, QUALITY_LABELS[1]))
