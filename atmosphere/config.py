# ABOUTME: Runtime settings for the Atmosphere dashboard loaded from .env and the environment.
# ABOUTME: Holds API credentials, proxy/TLS options, and the fixed Nancy fallback coordinates.

import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


class Settings(BaseModel):
    """Deployment configuration shared by every feed of the dashboard."""

    proxy: str | None = None
    verify_tls: bool = True
    timezone: str = "Europe/Paris"

    tomtom_api_key: str = ""
    infoclimat_auth: str = ""
    infoclimat_c: str = ""

    air_quality_zone: str = "Nancy"
    wastewater_station: str = "MAXEVILLE"

    target_city: str = "Nancy"
    default_latitude: float = 48.6937
    default_longitude: float = 6.1834

    landmark_name: str = "IUT Nancy-Charlemagne"
    landmark_address: str = "IUT Charlemagne Nancy France"
    # 2 Ter Boulevard Charlemagne
    landmark_latitude: float = 48.68944
    landmark_longitude: float = 6.17611

    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, keeping defaults for anything unset."""
        values = {
            "proxy": os.environ.get("ATMOSPHERE_PROXY") or None,
            "verify_tls": _env_bool("ATMOSPHERE_VERIFY_TLS", True),
            "tomtom_api_key": os.environ.get("TOMTOM_API_KEY", ""),
            "infoclimat_auth": os.environ.get("INFOCLIMAT_AUTH", ""),
            "infoclimat_c": os.environ.get("INFOCLIMAT_C", ""),
        }
        optional = {
            "timezone": "ATMOSPHERE_TIMEZONE",
            "air_quality_zone": "ATMOSPHERE_AIR_ZONE",
            "wastewater_station": "ATMOSPHERE_WASTEWATER_STATION",
            "host": "ATMOSPHERE_HOST",
            "port": "ATMOSPHERE_PORT",
            "log_level": "ATMOSPHERE_LOG_LEVEL",
        }
        for field, var in optional.items():
            if os.environ.get(var):
                values[field] = os.environ[var]
        return cls(**values)
