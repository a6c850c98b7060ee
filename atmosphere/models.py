# ABOUTME: Pydantic BaseModels for every feed shown on the dashboard.
# ABOUTME: Each external call returns one of these records or a FeedError describing the failure.

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ErrorKind = Literal["network", "malformed", "provider", "no_data"]


class FeedError(BaseModel):
    """Failure of one external feed, rendered as a default or inline message by the caller."""

    kind: ErrorKind
    message: str


class GeoResult(BaseModel):
    """Approximate visitor position from IP geolocation."""

    latitude: float
    longitude: float
    city: str
    region: str
    zip: str = ""
    country: str


class GeocodeResult(BaseModel):
    """First match of a free-text address search."""

    latitude: float
    longitude: float
    display_name: str


class ResolvedLocation(BaseModel):
    """Coordinates every other feed is queried around."""

    latitude: float
    longitude: float
    name: str
    source: Literal["ip", "default", "landmark", "landmark_fallback"]


class PollutantIndex(BaseModel):
    code: int
    label: str


class AirQuality(BaseModel):
    """Air-quality index record nearest to the current time."""

    zone: str
    code_quality: int
    quality_label: str
    color: str
    date: str
    is_forecast: bool = False
    pollutants: dict[str, PollutantIndex]
    source: str = "ATMO Grand Est"


class Trend(str, Enum):
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


class WastewaterSeries(BaseModel):
    """Recent weekly SARS-CoV-2 concentrations for one sewage station, oldest first."""

    weeks: list[str]
    values: list[float]
    latest_week: str
    latest_value: float
    trend: Trend = Trend.STABLE
    unit: str = "copies génomes/L"

    def chart_data(self) -> dict:
        return {"weeks": self.weeks, "values": self.values}


class BoundingBox(BaseModel):
    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def as_param(self) -> str:
        return f"{self.min_lon},{self.min_lat},{self.max_lon},{self.max_lat}"


class TrafficIncident(BaseModel):
    """One traffic incident flattened for the client-side map."""

    model_config = ConfigDict(populate_by_name=True)

    lat: float
    lon: float
    type: str
    description: str = ""
    from_: str = Field(default="", alias="from")
    to: str = ""
    start_time: str = ""
    end_time: str = ""
    delay: int = 0
    severity: int = 0


class Dashboard(BaseModel):
    """Everything computed for a single page view."""

    location: ResolvedLocation
    weather_html: str
    traffic: list[TrafficIncident] | FeedError
    wastewater: WastewaterSeries | FeedError
    air_quality: AirQuality | FeedError

    @property
    def incidents(self) -> list[TrafficIncident]:
        return [] if isinstance(self.traffic, FeedError) else self.traffic

    @property
    def wastewater_chart(self) -> dict:
        if isinstance(self.wastewater, FeedError):
            return {"weeks": [], "values": []}
        return self.wastewater.chart_data()
