# ABOUTME: SARS-CoV-2 wastewater surveillance series from the OBEPINE open-data CSV.
# ABOUTME: Keeps the latest weeks for one sewage station and derives a moving-average trend.

import io
import logging

import httpx
import numpy as np
import pandas as pd

from atmosphere.models import FeedError, Trend, WastewaterSeries

logger = logging.getLogger(__name__)

# Redirects to the current export on static.data.gouv.fr
OBEPINE_URL = "https://www.data.gouv.fr/fr/datasets/r/2963ccb5-344d-4978-bdd3-08aaf9efe514"
WASTEWATER_TIMEOUT = 15.0
MAX_WEEKS = 10

RISING_FACTOR = 1.10
FALLING_FACTOR = 0.90


async def get_wastewater_series(client: httpx.AsyncClient, station: str = "MAXEVILLE") -> WastewaterSeries | FeedError:
    """Download the OBEPINE export and extract the recent series for ``station``."""
    try:
        resp = await client.get(OBEPINE_URL, timeout=WASTEWATER_TIMEOUT)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("OBEPINE request failed: %s", e)
        return FeedError(kind="network", message=f"Unable to fetch OBEPINE data: {e}")

    return parse_wastewater_csv(resp.text, station)


def parse_wastewater_csv(text: str, station: str, max_weeks: int = MAX_WEEKS) -> WastewaterSeries | FeedError:
    """Parse the semicolon-separated export into a chronological series.

    The first column holds the week label and every other column one station.
    Values use a decimal comma and ``NA`` for missing samples; rows without a
    week or a numeric value are skipped.
    """
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            sep=";",
            dtype=str,
            index_col=False,
            keep_default_na=False,
            on_bad_lines="skip",
        )
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        return FeedError(kind="malformed", message=f"Invalid CSV format: {e}")

    if len(frame.columns) < 2:
        return FeedError(kind="malformed", message="Invalid CSV format")
    if station not in frame.columns:
        return FeedError(kind="provider", message=f"Station {station} not found in the data")

    weeks = frame.iloc[:, 0].fillna("").str.strip()
    raw = frame[station].fillna("").str.strip().str.replace(",", ".", regex=False)
    values = pd.to_numeric(raw, errors="coerce")

    valid = values.notna() & np.isfinite(values) & (weeks != "")
    recent = pd.DataFrame({"week": weeks[valid], "value": values[valid]}).tail(max_weeks)
    if recent.empty:
        return FeedError(kind="no_data", message=f"No data available for {station}")

    series_values = [float(v) for v in recent["value"]]
    series_weeks = list(recent["week"])
    return WastewaterSeries(
        weeks=series_weeks,
        values=series_values,
        latest_week=series_weeks[-1],
        latest_value=series_values[-1],
        trend=compute_trend(series_values),
    )


def compute_trend(values: list[float]) -> Trend:
    """Compare the latest value with the mean of the three before it.

    Anything within +/-10% of that mean, or a series shorter than four points, is stable.
    """
    if len(values) < 4:
        return Trend.STABLE

    latest = values[-1]
    previous_avg = sum(values[-4:-1]) / 3
    if latest > previous_avg * RISING_FACTOR:
        return Trend.RISING
    if latest < previous_avg * FALLING_FACTOR:
        return Trend.FALLING
    return Trend.STABLE
