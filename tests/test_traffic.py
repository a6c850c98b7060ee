# ABOUTME: Contract tests for the TomTom traffic incident service.
# ABOUTME: Validates the bounding box, geometry normalization, category labels and error mapping.

from zoneinfo import ZoneInfo

import httpx
import pytest

from atmosphere.models import BoundingBox, FeedError, TrafficIncident
from atmosphere.traffic import bounding_box, format_incident_time, get_traffic_incidents, parse_incidents

from conftest import json_response, mock_client, text_response

PARIS = ZoneInfo("Europe/Paris")

POINT_INCIDENT = {
    "type": "Feature",
    "geometry": {"type": "Point", "coordinates": [6.1801, 48.6912]},
    "properties": {
        "iconCategory": 1,
        "magnitudeOfDelay": 3,
        "events": [{"description": "Accident", "code": 115, "iconCategory": 1}],
        "startTime": "2025-01-15T08:00:00Z",
        "endTime": "2025-01-15T10:30:00Z",
        "from": "Place Stanislas",
        "to": "Rue Saint-Jean",
        "delay": 420,
    },
}

LINE_INCIDENT = {
    "type": "Feature",
    "geometry": {"type": "LineString", "coordinates": [[6.2001, 48.7001], [6.2101, 48.7101]]},
    "properties": {
        "iconCategory": 8,
        "magnitudeOfDelay": 1,
        "events": [{"description": "Travaux", "code": 701, "iconCategory": 8}],
    },
}


class TestBoundingBox:
    def test_nancy_box(self):
        """The box extends 0.15 degrees of longitude and 0.1 of latitude each way.

        Implementation: Computes the box for the default Nancy centre.
        Passing implies: The TomTom query covers the documented area exactly.
        """
        box = bounding_box(48.6937, 6.1834)
        assert (box.min_lon, box.min_lat, box.max_lon, box.max_lat) == (6.0334, 48.5937, 6.3334, 48.7937)

    def test_is_centred_on_point(self):
        box = bounding_box(0.0, 0.0)
        assert box == BoundingBox(min_lon=-0.15, min_lat=-0.1, max_lon=0.15, max_lat=0.1)


class TestParseIncidents:
    def test_point_geometry(self):
        """A Point incident is flattened with its first event and local times.

        Implementation: Parses one accident with UTC start and end times in January.
        Passing implies: Coordinates, labels and Paris-time windows reach the map.
        """
        [incident] = parse_incidents([POINT_INCIDENT])

        assert incident.lat == 48.6912
        assert incident.lon == 6.1801
        assert incident.type == "Accident"
        assert incident.description == "Accident"
        assert incident.from_ == "Place Stanislas"
        assert incident.to == "Rue Saint-Jean"
        assert incident.start_time == "15/01/2025 09:00"
        assert incident.end_time == "15/01/2025 11:30"
        assert incident.delay == 420
        assert incident.severity == 3

    def test_line_geometry_uses_first_point(self):
        [incident] = parse_incidents([LINE_INCIDENT])
        assert (incident.lon, incident.lat) == (6.2001, 48.7001)
        assert incident.type == "Travaux"
        assert incident.start_time == ""
        assert incident.delay == 0

    def test_unknown_category_gets_generic_label(self):
        incident = {**POINT_INCIDENT, "properties": {"iconCategory": 42}}
        [parsed] = parse_incidents([incident])
        assert parsed.type == "Incident"
        assert parsed.description == ""

    def test_missing_category_is_unknown_incident(self):
        [parsed] = parse_incidents([{"geometry": POINT_INCIDENT["geometry"]}])
        assert parsed.type == "Incident inconnu"

    def test_incidents_without_coordinates_are_skipped(self):
        """Incidents lacking geometry cannot be placed on the map and are dropped."""
        raw = [{"properties": {"iconCategory": 6}}, {"geometry": {"coordinates": []}}, LINE_INCIDENT]
        assert len(parse_incidents(raw)) == 1

    def test_unreadable_numbers_default_to_zero(self):
        """Delay and magnitude that are not integers fall back to zero.

        Implementation: Parses an incident reporting "n/a" for both numbers.
        Passing implies: Provider placeholders keep the incident on the map.
        """
        props = {**POINT_INCIDENT["properties"], "delay": "n/a", "magnitudeOfDelay": [3]}
        [parsed] = parse_incidents([{**POINT_INCIDENT, "properties": props}])
        assert parsed.delay == 0
        assert parsed.severity == 0
        assert parsed.from_ == "Place Stanislas"

    def test_non_list_events_give_no_description(self):
        props = {**POINT_INCIDENT["properties"], "events": "x"}
        [parsed] = parse_incidents([{**POINT_INCIDENT, "properties": props}])
        assert parsed.description == ""
        assert parsed.type == "Accident"

    def test_non_object_entries_are_skipped(self):
        raw = ["incident", 7, None, {"geometry": "point", "properties": []}, LINE_INCIDENT]
        [parsed] = parse_incidents(raw)
        assert parsed.type == "Travaux"

    def test_wrongly_typed_fields_skip_the_incident(self):
        """An incident whose text fields have the wrong type is dropped, the others are kept.

        Implementation: Parses a numeric "from" road name next to a valid incident.
        Passing implies: One bad entry never hides the rest of the traffic map.
        """
        props = {**POINT_INCIDENT["properties"], "from": 12}
        parsed = parse_incidents([{**POINT_INCIDENT, "properties": props}, LINE_INCIDENT])
        assert [incident.type for incident in parsed] == ["Travaux"]


class TestFormatIncidentTime:
    def test_converts_to_local_time(self):
        assert format_incident_time("2025-07-01T12:00:00Z", PARIS) == "01/07/2025 14:00"

    @pytest.mark.parametrize("value", [None, "", "not a date", 1736928000])
    def test_absent_or_invalid(self, value):
        assert format_incident_time(value, PARIS) == ""


class TestGetTrafficIncidents:
    @pytest.mark.asyncio
    async def test_returns_incidents(self):
        """get_traffic_incidents queries the bounding box and returns parsed incidents.

        Implementation: Mocks TomTom with one point and one line incident.
        Passing implies: The request carries the box, filters and key, and parsing is applied.
        """
        client = mock_client(json_response({"incidents": [POINT_INCIDENT, LINE_INCIDENT]}))
        result = await get_traffic_incidents(client, 48.6937, 6.1834, "test-key")

        assert isinstance(result, list)
        assert all(isinstance(i, TrafficIncident) for i in result)
        assert len(result) == 2
        params = client.get.call_args.kwargs["params"]
        assert params["bbox"] == "6.0334,48.5937,6.3334,48.7937"
        assert params["key"] == "test-key"
        assert params["categoryFilter"] == "0,1,2,3,4,5,6,7,8,9,10,11,14"
        assert params["timeValidityFilter"] == "present"
        assert params["language"] == "fr-FR"

    @pytest.mark.asyncio
    async def test_no_incidents_key(self):
        client = mock_client(json_response({}))
        assert await get_traffic_incidents(client, 48.6937, 6.1834, "test-key") == []

    @pytest.mark.asyncio
    async def test_missing_key_skips_request(self):
        """Without an API key no request is sent and a provider error is returned."""
        client = mock_client()
        result = await get_traffic_incidents(client, 48.6937, 6.1834, "")
        assert isinstance(result, FeedError)
        assert result.kind == "provider"
        client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        client = mock_client(text_response("<html>Bad gateway</html>"))
        result = await get_traffic_incidents(client, 48.6937, 6.1834, "test-key")
        assert result.kind == "malformed"

    @pytest.mark.asyncio
    async def test_rejected_key(self):
        """An HTTP error status, such as a rejected key, is a network-level failure."""
        client = mock_client(json_response({"detailedError": {"code": "Forbidden"}}, status_code=403))
        result = await get_traffic_incidents(client, 48.6937, 6.1834, "bad-key")
        assert isinstance(result, FeedError)
        assert result.kind == "network"
        assert "bad-key" not in result.message

    @pytest.mark.asyncio
    async def test_incidents_not_a_list(self):
        client = mock_client(json_response({"incidents": {"count": 0}}))
        result = await get_traffic_incidents(client, 48.6937, 6.1834, "test-key")
        assert isinstance(result, FeedError)
        assert result.kind == "malformed"

    @pytest.mark.asyncio
    async def test_odd_incidents_do_not_fail_the_feed(self):
        """A response mixing bad entries with good ones still returns the good incidents.

        Implementation: Serves a non-object entry, an "n/a" delay and a numeric road name.
        Passing implies: The traffic panel survives provider type surprises.
        """
        bad_delay = {**POINT_INCIDENT, "properties": {**POINT_INCIDENT["properties"], "delay": "n/a"}}
        bad_from = {**POINT_INCIDENT, "properties": {**POINT_INCIDENT["properties"], "from": 12}}
        client = mock_client(json_response({"incidents": ["x", bad_delay, bad_from, LINE_INCIDENT]}))
        result = await get_traffic_incidents(client, 48.6937, 6.1834, "test-key")

        assert isinstance(result, list)
        assert [incident.delay for incident in result] == [0, 0]
        assert [incident.type for incident in result] == ["Accident", "Travaux"]
