"""Tests for the transit tools and the tool registry."""

import dataclasses
from datetime import datetime, timezone
from typing import Any

import pytest

from transitbot.agent.tools import build_default_registry
from transitbot.agent.tools.base import Tool
from transitbot.agent.tools.buses import GetBusDetailsTool
from transitbot.agent.tools.registry import ToolRegistry
from transitbot.agent.tools.routes import FindRoutesTool, GetArrivalTimeTool
from transitbot.agent.tools.stops import FindNearestStopsTool
from transitbot.transit.geo import haversine_km
from transitbot.transit.snapshot import LiveSnapshot, UserLocation

CAPTURED_AT = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)

SNAPSHOT_DATA: dict[str, Any] = {
    "activeBuses": [
        {
            "busId": "BUS-1",
            "latitude": 12.97,
            "longitude": 77.59,
            "speed": 18.5,
            "heading": 90,
            "accuracy": 5,
            "lastUpdate": "2026-10-19T09:00:00Z",
        },
        {"busId": "BUS-2", "latitude": 12.90, "longitude": 77.50, "speed": 0},
        {"busId": "BUS-3", "latitude": 12.80, "longitude": 77.40},
    ],
    "busRoutes": [
        {
            "busId": "BUS-1",
            "parsedStops": [
                {"name": "Alpha Gate", "latitude": 12.970, "longitude": 77.590},
                {"name": "Bravo Market", "latitude": 12.975, "longitude": 77.600},
                {"name": "Charlie Central", "latitude": 12.980, "longitude": 77.610},
                {"name": "Delta Depot", "latitude": 12.990, "longitude": 77.620},
            ],
        },
        {
            "busId": "BUS-2",
            "parsedStops": [
                {"name": "Charlie Central", "latitude": 12.980, "longitude": 77.610},
                {"name": "Echo Park", "latitude": 13.000, "longitude": 77.700},
            ],
        },
    ],
}


def make_snapshot(location: UserLocation | None = None, **overrides: Any) -> LiveSnapshot:
    data = {**SNAPSHOT_DATA, **overrides}
    return LiveSnapshot.from_dict(data, user_location=location, captured_at=CAPTURED_AT)


class TestFindRoutes:
    def test_forward_path_inclusive(self) -> None:
        result = FindRoutesTool().execute(
            {"fromStop": "Alpha", "toStop": "Charlie"}, make_snapshot()
        )
        assert result == {
            "success": True,
            "routes": [
                {
                    "busId": "BUS-1",
                    "path": ["Alpha Gate", "Bravo Market", "Charlie Central"],
                    "stopCount": 3,
                    "estimatedTime": "6 minutes",
                }
            ],
        }

    def test_reverse_direction_fails(self) -> None:
        result = FindRoutesTool().execute(
            {"fromStop": "Charlie", "toStop": "Alpha"}, make_snapshot()
        )
        assert result["success"] is False
        assert "Charlie" in result["message"]

    def test_case_insensitive_substring(self) -> None:
        result = FindRoutesTool().execute(
            {"fromStop": "CENTRAL", "toStop": "echo"}, make_snapshot()
        )
        assert [r["busId"] for r in result["routes"]] == ["BUS-2"]
        assert result["routes"][0]["estimatedTime"] == "4 minutes"

    def test_same_stop_does_not_qualify(self) -> None:
        result = FindRoutesTool().execute(
            {"fromStop": "Bravo", "toStop": "Bravo"}, make_snapshot()
        )
        assert result["success"] is False

    def test_custom_eta_policy(self) -> None:
        tool = FindRoutesTool(eta_policy=lambda stops: stops * 5)
        result = tool.execute({"fromStop": "Alpha", "toStop": "Delta"}, make_snapshot())
        assert result["routes"][0]["estimatedTime"] == "20 minutes"


class TestGetBusDetails:
    def test_found_moving(self) -> None:
        result = GetBusDetailsTool().execute({"busId": "bus-1"}, make_snapshot())
        assert result["status"] == "found"
        assert result["details"]["busId"] == "BUS-1"
        assert result["details"]["speed"] == 18.5
        assert result["details"]["isMoving"] is True
        assert result["details"]["lastUpdate"] == "2026-10-19T09:00:00Z"

    def test_missing_speed_is_stationary(self) -> None:
        result = GetBusDetailsTool().execute({"busId": "BUS-3"}, make_snapshot())
        assert result["details"]["speed"] == 0
        assert result["details"]["isMoving"] is False

    def test_substring_does_not_match(self) -> None:
        result = GetBusDetailsTool().execute({"busId": "BUS"}, make_snapshot())
        assert result["status"] == "not_found"
        assert "BUS" in result["message"]


class TestFindNearestStops:
    def test_requires_location(self) -> None:
        result = FindNearestStopsTool().execute({}, make_snapshot())
        assert "error" in result
        assert "location" in result["error"]

    def test_no_stops(self) -> None:
        snapshot = make_snapshot(UserLocation(12.97, 77.59), busRoutes=[], busStops={})
        assert FindNearestStopsTool().execute({}, snapshot) == {
            "message": "No bus stops available to search."
        }

    def test_sorted_deduplicated_default_count(self) -> None:
        result = FindNearestStopsTool().execute({}, make_snapshot(UserLocation(12.97, 77.59)))
        names = [s["name"] for s in result["stops"]]
        assert names == ["Alpha Gate", "Bravo Market", "Charlie Central"]
        assert result["stops"][0]["distance_km"] == "0.00"
        assert result["stops"][0]["coordinates"] == "12.97, 77.59"

    def test_count_and_dedup_across_buses(self) -> None:
        result = FindNearestStopsTool().execute(
            {"count": 10}, make_snapshot(UserLocation(12.97, 77.59))
        )
        names = [s["name"] for s in result["stops"]]
        assert len(names) == 5
        assert names.count("Charlie Central") == 1

    def test_distance_formatting(self) -> None:
        loc = UserLocation(13.0, 77.7)
        result = FindNearestStopsTool().execute({"count": 1}, make_snapshot(loc))
        assert result["stops"] == [
            {"name": "Echo Park", "distance_km": "0.00", "coordinates": "13.0, 77.7"}
        ]

    def test_stops_without_coordinates_skipped(self) -> None:
        snapshot = make_snapshot(
            UserLocation(0, 0),
            busStops={"X": [{"name": "Nowhere"}, {"name": "", "latitude": 1, "longitude": 1}]},
        )
        assert "message" in FindNearestStopsTool().execute({}, snapshot)


class TestGetArrivalTime:
    def test_estimate(self) -> None:
        tool = GetArrivalTimeTool(timezone="UTC")
        result = tool.execute({"busId": "bus-1", "stopName": "charlie"}, make_snapshot())
        assert result == {
            "busId": "BUS-1",
            "stopName": "charlie",
            "estimatedArrival": "9:04:00 AM",
            "estimatedMinutes": 4,
            "currentBusLocation": {"latitude": 12.97, "longitude": 77.59},
        }

    def test_localized_to_timezone(self) -> None:
        tool = GetArrivalTimeTool(timezone="Asia/Kolkata")
        result = tool.execute({"busId": "BUS-1", "stopName": "Alpha"}, make_snapshot())
        assert result["estimatedMinutes"] == 0
        assert result["estimatedArrival"] == "2:30:00 PM"

    def test_inactive_bus(self) -> None:
        result = GetArrivalTimeTool().execute({"busId": "BUS-9", "stopName": "x"}, make_snapshot())
        assert result == {"error": "Bus BUS-9 not found or not active."}

    def test_active_bus_without_route(self) -> None:
        result = GetArrivalTimeTool().execute(
            {"busId": "BUS-3", "stopName": "Alpha"}, make_snapshot()
        )
        assert "Route information not available" in result["error"]

    def test_stop_not_on_route(self) -> None:
        result = GetArrivalTimeTool().execute(
            {"busId": "BUS-2", "stopName": "Alpha"}, make_snapshot()
        )
        assert "not found on route" in result["error"]


class ExplodingTool(Tool):
    name = "explode"
    description = "Always fails"

    def get_parameters(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}}

    def execute(self, arguments: dict[str, Any], snapshot: LiveSnapshot) -> dict[str, Any]:
        raise RuntimeError("kaboom")


class TestRegistry:
    def test_default_registry(self) -> None:
        registry = build_default_registry()
        assert registry.tool_names == [
            "find_routes",
            "get_bus_details",
            "find_nearest_stops",
            "get_arrival_time",
        ]
        definitions = registry.get_definitions()
        assert definitions[0]["parameters"]["required"] == ["fromStop", "toStop"]

    def test_unknown_tool(self) -> None:
        result = ToolRegistry().execute("teleport", {}, make_snapshot())
        assert result == {"error": "Tool 'teleport' not found."}

    def test_exception_is_wrapped(self) -> None:
        registry = ToolRegistry([ExplodingTool()])
        assert registry.execute("explode", {}, make_snapshot()) == {
            "error": "Error executing explode: kaboom"
        }

    def test_missing_required_argument(self) -> None:
        result = build_default_registry().execute(
            "find_routes", {"fromStop": "Alpha"}, make_snapshot()
        )
        assert "missing 'toStop'" in result["error"]

    def test_wrong_argument_type(self) -> None:
        result = build_default_registry().execute(
            "find_nearest_stops", {"count": "lots"}, make_snapshot(UserLocation(1, 1))
        )
        assert "'count' must be a number" in result["error"]

    def test_numeric_string_count_accepted(self) -> None:
        result = build_default_registry().execute(
            "find_nearest_stops", {"count": "2"}, make_snapshot(UserLocation(12.97, 77.59))
        )
        assert len(result["stops"]) == 2


class TestSnapshot:
    def test_is_immutable(self) -> None:
        snapshot = make_snapshot()
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.active_buses = ()  # type: ignore[misc]
        with pytest.raises(TypeError):
            snapshot.bus_stops["NEW"] = ()  # type: ignore[index]

    def test_bus_stops_derived_from_routes(self) -> None:
        snapshot = make_snapshot()
        assert set(snapshot.bus_stops) == {"BUS-1", "BUS-2"}
        assert snapshot.bus_stops["BUS-2"][1].name == "Echo Park"

    def test_user_location_from_payload(self) -> None:
        snapshot = LiveSnapshot.from_dict({"userLocation": {"lat": 1.5, "lng": 2.5}})
        assert snapshot.user_location == UserLocation(1.5, 2.5)

    def test_haversine_known_distance(self) -> None:
        # One degree of latitude is ~111.19 km
        assert haversine_km(0, 0, 1, 0) == pytest.approx(111.19, abs=0.01)
