"""Nearest-stop search tool."""

from typing import Any

from transitbot.agent.tools.base import Tool
from transitbot.transit.geo import haversine_km
from transitbot.transit.snapshot import LiveSnapshot, RouteStop

DEFAULT_STOP_COUNT = 3


class FindNearestStopsTool(Tool):
    name = "find_nearest_stops"
    description = "Finds bus stops nearest to the user's current location."

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "count": {
                    "type": "number",
                    "description": f"Number of nearest stops to return (default: {DEFAULT_STOP_COUNT})",
                },
            },
        }

    def execute(self, arguments: dict[str, Any], snapshot: LiveSnapshot) -> dict[str, Any]:
        location = snapshot.user_location
        if location is None:
            return {
                "error": "User location is not available. Cannot find nearest stops without it."
            }

        count = arguments.get("count")
        count = DEFAULT_STOP_COUNT if count is None else max(int(float(count)), 0)

        # Same stop served by several buses: first occurrence wins
        unique: dict[str, RouteStop] = {}
        for stops in snapshot.bus_stops.values():
            for stop in stops:
                if not stop.name or not stop.has_coordinates:
                    continue
                unique.setdefault(stop.name.lower(), stop)

        if not unique:
            return {"message": "No bus stops available to search."}

        ranked = sorted(
            (
                (haversine_km(location.lat, location.lng, s.latitude, s.longitude), s)
                for s in unique.values()
            ),
            key=lambda pair: pair[0],
        )
        return {
            "stops": [
                {
                    "name": stop.name,
                    "distance_km": f"{distance:.2f}",
                    "coordinates": f"{stop.latitude}, {stop.longitude}",
                }
                for distance, stop in ranked[:count]
            ]
        }
