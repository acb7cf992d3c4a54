"""Route lookup and arrival estimation tools."""

from datetime import timedelta
from typing import Any
from zoneinfo import ZoneInfo

from transitbot.agent.tools.base import Tool
from transitbot.transit.eta import EtaPolicy, per_stop_minutes
from transitbot.transit.snapshot import LiveSnapshot, RouteStop


def _first_match(stops: tuple[RouteStop, ...], needle: str) -> int:
    """Index of the first stop whose name contains ``needle`` (case-insensitive), or -1."""
    needle = needle.lower()
    return next((i for i, s in enumerate(stops) if needle in s.name.lower()), -1)


class FindRoutesTool(Tool):
    """Direct routes between two stops."""

    name = "find_routes"
    description = (
        "Finds bus routes between two specified stops. "
        "Use this when users ask about getting from one place to another."
    )

    def __init__(self, eta_policy: EtaPolicy = per_stop_minutes):
        self._eta = eta_policy

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "fromStop": {"type": "string", "description": "The starting bus stop name"},
                "toStop": {"type": "string", "description": "The destination bus stop name"},
            },
            "required": ["fromStop", "toStop"],
        }

    def execute(self, arguments: dict[str, Any], snapshot: LiveSnapshot) -> dict[str, Any]:
        from_stop = arguments["fromStop"]
        to_stop = arguments["toStop"]
        routes = []

        for route in snapshot.bus_routes:
            from_index = _first_match(route.stops, from_stop)
            to_index = _first_match(route.stops, to_stop)
            if from_index < 0 or to_index < 0 or from_index >= to_index:
                continue

            path = route.stops[from_index : to_index + 1]
            routes.append(
                {
                    "busId": route.bus_id,
                    "path": [s.name for s in path],
                    "stopCount": len(path),
                    "estimatedTime": f"{self._eta(len(path))} minutes",
                }
            )

        if routes:
            return {"success": True, "routes": routes}
        return {
            "success": False,
            "message": f"No direct routes found from {from_stop} to {to_stop}.",
        }


class GetArrivalTimeTool(Tool):
    """Rough arrival estimate of a bus at a stop on its route."""

    name = "get_arrival_time"
    description = "Estimates arrival time of a specific bus at a specific stop."

    def __init__(self, eta_policy: EtaPolicy = per_stop_minutes, timezone: str = "Asia/Kolkata"):
        self._eta = eta_policy
        self._tz = ZoneInfo(timezone)

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "busId": {"type": "string", "description": "The bus ID to track"},
                "stopName": {
                    "type": "string",
                    "description": "The stop name for arrival estimation",
                },
            },
            "required": ["busId", "stopName"],
        }

    def execute(self, arguments: dict[str, Any], snapshot: LiveSnapshot) -> dict[str, Any]:
        bus_id = arguments["busId"]
        stop_name = arguments["stopName"]

        bus = snapshot.find_bus(bus_id)
        if bus is None:
            return {"error": f"Bus {bus_id} not found or not active."}

        route = snapshot.find_route(bus.bus_id)
        if route is None or not route.stops:
            return {"error": f"Route information not available for bus {bus_id}."}

        stop_index = _first_match(route.stops, stop_name)
        if stop_index < 0:
            return {"error": f"Stop '{stop_name}' not found on route for bus {bus_id}."}

        minutes = self._eta(stop_index)
        arrival = (snapshot.captured_at + timedelta(minutes=minutes)).astimezone(self._tz)

        return {
            "busId": bus.bus_id,
            "stopName": stop_name,
            "estimatedArrival": f"{arrival.hour % 12 or 12}:{arrival:%M:%S %p}",
            "estimatedMinutes": minutes,
            "currentBusLocation": {"latitude": bus.latitude, "longitude": bus.longitude},
        }
