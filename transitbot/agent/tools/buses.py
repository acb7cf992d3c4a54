"""Live bus status tool."""

from typing import Any

from transitbot.agent.tools.base import Tool
from transitbot.transit.snapshot import LiveSnapshot


class GetBusDetailsTool(Tool):
    name = "get_bus_details"
    description = "Gets real-time location, speed, and status of a specific bus by its ID."

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "busId": {"type": "string", "description": "The unique ID of the bus"},
            },
            "required": ["busId"],
        }

    def execute(self, arguments: dict[str, Any], snapshot: LiveSnapshot) -> dict[str, Any]:
        bus_id = arguments["busId"]
        bus = snapshot.find_bus(bus_id)
        if bus is None:
            return {
                "status": "not_found",
                "message": f"Bus with ID '{bus_id}' is not currently active or does not exist.",
            }

        speed = bus.speed or 0
        return {
            "status": "found",
            "details": {
                "busId": bus.bus_id,
                "latitude": bus.latitude,
                "longitude": bus.longitude,
                "speed": speed,
                "heading": bus.heading,
                "accuracy": bus.accuracy,
                "lastUpdate": bus.last_update,
                "isMoving": speed > 0,
            },
        }
