"""Agent tools over live bus state."""

from transitbot.agent.tools.base import Tool
from transitbot.agent.tools.buses import GetBusDetailsTool
from transitbot.agent.tools.registry import ToolRegistry
from transitbot.agent.tools.routes import FindRoutesTool, GetArrivalTimeTool
from transitbot.agent.tools.stops import FindNearestStopsTool
from transitbot.transit.eta import EtaPolicy, per_stop_minutes


def build_default_registry(
    eta_policy: EtaPolicy = per_stop_minutes,
    timezone: str = "Asia/Kolkata",
) -> ToolRegistry:
    """Registry with the four transit tools."""
    return ToolRegistry(
        [
            FindRoutesTool(eta_policy=eta_policy),
            GetBusDetailsTool(),
            FindNearestStopsTool(),
            GetArrivalTimeTool(eta_policy=eta_policy, timezone=timezone),
        ]
    )


__all__ = [
    "FindNearestStopsTool",
    "FindRoutesTool",
    "GetArrivalTimeTool",
    "GetBusDetailsTool",
    "Tool",
    "ToolRegistry",
    "build_default_registry",
]
