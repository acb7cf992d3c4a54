"""Tool registry with catch-and-wrap execution."""

from collections.abc import Iterable
from typing import Any

from loguru import logger

from transitbot.agent.tools.base import Tool
from transitbot.transit.snapshot import LiveSnapshot


class ToolRegistry:
    """Name-indexed set of tools available to the agent."""

    def __init__(self, tools: Iterable[Tool] = ()):
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            logger.warning(f"Replacing registered tool '{tool.name}'")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    def get_definitions(self) -> list[dict[str, Any]]:
        return [tool.to_definition() for tool in self._tools.values()]

    def execute(
        self, name: str, arguments: dict[str, Any], snapshot: LiveSnapshot
    ) -> dict[str, Any]:
        """
        Execute a tool by name.

        Never raises: an unknown name, invalid arguments, or an exception
        inside the tool all come back as ``{"error": ...}``.
        """
        tool = self._tools.get(name)
        if tool is None:
            logger.warning(f"Model requested unknown tool '{name}'")
            return {"error": f"Tool '{name}' not found."}

        problems = tool.validate_params(arguments)
        if problems:
            logger.warning(f"Invalid arguments for {name}: {problems}")
            return {"error": f"Invalid arguments for {name}: {'; '.join(problems)}"}

        try:
            return tool.execute(arguments, snapshot)
        except Exception as e:
            logger.warning(f"Tool execution error in {name}: {e}")
            return {"error": f"Error executing {name}: {e}"}
