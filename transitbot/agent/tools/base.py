"""Base class for agent tools."""

from abc import ABC, abstractmethod
from typing import Any

from transitbot.transit.snapshot import LiveSnapshot


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


_TYPE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "number": _is_number,
    "integer": _is_number,
    "object": lambda v: isinstance(v, dict),
}


class Tool(ABC):
    """
    A typed, synchronous, side-effect-free function the model may request.

    Tools read a ``LiveSnapshot`` and return a JSON-serializable dict. Expected
    "not found" conditions are results, not exceptions.
    """

    name: str = ""
    description: str = ""

    @abstractmethod
    def get_parameters(self) -> dict[str, Any]:
        """JSON schema of the tool's arguments."""

    @abstractmethod
    def execute(self, arguments: dict[str, Any], snapshot: LiveSnapshot) -> dict[str, Any]:
        """Run the tool against a snapshot."""

    def validate_params(self, params: dict[str, Any]) -> list[str]:
        """Check required arguments and primitive types against the schema."""
        schema = self.get_parameters()
        properties = schema.get("properties", {})
        errors = []

        for required in schema.get("required", []):
            if params.get(required) is None:
                errors.append(f"missing '{required}'")

        for key, value in params.items():
            prop = properties.get(key)
            if prop is None or value is None:
                continue
            check = _TYPE_CHECKS.get(prop.get("type", ""))
            if check and not check(value):
                errors.append(f"'{key}' must be a {prop['type']}")

        return errors

    def to_definition(self) -> dict[str, Any]:
        """Describe the tool for the system prompt."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.get_parameters(),
        }
