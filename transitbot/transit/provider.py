"""Sources of live snapshots for tool execution."""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from loguru import logger

from transitbot.transit.snapshot import LiveSnapshot, UserLocation


class SnapshotProvider(ABC):
    """Supplies a fresh snapshot each time a turn needs one."""

    @abstractmethod
    def get_snapshot(self, user_location: UserLocation | None = None) -> LiveSnapshot:
        pass


class StaticSnapshotProvider(SnapshotProvider):
    """Serves the same bus state on every call; only the user location varies."""

    def __init__(self, data: dict[str, Any] | None = None):
        self._data = data or {}

    def update(self, data: dict[str, Any]) -> None:
        """Swap in new bus state (called by the host's polling loop)."""
        self._data = data

    def get_snapshot(self, user_location: UserLocation | None = None) -> LiveSnapshot:
        return LiveSnapshot.from_dict(self._data, user_location=user_location)


class JsonFileSnapshotProvider(SnapshotProvider):
    """Re-reads a JSON file in the host's ``{activeBuses, busRoutes, busStops}`` shape."""

    def __init__(self, path: Path):
        self.path = path

    def get_snapshot(self, user_location: UserLocation | None = None) -> LiveSnapshot:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read snapshot from {self.path}: {e}, using empty state")
            data = {}
        return LiveSnapshot.from_dict(data, user_location=user_location)
