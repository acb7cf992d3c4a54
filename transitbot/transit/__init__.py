"""Live bus state as seen by the assistant."""

from transitbot.transit.eta import EtaPolicy, per_stop_minutes
from transitbot.transit.geo import haversine_km
from transitbot.transit.provider import (
    JsonFileSnapshotProvider,
    SnapshotProvider,
    StaticSnapshotProvider,
)
from transitbot.transit.snapshot import ActiveBus, BusRoute, LiveSnapshot, RouteStop, UserLocation

__all__ = [
    "ActiveBus",
    "BusRoute",
    "EtaPolicy",
    "JsonFileSnapshotProvider",
    "LiveSnapshot",
    "RouteStop",
    "SnapshotProvider",
    "StaticSnapshotProvider",
    "UserLocation",
    "haversine_km",
    "per_stop_minutes",
]
