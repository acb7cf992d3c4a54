"""Immutable point-in-time view of live bus state handed to tools."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any


def _float_or_none(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


@dataclass(frozen=True)
class UserLocation:
    lat: float
    lng: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "UserLocation | None":
        """Parse ``{lat, lng}``; returns None when either coordinate is missing."""
        if not data:
            return None
        lat, lng = data.get("lat"), data.get("lng")
        if lat is None or lng is None:
            return None
        return cls(lat=float(lat), lng=float(lng))

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class RouteStop:
    name: str
    latitude: float | None = None
    longitude: float | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RouteStop":
        return cls(
            name=str(data.get("name") or ""),
            latitude=_float_or_none(data.get("latitude")),
            longitude=_float_or_none(data.get("longitude")),
        )


@dataclass(frozen=True)
class ActiveBus:
    """Last reported position of a bus."""

    bus_id: str
    latitude: float
    longitude: float
    speed: float | None = None
    heading: float | None = None
    accuracy: float | None = None
    last_update: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ActiveBus":
        return cls(
            bus_id=str(data["busId"]),
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            speed=_float_or_none(data.get("speed")),
            heading=_float_or_none(data.get("heading")),
            accuracy=_float_or_none(data.get("accuracy")),
            last_update=data.get("lastUpdate"),
        )


@dataclass(frozen=True)
class BusRoute:
    """Ordered stops served by one bus."""

    bus_id: str
    stops: tuple[RouteStop, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BusRoute":
        return cls(
            bus_id=str(data["busId"]),
            stops=tuple(RouteStop.from_dict(s) for s in data.get("parsedStops") or ()),
        )


@dataclass(frozen=True)
class LiveSnapshot:
    """
    Read-only state supplied by the host for one tool execution.

    ``bus_stops`` maps bus id to its stops; when the host does not send it
    separately it is derived from ``bus_routes``.
    """

    active_buses: tuple[ActiveBus, ...] = ()
    bus_routes: tuple[BusRoute, ...] = ()
    bus_stops: Mapping[str, tuple[RouteStop, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    user_location: UserLocation | None = None
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if not isinstance(self.bus_stops, MappingProxyType):
            frozen = {k: tuple(v) for k, v in self.bus_stops.items()}
            object.__setattr__(self, "bus_stops", MappingProxyType(frozen))

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        user_location: UserLocation | None = None,
        captured_at: datetime | None = None,
    ) -> "LiveSnapshot":
        """Build from the host's camelCase JSON shape."""
        routes = tuple(BusRoute.from_dict(r) for r in data.get("busRoutes") or ())
        raw_stops = data.get("busStops")
        if raw_stops is None:
            stops = {r.bus_id: r.stops for r in routes}
        else:
            stops = {
                str(bus_id): tuple(RouteStop.from_dict(s) for s in items or ())
                for bus_id, items in raw_stops.items()
            }
        if user_location is None:
            user_location = UserLocation.from_dict(data.get("userLocation"))

        return cls(
            active_buses=tuple(ActiveBus.from_dict(b) for b in data.get("activeBuses") or ()),
            bus_routes=routes,
            bus_stops=stops,
            user_location=user_location,
            captured_at=captured_at or datetime.now(timezone.utc),
        )

    def find_bus(self, bus_id: str) -> ActiveBus | None:
        """Case-insensitive exact lookup of an active bus."""
        wanted = bus_id.lower()
        return next((b for b in self.active_buses if b.bus_id.lower() == wanted), None)

    def find_route(self, bus_id: str) -> BusRoute | None:
        wanted = bus_id.lower()
        return next((r for r in self.bus_routes if r.bus_id.lower() == wanted), None)
