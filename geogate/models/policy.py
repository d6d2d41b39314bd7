"""Allow-list policy shared read-only by every request."""

from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Iterable
from typing import Mapping


DEFAULT_ACCESS_DENIED_MESSAGE = "Access Denied"
DEFAULT_ACCESS_DENIED_STATUS_CODE = 403


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Coordinate":
        return cls(lat=float(data["lat"]), lon=float(data["lon"]))


@dataclass(frozen=True)
class Geofence:
    """Circular region: a center and a radius in kilometres."""

    lat: float
    lon: float
    radius_km: float

    def __post_init__(self) -> None:
        if self.radius_km < 0:
            raise ValueError(f"Geofence radius must be >= 0 km, got {self.radius_km}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Geofence":
        # "radius" is accepted for configs written against the older option name
        radius = data["radius_km"] if "radius_km" in data else data["radius"]
        return cls(lat=float(data["lat"]), lon=float(data["lon"]), radius_km=float(radius))


@dataclass(frozen=True)
class Policy:
    """Geographic allow-list.

    Each category left empty is a wildcard. A request is allowed when ANY
    category is satisfied, see ``geogate.services.allowlist``.
    """

    allowed_countries: frozenset[str] = field(default_factory=frozenset)
    allowed_cities: frozenset[str] = field(default_factory=frozenset)
    allowed_coordinates: tuple[Coordinate, ...] = ()
    allowed_geofences: tuple[Geofence, ...] = ()
    access_denied_message: str = DEFAULT_ACCESS_DENIED_MESSAGE
    access_denied_status_code: int = DEFAULT_ACCESS_DENIED_STATUS_CODE

    @classmethod
    def from_options(
        cls,
        *,
        countries: Iterable[str] | None = None,
        cities: Iterable[str] | None = None,
        coordinates: Iterable[Mapping[str, Any] | Coordinate] | None = None,
        geofences: Iterable[Mapping[str, Any] | Geofence] | None = None,
        access_denied_message: str = DEFAULT_ACCESS_DENIED_MESSAGE,
        access_denied_status_code: int = DEFAULT_ACCESS_DENIED_STATUS_CODE,
    ) -> "Policy":
        """Build a policy from plain options.

        ``countries`` defaults to ``["India"]`` when omitted; pass an empty list
        to lift the country restriction.
        """
        return cls(
            allowed_countries=frozenset(["India"] if countries is None else countries),
            allowed_cities=frozenset(cities or ()),
            allowed_coordinates=tuple(
                c if isinstance(c, Coordinate) else Coordinate.from_mapping(c) for c in coordinates or ()
            ),
            allowed_geofences=tuple(
                g if isinstance(g, Geofence) else Geofence.from_mapping(g) for g in geofences or ()
            ),
            access_denied_message=access_denied_message,
            access_denied_status_code=int(access_denied_status_code),
        )
