"""Allow-list evaluation for resolved client locations.

Categories combine with OR, not AND: a location is allowed as soon as ANY
one of country, city, exact coordinate or geofence is satisfied, and a
category left empty counts as satisfied. So with
``countries=["India"]`` and ``geofences=[London, 50 km]`` a caller in London
is allowed even though the United Kingdom is not listed, and a policy that
leaves any category empty allows everyone. Deployments that need AND
semantics must compose policies above this module.

Exact coordinates are compared with float equality. Use a geofence with a
small radius when a tolerance is wanted.
"""

import math

from geogate.models.location import LocationRecord
from geogate.models.policy import Policy


# WGS-84 equatorial radius, the constant the geolib distance helper used.
EARTH_RADIUS_KM = 6378.137

COUNTRY = "country"
CITY = "city"
COORDINATE = "coordinate"
GEOFENCE = "geofence"


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres between two points given in degrees."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = math.sin(delta_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def is_within_any_geofence(location: LocationRecord, policy: Policy) -> bool:
    return any(
        haversine_km(location.latitude, location.longitude, fence.lat, fence.lon) <= fence.radius_km
        for fence in policy.allowed_geofences
    )


def matches_coordinate(location: LocationRecord, policy: Policy) -> bool:
    return any(
        coord.lat == location.latitude and coord.lon == location.longitude for coord in policy.allowed_coordinates
    )


def matched_categories(location: LocationRecord, policy: Policy) -> list[str]:
    """Categories that allow ``location``, wildcards included, in evaluation order."""
    matched = []
    if not policy.allowed_countries or location.country in policy.allowed_countries:
        matched.append(COUNTRY)
    if not policy.allowed_cities or location.city in policy.allowed_cities:
        matched.append(CITY)
    if not policy.allowed_coordinates or matches_coordinate(location, policy):
        matched.append(COORDINATE)
    if not policy.allowed_geofences or is_within_any_geofence(location, policy):
        matched.append(GEOFENCE)
    return matched


def is_allowed(location: LocationRecord, policy: Policy) -> bool:
    return bool(matched_categories(location, policy))
