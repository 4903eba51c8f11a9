"""Geofence evaluation.

Distance uses the haversine formula on a sphere of Earth's mean radius.
A position is admitted when ``distance <= radius``; the device's reported
accuracy is not taken into account.
"""
import math
from dataclasses import dataclass
from typing import Optional

EARTH_RADIUS_METERS = 6371000


@dataclass(frozen=True)
class ReferencePoint:
    """Center of a geofence."""
    name: str
    latitude: float
    longitude: float
    radius_meters: float
    location_id: Optional[int] = None


@dataclass(frozen=True)
class GeofenceDecision:
    admitted: bool
    distance_meters: float
    radius_meters: float
    bypassed: bool = False
    reference_name: Optional[str] = None


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance in meters between two GPS coordinates."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def is_within_radius(distance: float, radius: float) -> bool:
    return distance <= radius


def evaluate(position, reference: ReferencePoint, bypass: bool = False) -> GeofenceDecision:
    """Decide whether ``position`` (anything with latitude/longitude) is admissible.

    With ``bypass`` set the position is always admitted, but the measured
    distance is still reported.
    """
    distance = haversine_distance(
        position.latitude, position.longitude, reference.latitude, reference.longitude
    )
    return GeofenceDecision(
        admitted=bypass or is_within_radius(distance, reference.radius_meters),
        distance_meters=distance,
        radius_meters=reference.radius_meters,
        bypassed=bypass,
        reference_name=reference.name,
    )
