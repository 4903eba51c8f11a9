"""Where a user is allowed to check in from.

``FixedOfficeProvider`` serves the single configured office;
``AssignedLocationsProvider`` serves the active locations an admin assigned
to the user and requires the user to pick one.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from geoattend.core.exceptions import LocationSelectionError
from geoattend.models.location import Location, UserLocation
from geoattend.services.geofence import ReferencePoint

logger = logging.getLogger(__name__)

MODE_OFFICE = "office"
MODE_ASSIGNED = "assigned"


class LocationProvider:
    requires_selection = False

    def available(self, user_id: int) -> List[ReferencePoint]:
        raise NotImplementedError

    def resolve(self, user_id: int, location_id: Optional[int] = None) -> ReferencePoint:
        raise NotImplementedError


class FixedOfficeProvider(LocationProvider):
    def __init__(self, name: str, latitude: float, longitude: float, radius_meters: float):
        self.office = ReferencePoint(
            name=name,
            latitude=latitude,
            longitude=longitude,
            radius_meters=radius_meters,
        )

    @classmethod
    def from_settings(cls, settings) -> "FixedOfficeProvider":
        return cls(
            name=settings.OFFICE_NAME,
            latitude=settings.OFFICE_LATITUDE,
            longitude=settings.OFFICE_LONGITUDE,
            radius_meters=settings.OFFICE_RADIUS_METERS,
        )

    def available(self, user_id: int) -> List[ReferencePoint]:
        return [self.office]

    def resolve(self, user_id: int, location_id: Optional[int] = None) -> ReferencePoint:
        return self.office


def _to_reference(location: Location) -> ReferencePoint:
    return ReferencePoint(
        name=location.name,
        latitude=location.latitude,
        longitude=location.longitude,
        radius_meters=location.radius_meters,
        location_id=location.id,
    )


class AssignedLocationsProvider(LocationProvider):
    requires_selection = True

    def __init__(self, db: Session):
        self.db = db

    def _query(self, user_id: int):
        return (
            self.db.query(Location)
            .join(UserLocation, UserLocation.location_id == Location.id)
            .filter(UserLocation.user_id == user_id, Location.is_active == True)
        )

    def available(self, user_id: int) -> List[ReferencePoint]:
        return [_to_reference(loc) for loc in self._query(user_id).order_by(Location.name).all()]

    def resolve(self, user_id: int, location_id: Optional[int] = None) -> ReferencePoint:
        if location_id is None:
            raise LocationSelectionError(LocationSelectionError.SELECTION_REQUIRED)

        location = self._query(user_id).filter(Location.id == location_id).first()
        if not location:
            logger.info(f"User {user_id} picked unassigned or inactive location {location_id}")
            raise LocationSelectionError(LocationSelectionError.NOT_ASSIGNED)
        return _to_reference(location)


def build_location_provider(settings, db: Session) -> LocationProvider:
    mode = (settings.GEOFENCE_MODE or MODE_OFFICE).lower()
    if mode == MODE_ASSIGNED:
        return AssignedLocationsProvider(db)
    if mode != MODE_OFFICE:
        raise ValueError(f"Unknown GEOFENCE_MODE: {settings.GEOFENCE_MODE!r}")
    return FixedOfficeProvider.from_settings(settings)
