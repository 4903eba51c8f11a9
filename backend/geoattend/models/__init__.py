from geoattend.models.user import User, UserRole
from geoattend.models.location import Location, UserLocation
from geoattend.models.attendance import AttendanceRecord

__all__ = [
    "User",
    "UserRole",
    "Location",
    "UserLocation",
    "AttendanceRecord",
]
