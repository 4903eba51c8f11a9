"""Domain errors raised by the attendance services.

Every error carries a stable ``code`` so API clients can branch on it
without parsing the message. The HTTP mapping lives in ``geoattend.main``.
"""


class AttendanceError(Exception):
    """Base exception for attendance rule violations."""

    code = "attendance_error"
    status_code = 400

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": self.code}


class GeofenceViolation(AttendanceError):
    """Raised when the reported position is outside the allowed radius."""

    code = "geofence_violation"
    status_code = 403

    def __init__(self, distance: float, radius: float, location_name: str = None):
        self.distance = distance
        self.radius = radius
        self.location_name = location_name
        where = f" of {location_name}" if location_name else ""
        super().__init__(
            f"You are {round(distance)}m away, outside the allowed {round(radius)}m radius{where}."
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["distance_meters"] = round(self.distance, 1)
        data["radius_meters"] = self.radius
        return data


class StateConflict(AttendanceError):
    """Raised when a check-in/check-out does not fit today's state."""

    status_code = 409

    ALREADY_CHECKED_IN = "already_checked_in"
    NOT_CHECKED_IN = "not_checked_in"
    ALREADY_CHECKED_OUT = "already_checked_out"

    MESSAGES = {
        ALREADY_CHECKED_IN: "Attendance has already been recorded for today.",
        NOT_CHECKED_IN: "You have not checked in today.",
        ALREADY_CHECKED_OUT: "You have already checked out today.",
    }

    def __init__(self, code: str):
        super().__init__(self.MESSAGES[code], code)


class PositioningError(AttendanceError):
    """Raised when the device position could not be obtained."""

    status_code = 422

    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"

    MESSAGES = {
        PERMISSION_DENIED: "Access to your location was denied.",
        POSITION_UNAVAILABLE: "Location information is unavailable.",
        TIMEOUT: "Timed out while getting your location.",
        UNSUPPORTED: "Geolocation is not supported by this device.",
    }

    def __init__(self, code: str, message: str = None):
        super().__init__(message or self.MESSAGES[code], code)


class LocationSelectionError(AttendanceError):
    """Raised when the chosen work location is missing or not assigned."""

    status_code = 422

    SELECTION_REQUIRED = "location_selection_required"
    NOT_ASSIGNED = "location_not_assigned"

    MESSAGES = {
        SELECTION_REQUIRED: "Select a work location first.",
        NOT_ASSIGNED: "That location is not assigned to you.",
    }

    def __init__(self, code: str):
        super().__init__(self.MESSAGES[code], code)


class BackendWriteError(AttendanceError):
    """Raised when the record store rejects a write."""

    code = "backend_write_failed"
    status_code = 502

    def __init__(self, message: str = "Could not save your attendance. Please try again."):
        super().__init__(message)
