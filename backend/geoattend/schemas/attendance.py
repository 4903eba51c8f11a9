from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime, date


class GeoPoint(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0)  # meters


class PositionFix(GeoPoint):
    """A position as reported by the device, with the time it was taken."""
    captured_at: Optional[datetime] = None


class AttendanceActionRequest(BaseModel):
    """Body for check-in / check-out.

    ``position`` is what the device reported; ``error`` carries the device's
    failure code (permission_denied, position_unavailable, timeout) when it
    could not produce one.
    """
    position: Optional[PositionFix] = None
    error: Optional[str] = None
    location_id: Optional[int] = None


class AttendanceRecordOut(BaseModel):
    id: int
    user_id: int
    date: date
    check_in: Optional[datetime] = None
    check_in_location: Optional[GeoPoint] = None
    check_out: Optional[datetime] = None
    check_out_location: Optional[GeoPoint] = None
    location_id: Optional[int] = None
    total_hours: Optional[float] = None

    class Config:
        from_attributes = True


class AttendanceReportRow(AttendanceRecordOut):
    full_name: str
    employee_id: str


class TodayStatus(BaseModel):
    state: str
    record: Optional[AttendanceRecordOut] = None
    can_check_in: bool
    can_check_out: bool


class AttendanceActionResponse(BaseModel):
    state: str
    record: AttendanceRecordOut
    distance_meters: float
    radius_meters: float
    location_name: Optional[str] = None
    geofence_bypassed: bool = False
    message: str


class AttendanceSummary(BaseModel):
    period: str
    days_present: int
    days_completed: int
    total_hours: float


class MyRecordsResponse(BaseModel):
    records: List[AttendanceRecordOut]
    summary: AttendanceSummary
