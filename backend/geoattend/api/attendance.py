"""Attendance API: today's status, check in/out with geofencing, history.

Rules:
- One record per user per day.
- Check-in and check-out both require a position inside the geofence
  (office radius, or the selected assigned location).
- No second check-in once the day's record exists; nothing after check-out.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from geoattend.core.config import settings
from geoattend.core.database import get_db
from geoattend.core.security import get_current_user
from geoattend.models.user import User
from geoattend.schemas.attendance import (
    AttendanceActionRequest,
    AttendanceActionResponse,
    AttendanceRecordOut,
    MyRecordsResponse,
    TodayStatus,
)
from geoattend.services import reports
from geoattend.services.attendance_guard import AttendanceGuard, AttendanceOutcome, AttendanceState, SessionContext
from geoattend.services.attendance_store import SqlAttendanceStore
from geoattend.services.location_provider import build_location_provider
from geoattend.services.positioning import ReportedPositionSource, request_position

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/attendance", tags=["attendance"])


def get_attendance_guard(db: Session = Depends(get_db)) -> AttendanceGuard:
    return AttendanceGuard(
        store=SqlAttendanceStore(db),
        provider=build_location_provider(settings, db),
        admin_bypass=settings.ADMIN_GEOFENCE_BYPASS,
    )


async def _acquire(data: AttendanceActionRequest):
    return await request_position(
        ReportedPositionSource(position=data.position, error=data.error),
        high_accuracy=settings.POSITION_HIGH_ACCURACY,
        timeout=settings.POSITION_TIMEOUT_SECONDS,
        max_age=settings.POSITION_MAX_AGE_SECONDS,
    )


def _action_response(outcome: AttendanceOutcome, message: str) -> AttendanceActionResponse:
    decision = outcome.decision
    return AttendanceActionResponse(
        state=outcome.state.value,
        record=AttendanceRecordOut.model_validate(outcome.record),
        distance_meters=round(decision.distance_meters, 1),
        radius_meters=decision.radius_meters,
        location_name=decision.reference_name,
        geofence_bypassed=decision.bypassed,
        message=message,
    )


# ── Today ────────────────────────────────────────────────────────────

@router.get("/today", response_model=TodayStatus)
def get_today(
    current_user: User = Depends(get_current_user),
    guard: AttendanceGuard = Depends(get_attendance_guard),
):
    """Today's record and which actions are currently allowed."""
    record, state = guard.status(SessionContext.for_user(current_user))
    return TodayStatus(
        state=state.value,
        record=AttendanceRecordOut.model_validate(record) if record else None,
        can_check_in=record is None,
        can_check_out=state is AttendanceState.CHECKED_IN,
    )


# ── Check In ─────────────────────────────────────────────────────────

@router.post("/check-in", response_model=AttendanceActionResponse)
async def check_in(
    data: AttendanceActionRequest,
    current_user: User = Depends(get_current_user),
    guard: AttendanceGuard = Depends(get_attendance_guard),
):
    """Check in for the current day."""
    position = await _acquire(data)
    outcome = guard.check_in(SessionContext.for_user(current_user), position, data.location_id)
    return _action_response(outcome, f"Checked in at {outcome.record.check_in.strftime('%I:%M %p')}")


# ── Check Out ────────────────────────────────────────────────────────

@router.post("/check-out", response_model=AttendanceActionResponse)
async def check_out(
    data: AttendanceActionRequest,
    current_user: User = Depends(get_current_user),
    guard: AttendanceGuard = Depends(get_attendance_guard),
):
    """Check out for the current day."""
    position = await _acquire(data)
    outcome = guard.check_out(SessionContext.for_user(current_user), position, data.location_id)
    message = f"Checked out at {outcome.record.check_out.strftime('%I:%M %p')}"
    if outcome.record.total_hours is not None:
        message += f" ({float(outcome.record.total_hours):.2f} hours today)"
    return _action_response(outcome, message)


# ── My Records ───────────────────────────────────────────────────────

@router.get("/my-records", response_model=MyRecordsResponse)
def get_my_records(
    month: Optional[str] = None,  # "2026-01" format
    current_user: User = Depends(get_current_user),
    guard: AttendanceGuard = Depends(get_attendance_guard),
    db: Session = Depends(get_db),
):
    """Records for the logged-in user in one month (current month by default)."""
    try:
        year, m = reports.parse_month(month, guard.today())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    records = reports.user_month_records(db, current_user.id, year, m)
    return {
        "records": [AttendanceRecordOut.model_validate(r) for r in records],
        "summary": reports.summarize(records, year, m),
    }
