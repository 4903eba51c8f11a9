"""Admin API: user accounts, work locations, assignments, attendance reports."""
import logging
from datetime import date, datetime, timezone
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from geoattend.core.database import get_db
from geoattend.core.security import get_current_user, get_password_hash, require_admin
from geoattend.models.attendance import AttendanceRecord
from geoattend.models.location import Location, UserLocation
from geoattend.models.user import User
from geoattend.schemas.attendance import AttendanceReportRow, AttendanceRecordOut
from geoattend.schemas.location import Location as LocationSchema, LocationCreate, LocationUpdate
from geoattend.schemas.user import LocationAssignment, User as UserSchema, UserCreate, UserUpdate
from geoattend.services import reports

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["admin"])


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _get_location_or_404(db: Session, location_id: int) -> Location:
    location = db.query(Location).filter(Location.id == location_id).first()
    if not location:
        raise HTTPException(status_code=404, detail="Location not found")
    return location


# ── User Management ──────────────────────────────────────────────────

@router.get("/users", response_model=List[UserSchema])
def list_users(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List all users, newest first."""
    require_admin(current_user)
    return db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


@router.get("/users/{user_id}", response_model=UserSchema)
def get_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_admin(current_user)
    return _get_user_or_404(db, user_id)


@router.post("/users", response_model=UserSchema, status_code=201)
def create_user(
    data: UserCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a new user account."""
    require_admin(current_user)

    # Check for duplicates
    if db.query(User).filter(User.employee_id == data.employee_id).first():
        raise HTTPException(status_code=400, detail="Employee ID already exists")
    if db.query(User).filter(User.email == data.email).first():
        raise HTTPException(status_code=400, detail="Email already exists")

    user = User(
        email=data.email,
        full_name=data.full_name,
        employee_id=data.employee_id,
        hashed_password=get_password_hash(data.password),
        role=data.role.value,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"Admin {current_user.email} created user {user.email} ({user.employee_id})")
    return user


@router.put("/users/{user_id}", response_model=UserSchema)
def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update a user's details."""
    require_admin(current_user)
    user = _get_user_or_404(db, user_id)

    if data.email is not None:
        existing = db.query(User).filter(User.email == data.email, User.id != user_id).first()
        if existing:
            raise HTTPException(status_code=400, detail="Email already in use")
        user.email = data.email
    if data.employee_id is not None:
        existing = db.query(User).filter(User.employee_id == data.employee_id, User.id != user_id).first()
        if existing:
            raise HTTPException(status_code=400, detail="Employee ID already in use")
        user.employee_id = data.employee_id
    if data.full_name is not None:
        user.full_name = data.full_name
    if data.role is not None:
        user.role = data.role.value
    if data.is_active is not None:
        user.is_active = data.is_active
    if data.password:
        user.hashed_password = get_password_hash(data.password)

    db.commit()
    db.refresh(user)
    logger.info(f"Admin {current_user.email} updated user {user.email}")
    return user


@router.delete("/users/{user_id}")
def delete_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a user and all of their attendance records. Cannot delete yourself."""
    require_admin(current_user)

    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")

    user = _get_user_or_404(db, user_id)
    email = user.email
    db.delete(user)
    db.commit()
    logger.info(f"Admin {current_user.email} deleted user {email}")
    return {"success": True}


@router.get("/users/{user_id}/locations", response_model=List[LocationSchema])
def get_user_locations(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_admin(current_user)
    _get_user_or_404(db, user_id)
    return (
        db.query(Location)
        .join(UserLocation, UserLocation.location_id == Location.id)
        .filter(UserLocation.user_id == user_id)
        .order_by(Location.name)
        .all()
    )


@router.put("/users/{user_id}/locations", response_model=List[LocationSchema])
def assign_user_locations(
    user_id: int,
    data: LocationAssignment,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Replace the set of locations assigned to a user."""
    require_admin(current_user)
    _get_user_or_404(db, user_id)

    wanted = set(data.location_ids)
    found = db.query(Location).filter(Location.id.in_(list(wanted))).all() if wanted else []
    missing = wanted - {loc.id for loc in found}
    if missing:
        raise HTTPException(status_code=404, detail=f"Unknown location ids: {sorted(missing)}")

    db.query(UserLocation).filter(UserLocation.user_id == user_id).delete(synchronize_session=False)
    for location_id in sorted(wanted):
        db.add(UserLocation(user_id=user_id, location_id=location_id))
    db.commit()

    logger.info(f"Admin {current_user.email} assigned locations {sorted(wanted)} to user {user_id}")
    return sorted(found, key=lambda loc: loc.name)


# ── Locations ────────────────────────────────────────────────────────

@router.get("/locations", response_model=List[LocationSchema])
def list_locations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_admin(current_user)
    return db.query(Location).order_by(Location.name).all()


@router.post("/locations", response_model=LocationSchema, status_code=201)
def create_location(
    data: LocationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_admin(current_user)
    location = Location(**data.model_dump())
    db.add(location)
    db.commit()
    db.refresh(location)
    logger.info(f"Admin {current_user.email} created location {location.name}")
    return location


@router.put("/locations/{location_id}", response_model=LocationSchema)
def update_location(
    location_id: int,
    data: LocationUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_admin(current_user)
    location = _get_location_or_404(db, location_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(location, field, value)
    db.commit()
    db.refresh(location)
    logger.info(f"Admin {current_user.email} updated location {location.name}")
    return location


@router.delete("/locations/{location_id}")
def delete_location(
    location_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a location. Past records keep their times but lose the link."""
    require_admin(current_user)
    location = _get_location_or_404(db, location_id)

    db.query(AttendanceRecord).filter(AttendanceRecord.location_id == location_id).update(
        {AttendanceRecord.location_id: None}, synchronize_session=False
    )
    db.delete(location)
    db.commit()
    logger.info(f"Admin {current_user.email} deleted location {location_id}")
    return {"success": True}


# ── Attendance Reports ───────────────────────────────────────────────

@router.get("/attendance", response_model=List[AttendanceReportRow])
def attendance_report(
    start: Optional[date] = None,
    end: Optional[date] = None,
    user_id: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """All attendance records in a date range, newest first.

    Without ``start``/``end`` the current month is used.
    """
    require_admin(current_user)

    if start is None and end is None:
        today = datetime.now(timezone.utc).date()
        start, next_month = reports.month_bounds(today.year, today.month)
        end = date.fromordinal(next_month.toordinal() - 1)

    rows = reports.attendance_report(db, start=start, end=end, user_id=user_id)
    return [
        AttendanceReportRow(
            **AttendanceRecordOut.model_validate(record).model_dump(),
            full_name=user.full_name,
            employee_id=user.employee_id,
        )
        for record, user in rows
    ]


@router.get("/attendance/summary")
def attendance_summary(
    month: Optional[str] = None,  # "2026-01"
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Monthly totals for every active non-admin user."""
    require_admin(current_user)
    try:
        year, m = reports.parse_month(month, datetime.now(timezone.utc).date())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "period": f"{year:04d}-{m:02d}",
        "employees": reports.monthly_summary(db, year, m),
    }
