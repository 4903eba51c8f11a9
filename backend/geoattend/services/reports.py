"""Attendance history and summaries."""
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from geoattend.models.attendance import AttendanceRecord
from geoattend.models.user import User


def parse_month(month: Optional[str], today: date) -> Tuple[int, int]:
    """"2026-01" -> (2026, 1). Defaults to the month of ``today``."""
    if not month:
        return today.year, today.month
    try:
        year, m = map(int, month.split("-"))
    except ValueError:
        raise ValueError(f"Invalid month {month!r}, expected YYYY-MM")
    if not 1 <= m <= 12:
        raise ValueError(f"Invalid month {month!r}, expected YYYY-MM")
    return year, m


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First day of the month and first day of the next month."""
    start = date(year, month, 1)
    if month == 12:
        end = date(year + 1, 1, 1)
    else:
        end = date(year, month + 1, 1)
    return start, end


def user_month_records(db: Session, user_id: int, year: int, month: int) -> List[AttendanceRecord]:
    start, end = month_bounds(year, month)
    return db.query(AttendanceRecord).filter(
        AttendanceRecord.user_id == user_id,
        AttendanceRecord.date >= start,
        AttendanceRecord.date < end,
    ).order_by(AttendanceRecord.date.desc()).all()


def summarize(records: List[AttendanceRecord], year: int, month: int) -> dict:
    days_present = sum(1 for r in records if r.check_in is not None)
    days_completed = sum(1 for r in records if r.check_in is not None and r.check_out is not None)
    total_hours = sum(float(r.total_hours) for r in records if r.total_hours is not None)
    return {
        "period": f"{year:04d}-{month:02d}",
        "days_present": days_present,
        "days_completed": days_completed,
        "total_hours": round(total_hours, 2),
    }


def attendance_report(
    db: Session,
    start: Optional[date] = None,
    end: Optional[date] = None,
    user_id: Optional[int] = None,
) -> List[Tuple[AttendanceRecord, User]]:
    """All records in [start, end] joined with their owner, newest day first."""
    query = db.query(AttendanceRecord, User).join(User, User.id == AttendanceRecord.user_id)
    if start:
        query = query.filter(AttendanceRecord.date >= start)
    if end:
        query = query.filter(AttendanceRecord.date <= end)
    if user_id:
        query = query.filter(AttendanceRecord.user_id == user_id)
    return query.order_by(AttendanceRecord.date.desc(), User.full_name).all()


def monthly_summary(db: Session, year: int, month: int) -> List[dict]:
    """Per-employee totals for one month, admins excluded."""
    users = db.query(User).filter(User.is_active == True).order_by(User.full_name).all()

    results = []
    for u in users:
        if u.is_admin:
            continue  # Admins are not tracked
        summary = summarize(user_month_records(db, u.id, year, month), year, month)
        summary["user_id"] = u.id
        summary["full_name"] = u.full_name
        summary["employee_id"] = u.employee_id
        results.append(summary)

    results.sort(key=lambda x: x["total_hours"], reverse=True)
    return results
