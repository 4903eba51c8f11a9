"""SQLAlchemy-backed attendance record store."""
import logging
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from geoattend.core.exceptions import BackendWriteError
from geoattend.models.attendance import AttendanceRecord

logger = logging.getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def hours_between(start: datetime, end: datetime) -> Decimal:
    hours = Decimal(str((end - start).total_seconds() / 3600.0))
    return hours.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class SqlAttendanceStore:
    def __init__(self, db: Session):
        self.db = db

    def get_for_day(self, user_id: int, day: date) -> Optional[AttendanceRecord]:
        return self.db.query(AttendanceRecord).filter(
            AttendanceRecord.user_id == user_id,
            AttendanceRecord.date == day,
        ).first()

    def upsert_check_in(
        self,
        user_id: int,
        day: date,
        check_in: datetime,
        location: dict,
        location_id: Optional[int] = None,
    ) -> AttendanceRecord:
        """INSERT .. ON CONFLICT (user_id, date) DO UPDATE for the check-in fields."""
        dialect = self.db.get_bind().dialect.name
        insert = _INSERT_BY_DIALECT.get(dialect)
        if insert is None:
            raise BackendWriteError(f"Upsert is not supported on {dialect}")

        values = {
            "user_id": user_id,
            "date": day,
            "check_in": check_in,
            "check_in_location": location,
            "location_id": location_id,
        }
        stmt = insert(AttendanceRecord).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[AttendanceRecord.user_id, AttendanceRecord.date],
            set_={
                "check_in": stmt.excluded.check_in,
                "check_in_location": stmt.excluded.check_in_location,
                "location_id": stmt.excluded.location_id,
            },
        )
        self._execute(stmt, "check-in", user_id, day)
        return self.get_for_day(user_id, day)

    def update_check_out(self, user_id: int, day: date, check_out: datetime, location: dict) -> AttendanceRecord:
        record = self.get_for_day(user_id, day)
        total_hours = None
        if record is not None and record.check_in is not None:
            check_in = record.check_in
            if check_in.tzinfo is None and check_out.tzinfo is not None:
                # SQLite hands back naive datetimes
                check_in = check_in.replace(tzinfo=check_out.tzinfo)
            total_hours = hours_between(check_in, check_out)

        stmt = (
            update(AttendanceRecord)
            .where(AttendanceRecord.user_id == user_id, AttendanceRecord.date == day)
            .values(check_out=check_out, check_out_location=location, total_hours=total_hours)
        )
        self._execute(stmt, "check-out", user_id, day)
        return self.get_for_day(user_id, day)

    def _execute(self, stmt, action: str, user_id: int, day: date):
        try:
            self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"{action} write failed for user {user_id} on {day}: {type(e).__name__}: {e}")
            raise BackendWriteError()
        # Statement-level writes bypass the identity map
        self.db.expire_all()
