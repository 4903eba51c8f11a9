"""Attendance record model.

One row per user per calendar day:
- created (upserted) at check-in
- updated once at check-out, which also fills total_hours
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, Date, Numeric, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from geoattend.core.database import Base


class AttendanceRecord(Base):
    """Check-in / check-out record for a single day."""
    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_attendance_user_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Calendar day of this record
    date = Column(Date, nullable=False, index=True)

    # Check times
    check_in = Column(DateTime(timezone=True), nullable=True)
    check_out = Column(DateTime(timezone=True), nullable=True)

    # {"latitude": .., "longitude": .., "accuracy": ..}
    check_in_location = Column(JSON, nullable=True)
    check_out_location = Column(JSON, nullable=True)

    # Work site used for the geofence check (assigned-locations mode)
    location_id = Column(Integer, ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)

    # Filled by the store at check-out
    total_hours = Column(Numeric(6, 2), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="attendance_records")
    location = relationship("Location")
