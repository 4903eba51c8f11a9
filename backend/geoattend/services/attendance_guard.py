"""Per-user, per-day check-in/check-out state machine.

    NONE --check-in--> CHECKED_IN --check-out--> CHECKED_OUT

Both transitions need an admitted geofence decision. CHECKED_OUT is
terminal for the day. The guard only decides and issues one write per
action; total hours are filled in by the store.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional, Protocol

from geoattend.core.exceptions import GeofenceViolation, StateConflict
from geoattend.services import geofence
from geoattend.services.geofence import GeofenceDecision
from geoattend.services.location_provider import LocationProvider

logger = logging.getLogger(__name__)


class AttendanceState(str, enum.Enum):
    NONE = "none"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"


def state_of(record) -> AttendanceState:
    if record is None or record.check_in is None:
        return AttendanceState.NONE
    if record.check_out is None:
        return AttendanceState.CHECKED_IN
    return AttendanceState.CHECKED_OUT


@dataclass(frozen=True)
class SessionContext:
    """Who is acting. Passed explicitly to every guard operation."""
    user_id: int
    role: str = "user"
    full_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == "admin"

    @classmethod
    def for_user(cls, user) -> "SessionContext":
        return cls(user_id=user.id, role=user.role, full_name=user.full_name)


class AttendanceStore(Protocol):
    def get_for_day(self, user_id: int, day: date) -> Any:
        ...

    def upsert_check_in(
        self, user_id: int, day: date, check_in: datetime, location: dict, location_id: Optional[int]
    ) -> Any:
        ...

    def update_check_out(self, user_id: int, day: date, check_out: datetime, location: dict) -> Any:
        ...


@dataclass
class AttendanceOutcome:
    record: Any
    state: AttendanceState
    decision: GeofenceDecision


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _location_payload(position) -> dict:
    return {
        "latitude": position.latitude,
        "longitude": position.longitude,
        "accuracy": position.accuracy,
    }


class AttendanceGuard:
    def __init__(
        self,
        store: AttendanceStore,
        provider: LocationProvider,
        admin_bypass: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.provider = provider
        self.admin_bypass = admin_bypass
        self.clock = clock

    def today(self) -> date:
        return self.clock().date()

    def status(self, ctx: SessionContext):
        record = self.store.get_for_day(ctx.user_id, self.today())
        return record, state_of(record)

    def _admit(self, ctx: SessionContext, position, location_id: Optional[int]) -> GeofenceDecision:
        reference = self.provider.resolve(ctx.user_id, location_id)
        bypass = self.admin_bypass and ctx.is_admin
        decision = geofence.evaluate(position, reference, bypass=bypass)
        if not decision.admitted:
            logger.info(
                f"Geofence rejected user {ctx.user_id}: {decision.distance_meters:.0f}m from "
                f"{reference.name} (radius {reference.radius_meters:.0f}m)"
            )
            raise GeofenceViolation(decision.distance_meters, decision.radius_meters, reference.name)
        if decision.bypassed:
            logger.info(f"Geofence bypassed for admin user {ctx.user_id} ({decision.distance_meters:.0f}m away)")
        return decision

    def check_in(self, ctx: SessionContext, position, location_id: Optional[int] = None) -> AttendanceOutcome:
        now = self.clock()
        day = now.date()

        if self.store.get_for_day(ctx.user_id, day) is not None:
            # One record per day, whatever state it is in
            raise StateConflict(StateConflict.ALREADY_CHECKED_IN)

        decision = self._admit(ctx, position, location_id)
        record = self.store.upsert_check_in(
            ctx.user_id,
            day,
            now,
            _location_payload(position),
            location_id if self.provider.requires_selection else None,
        )
        logger.info(f"User {ctx.user_id} checked in for {day.isoformat()}")
        return AttendanceOutcome(record=record, state=AttendanceState.CHECKED_IN, decision=decision)

    def check_out(self, ctx: SessionContext, position, location_id: Optional[int] = None) -> AttendanceOutcome:
        now = self.clock()
        day = now.date()

        record = self.store.get_for_day(ctx.user_id, day)
        state = state_of(record)
        if state is AttendanceState.NONE:
            raise StateConflict(StateConflict.NOT_CHECKED_IN)
        if state is AttendanceState.CHECKED_OUT:
            raise StateConflict(StateConflict.ALREADY_CHECKED_OUT)

        if location_id is None:
            location_id = record.location_id
        decision = self._admit(ctx, position, location_id)
        record = self.store.update_check_out(ctx.user_id, day, now, _location_payload(position))
        logger.info(f"User {ctx.user_id} checked out for {day.isoformat()}")
        return AttendanceOutcome(record=record, state=AttendanceState.CHECKED_OUT, decision=decision)
