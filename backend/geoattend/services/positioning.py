"""Single-shot position acquisition.

``request_position`` is the only place the check-in/check-out flow waits on
something outside the process: the device answering (or not) with a fix.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

from geoattend.core.exceptions import PositioningError
from geoattend.schemas.attendance import GeoPoint, PositionFix

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_MAX_AGE_SECONDS = 300.0
# Fixes stamped further ahead of the server clock than this are not trusted
MAX_CLOCK_SKEW_SECONDS = 60.0


class PositionSource(Protocol):
    async def get_current_position(self, high_accuracy: bool = True) -> PositionFix:
        ...


class ReportedPositionSource:
    """Position source backed by what a client sent in its request.

    The client performs the actual device lookup; a failure it ran into is
    passed along as ``error`` and re-raised here with the same code.
    """

    DEVICE_ERROR_CODES = {
        PositioningError.PERMISSION_DENIED,
        PositioningError.POSITION_UNAVAILABLE,
        PositioningError.TIMEOUT,
        PositioningError.UNSUPPORTED,
    }

    def __init__(self, position: Optional[PositionFix] = None, error: Optional[str] = None):
        self.position = position
        self.error = error

    async def get_current_position(self, high_accuracy: bool = True) -> PositionFix:
        if self.error:
            code = self.error if self.error in self.DEVICE_ERROR_CODES else PositioningError.POSITION_UNAVAILABLE
            raise PositioningError(code)
        if self.position is None:
            raise PositioningError(PositioningError.UNSUPPORTED)
        return self.position


def _age_seconds(fix: PositionFix, now: datetime) -> Optional[float]:
    if fix.captured_at is None:
        return None
    captured = fix.captured_at
    if captured.tzinfo is None:
        captured = captured.replace(tzinfo=timezone.utc)
    return (now - captured).total_seconds()


async def request_position(
    source: PositionSource,
    high_accuracy: bool = True,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    max_age: float = DEFAULT_MAX_AGE_SECONDS,
    now: Optional[datetime] = None,
) -> GeoPoint:
    """Get one current position from ``source``.

    Raises PositioningError with code ``timeout`` when the source does not
    answer within ``timeout`` seconds, and ``position_unavailable`` when the
    fix is older than ``max_age`` seconds or dated in the future.
    """
    try:
        fix = await asyncio.wait_for(
            source.get_current_position(high_accuracy=high_accuracy), timeout=timeout
        )
    except asyncio.TimeoutError:
        logger.warning(f"Position request timed out after {timeout}s")
        raise PositioningError(PositioningError.TIMEOUT)
    except PositioningError as e:
        logger.info(f"Position request failed: {e.code}")
        raise

    age = _age_seconds(fix, now or datetime.now(timezone.utc))
    if age is not None and age < -MAX_CLOCK_SKEW_SECONDS:
        logger.info(f"Rejected position fix dated {-age:.0f}s in the future")
        raise PositioningError(
            PositioningError.POSITION_UNAVAILABLE,
            "Your device clock looks wrong. Check its date and time and try again.",
        )
    if age is not None and age > max_age:
        logger.info(f"Rejected stale position fix ({age:.0f}s old, max {max_age:.0f}s)")
        raise PositioningError(
            PositioningError.POSITION_UNAVAILABLE,
            "Your last known location is too old. Refresh your location and try again.",
        )

    return GeoPoint(latitude=fix.latitude, longitude=fix.longitude, accuracy=fix.accuracy)
