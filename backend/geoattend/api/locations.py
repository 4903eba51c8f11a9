from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from geoattend.core.config import settings
from geoattend.core.database import get_db
from geoattend.core.security import get_current_user
from geoattend.models.user import User
from geoattend.services.location_provider import build_location_provider

router = APIRouter(prefix="/api/locations", tags=["locations"])


@router.get("/mine")
def my_locations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Places the current user may check in from."""
    provider = build_location_provider(settings, db)
    points = provider.available(current_user.id)
    locations: List[dict] = [
        {
            "id": p.location_id,
            "name": p.name,
            "latitude": p.latitude,
            "longitude": p.longitude,
            "radius_meters": p.radius_meters,
        }
        for p in points
    ]
    return {
        "mode": settings.GEOFENCE_MODE,
        "requires_selection": provider.requires_selection,
        "locations": locations,
    }
