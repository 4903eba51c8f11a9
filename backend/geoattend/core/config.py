from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # App
    APP_NAME: str = "GeoAttend"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "postgresql://attendance_user:attendance_pass@db:5432/attendance_db"

    # Security
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours

    # Office geofence (used when GEOFENCE_MODE == "office")
    OFFICE_NAME: str = "Main Office"
    OFFICE_LATITUDE: float = 24.429328
    OFFICE_LONGITUDE: float = 39.653926
    OFFICE_RADIUS_METERS: float = 50

    # "office" = single fixed point, "assigned" = per-user assigned locations
    GEOFENCE_MODE: str = "office"

    # Admins may check in from anywhere
    ADMIN_GEOFENCE_BYPASS: bool = True

    # Position acquisition
    POSITION_HIGH_ACCURACY: bool = True
    POSITION_TIMEOUT_SECONDS: float = 15
    POSITION_MAX_AGE_SECONDS: float = 300  # 5 minutes

    # Frontend origin for CORS
    FRONTEND_URL: Optional[str] = None

    # First admin account, created on startup if missing
    SEED_ADMIN_EMAIL: str = "admin@example.com"
    SEED_ADMIN_PASSWORD: str = "admin12345"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
