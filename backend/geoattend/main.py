import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from geoattend.core.config import settings
from geoattend.core.exceptions import AttendanceError
from geoattend.api import auth, attendance, locations, admin

logger = logging.getLogger(__name__)


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def init_database():
    """Create tables and the first admin account."""
    from geoattend.core.database import engine, Base, SessionLocal
    from geoattend.core.security import get_password_hash
    from geoattend.models.user import User, UserRole

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        # Create admin user if not exists
        has_admin = db.query(User).filter(User.role == UserRole.ADMIN.value).first()
        if not has_admin:
            admin_user = User(
                email=settings.SEED_ADMIN_EMAIL,
                full_name="System Administrator",
                employee_id="ADMIN001",
                hashed_password=get_password_hash(settings.SEED_ADMIN_PASSWORD),
                role=UserRole.ADMIN.value,
                is_active=True,
            )
            db.add(admin_user)
            db.commit()
            logger.info(f"Admin user created ({settings.SEED_ADMIN_EMAIL})")
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run database init on startup."""
    configure_logging()
    init_database()
    logger.info(f"Geofence mode: {settings.GEOFENCE_MODE}")
    yield


# Disable API docs in production
docs_url = "/docs" if settings.ENVIRONMENT != "production" else None
redoc_url = "/redoc" if settings.ENVIRONMENT != "production" else None

app = FastAPI(
    title=settings.APP_NAME,
    description="Geofenced employee attendance API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=docs_url,
    redoc_url=redoc_url,
)


@app.exception_handler(AttendanceError)
async def attendance_exception_handler(request: Request, exc: AttendanceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Global exception handler - always return JSON (never plain text)
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception: %s\n%s", exc, traceback.format_exc())
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal error"},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# CORS: local dev plus the configured frontend
allowed_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
]
if settings.FRONTEND_URL and settings.FRONTEND_URL not in allowed_origins:
    allowed_origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "geoattend-api", "version": "1.0.0"}


@app.get("/")
def root():
    return {"message": f"{settings.APP_NAME} API", "version": "1.0.0", "docs": docs_url}


# Include routers
app.include_router(auth.router)
app.include_router(attendance.router)
app.include_router(locations.router)
app.include_router(admin.router)
