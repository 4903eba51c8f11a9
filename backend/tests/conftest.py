import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-at-least-32-bytes!")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from geoattend.core.config import settings
from geoattend.core.database import Base, get_db
from geoattend.core.security import create_access_token, get_password_hash
from geoattend.main import app
from geoattend.models import Location, User, UserLocation, UserRole

OFFICE = (24.429328, 39.653926)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def office_settings(monkeypatch):
    monkeypatch.setattr(settings, "GEOFENCE_MODE", "office")
    monkeypatch.setattr(settings, "OFFICE_LATITUDE", OFFICE[0])
    monkeypatch.setattr(settings, "OFFICE_LONGITUDE", OFFICE[1])
    monkeypatch.setattr(settings, "OFFICE_RADIUS_METERS", 50)
    monkeypatch.setattr(settings, "ADMIN_GEOFENCE_BYPASS", True)
    return settings


def _make_user(db, email, employee_id, role=UserRole.USER.value, password="password123"):
    user = User(
        email=email,
        full_name=email.split("@")[0].title(),
        employee_id=employee_id,
        hashed_password=get_password_hash(password),
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_user(db):
    return _make_user(db, "admin@example.com", "ADMIN001", role=UserRole.ADMIN.value)


@pytest.fixture
def employee(db):
    return _make_user(db, "sara@example.com", "EMP001")


@pytest.fixture
def make_user(db):
    def factory(email, employee_id, role=UserRole.USER.value, password="password123"):
        return _make_user(db, email, employee_id, role=role, password=password)
    return factory


@pytest.fixture
def site(db):
    location = Location(name="Warehouse", latitude=24.5, longitude=39.6, radius_meters=100)
    db.add(location)
    db.commit()
    db.refresh(location)
    return location


@pytest.fixture
def assign(db):
    def _assign(user, location):
        db.add(UserLocation(user_id=user.id, location_id=location.id))
        db.commit()
    return _assign


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}
    return _headers


@pytest.fixture
def fail_writes(monkeypatch):
    """Call to make every INSERT/UPDATE/DELETE fail as if the database went away."""
    real_execute = Session.execute

    def execute(self, statement, *args, **kwargs):
        if getattr(statement, "is_dml", False):
            raise OperationalError("write", {}, Exception("database is locked"))
        return real_execute(self, statement, *args, **kwargs)

    def _fail():
        monkeypatch.setattr(Session, "execute", execute)
    return _fail
