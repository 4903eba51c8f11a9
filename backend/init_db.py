"""
Database initialization script
Run this to create tables and seed initial data
"""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from geoattend.core.config import settings
from geoattend.core.database import engine, Base, SessionLocal
from geoattend.core.security import get_password_hash
from geoattend.models import User, UserRole, Location, UserLocation


def init_db():
    """Initialize database with tables"""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    print("✓ Tables created successfully")


def seed_data():
    """Seed initial data"""
    db = SessionLocal()

    try:
        print("\nSeeding initial data...")

        # Create admin user
        admin = db.query(User).filter(User.email == settings.SEED_ADMIN_EMAIL).first()
        if not admin:
            admin = User(
                email=settings.SEED_ADMIN_EMAIL,
                full_name="System Administrator",
                employee_id="ADMIN001",
                hashed_password=get_password_hash(settings.SEED_ADMIN_PASSWORD),
                role=UserRole.ADMIN.value,
            )
            db.add(admin)
            print(f"✓ Admin user created (email: {settings.SEED_ADMIN_EMAIL})")

        # Create sample employee
        employee = db.query(User).filter(User.email == "employee@example.com").first()
        if not employee:
            employee = User(
                email="employee@example.com",
                full_name="Sample Employee",
                employee_id="EMP001",
                hashed_password=get_password_hash("employee123"),
                role=UserRole.USER.value,
            )
            db.add(employee)
            print("✓ Sample employee created (email: employee@example.com, password: employee123)")

        # Main office as an assignable location
        office = db.query(Location).filter(Location.name == settings.OFFICE_NAME).first()
        if not office:
            office = Location(
                name=settings.OFFICE_NAME,
                latitude=settings.OFFICE_LATITUDE,
                longitude=settings.OFFICE_LONGITUDE,
                radius_meters=settings.OFFICE_RADIUS_METERS,
            )
            db.add(office)
            print(f"✓ Location created: {settings.OFFICE_NAME}")

        db.flush()
        assigned = db.query(UserLocation).filter(
            UserLocation.user_id == employee.id,
            UserLocation.location_id == office.id,
        ).first()
        if not assigned:
            db.add(UserLocation(user_id=employee.id, location_id=office.id))
            print(f"✓ {settings.OFFICE_NAME} assigned to {employee.email}")

        db.commit()
        print("\n✓ Database seeded successfully!")

    except Exception as e:
        print(f"\n✗ Error seeding data: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
    seed_data()
