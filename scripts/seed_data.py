"""Seed script to populate the database with sample data."""

import asyncio
from datetime import UTC, datetime

from app.core.config import settings
from app.core.database import CONNECTED, Database
from app.models.enums import ReadingStatus, ReadingUnit, Role
from app.models.meter_reading import MeterReading
from app.models.user import User

ADMIN_EMAIL = "admin@example.com"
READER_EMAIL = "reader@example.com"
SEED_PASSWORD = "password123"

# (meter number, reading, longitude, latitude, address, status)
SAMPLE_READINGS = [
    ("MTR-0001", 10452.0, -73.9857, 40.7484, "350 5th Ave, New York, NY", ReadingStatus.PENDING),
    ("MTR-0002", 8831.5, -73.9442, 40.6782, "Brooklyn, NY", ReadingStatus.APPROVED),
    ("MTR-0003", 2210.0, -74.0445, 40.6892, "Liberty Island, New York, NY", ReadingStatus.REJECTED),
    ("MTR-0004", 15320.25, -118.2437, 34.0522, "Los Angeles, CA", ReadingStatus.PENDING),
]


async def seed_database() -> None:
    """Seed the database with sample data."""
    database = Database(settings.DATABASE_URL, retry_delay=settings.DB_RETRY_DELAY_SECONDS)
    await database.connect()
    try:
        if database.get_connection_status() != CONNECTED:
            print("Database is not reachable. Skipping seed.")
            return

        with database.session() as db:
            # Check if data already exists
            if db.query(User).first():
                print("Database already has data. Skipping seed.")
                return

            print("Seeding database...")

            admin = User(name="Admin", email=ADMIN_EMAIL, role=Role.ADMIN)
            admin.set_password(SEED_PASSWORD)
            reader = User(name="Meter Reader", email=READER_EMAIL, role=Role.USER)
            reader.set_password(SEED_PASSWORD)
            db.add_all([admin, reader])
            db.flush()

            print(f"Created 2 users: {admin.email} (admin), {reader.email} (user)")

            for meter_number, value, lng, lat, address, status in SAMPLE_READINGS:
                reading = MeterReading(
                    user_id=reader.id,
                    meter_number=meter_number,
                    reading=value,
                    unit=ReadingUnit.KWH,
                    longitude=lng,
                    latitude=lat,
                    address=address,
                    status=status,
                )
                if status != ReadingStatus.PENDING:
                    reading.approved_by_id = admin.id
                    reading.approved_at = datetime.now(UTC)
                db.add(reading)

            db.commit()

        print(f"Created {len(SAMPLE_READINGS)} meter readings")
        print("\nSeed data created successfully!")
        print(f"\nLog in with {ADMIN_EMAIL} or {READER_EMAIL} and password '{SEED_PASSWORD}'.")
    finally:
        await database.disconnect()


if __name__ == "__main__":
    asyncio.run(seed_database())
