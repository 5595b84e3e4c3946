"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 3 drivers and 6 riders
  - 5 rides between French cities, some with intermediate stops
  - bookings in every lifecycle state, created through the booking
    service so every ride's seat counter matches its bookings
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select

from src.domain.enums import UserRole
from src.infrastructure.database import async_session_factory, engine
from src.infrastructure.models import UserModel
from src.services.bookings import BookingService
from src.services.rides import RideService

TOMORROW = datetime.now(timezone.utc).replace(
    hour=8, minute=0, second=0, microsecond=0
) + timedelta(days=1)


DRIVERS = [
    {"name": "Camille Martin", "email": "camille@example.com"},
    {"name": "Hugo Bernard", "email": "hugo@example.com"},
    {"name": "Lea Dubois", "email": "lea@example.com"},
]

RIDERS = [
    {"name": "Lucas Petit", "email": "lucas@example.com"},
    {"name": "Chloe Moreau", "email": "chloe@example.com"},
    {"name": "Nathan Laurent", "email": "nathan@example.com"},
    {"name": "Manon Simon", "email": "manon@example.com"},
    {"name": "Louis Michel", "email": "louis@example.com"},
    {"name": "Emma Garcia", "email": "emma@example.com"},
]

RIDES = [
    {
        "driver": 0, "vehicle_id": "veh-peugeot-308",
        "departure": "Paris", "destination": "Lyon",
        "departure_lat": 48.8566, "departure_lng": 2.3522,
        "destination_lat": 45.7640, "destination_lng": 4.8357,
        "offset_hours": 0, "duration_minutes": 270, "capacity": 3, "price": 35.0,
        "stops": [
            {"name": "Auxerre Centre", "lat": 47.7982, "lng": 3.5673, "order": 1},
            {"name": "Dijon Gare", "lat": 47.3232, "lng": 5.0270, "order": 2},
        ],
    },
    {
        "driver": 0, "vehicle_id": "veh-peugeot-308",
        "departure": "Lyon", "destination": "Marseille",
        "departure_lat": 45.7640, "departure_lng": 4.8357,
        "destination_lat": 43.2965, "destination_lng": 5.3698,
        "offset_hours": 30, "duration_minutes": 200, "capacity": 4, "price": 28.0,
        "stops": [{"name": "Valence Sud", "lat": 44.9334, "lng": 4.8924, "order": 1}],
    },
    {
        "driver": 1, "vehicle_id": "veh-renault-clio",
        "departure": "Paris", "destination": "Bordeaux",
        "departure_lat": 48.8566, "departure_lng": 2.3522,
        "destination_lat": 44.8378, "destination_lng": -0.5792,
        "offset_hours": 4, "duration_minutes": 345, "capacity": 2, "price": 42.0,
        "stops": [
            {"name": "Orleans", "lat": 47.9030, "lng": 1.9093, "order": 1},
            {"name": "Tours Centre", "lat": 47.3941, "lng": 0.6848, "order": 2},
        ],
    },
    {
        "driver": 2, "vehicle_id": "veh-citroen-c4",
        "departure": "Nice", "destination": "Marseille",
        "departure_lat": 43.7102, "departure_lng": 7.2620,
        "destination_lat": 43.2965, "destination_lng": 5.3698,
        "offset_hours": 6, "duration_minutes": 150, "capacity": 3, "price": 22.0,
        "stops": [],
    },
    {
        "driver": 2, "vehicle_id": "veh-citroen-c4",
        "departure": "Lille", "destination": "Paris",
        "departure_lat": 50.6292, "departure_lng": 3.0573,
        "destination_lat": 48.8566, "destination_lng": 2.3522,
        "offset_hours": 48, "duration_minutes": 140, "capacity": 4, "price": 20.0,
        "stops": [{"name": "Arras", "lat": 50.2910, "lng": 2.7775, "order": 1}],
    },
]

# (ride index, rider index, driver actions to apply after creation)
BOOKINGS = [
    (0, 0, []),
    (0, 1, ["validate"]),
    (0, 2, ["validate", "start"]),
    (1, 3, ["validate", "start", "complete"]),
    (2, 4, ["validate"]),
    (2, 5, ["cancel_by_rider"]),
    (3, 0, []),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(select(func.count()).select_from(UserModel))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Users ─────────────────────────────────────────────────────
        drivers = [UserModel(role=UserRole.DRIVER, **d) for d in DRIVERS]
        riders = [UserModel(role=UserRole.USER, **r) for r in RIDERS]
        session.add_all(drivers + riders)
        await session.flush()
        print(f"  Created {len(drivers)} drivers and {len(riders)} riders")

        # ── Rides ─────────────────────────────────────────────────────
        ride_service = RideService(session)
        rides = []
        for r in RIDES:
            departure_time = TOMORROW + timedelta(hours=r["offset_hours"])
            ride = await ride_service.create_ride(
                driver_id=drivers[r["driver"]].id,
                vehicle_id=r["vehicle_id"],
                departure=r["departure"],
                destination=r["destination"],
                departure_lat=r["departure_lat"],
                departure_lng=r["departure_lng"],
                destination_lat=r["destination_lat"],
                destination_lng=r["destination_lng"],
                departure_time=departure_time,
                estimated_arrival=departure_time + timedelta(minutes=r["duration_minutes"]),
                capacity=r["capacity"],
                price=r["price"],
                stops=r["stops"],
            )
            rides.append(ride)
        print(f"  Created {len(rides)} rides")

        # ── Bookings ──────────────────────────────────────────────────
        booking_service = BookingService(session)
        for ride_idx, rider_idx, actions in BOOKINGS:
            ride = rides[ride_idx]
            rider = riders[rider_idx]
            booking = await booking_service.create_booking(
                rider.id, ride.id, None, ride.price or 0.0
            )
            for action in actions:
                if action == "cancel_by_rider":
                    await booking_service.cancel_booking(rider.id, UserRole.USER, booking.id)
                else:
                    transition = getattr(booking_service, f"{action}_booking")
                    await transition(ride.driver_id, booking.id)
        print(f"  Created {len(BOOKINGS)} bookings")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
