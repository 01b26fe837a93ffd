#!/usr/bin/env python3

from decimal import Decimal

from trip_booking.database import Base, engine, SessionLocal
from trip_booking.models import User, City, Bus, ScheduledJob, Review, BookedSeat, Ticket, Trip
from trip_booking.auth.permissions import PermissionFlag, ALL_PERMISSIONS
from trip_booking.auth.utils import get_password_hash

def create_seed_data():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    
    try:
        print("🚀 Creating seed data for the bus trip booking API...")
        
        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(ScheduledJob).delete()
        db.query(Review).delete()
        db.query(BookedSeat).delete()
        db.query(Ticket).delete()
        db.query(Trip).delete()
        db.query(Bus).delete()
        db.query(City).delete()
        db.query(User).delete()
        
        # 1. Create Users
        print("Creating users...")
        users = [
            User(name="Admin", email="admin@example.com",
                 password=get_password_hash("Admin123!"), permission_flags=int(ALL_PERMISSIONS)),
            User(name="Trip Guide", email="guide@example.com",
                 password=get_password_hash("Guide123!"), permission_flags=int(PermissionFlag.TRIP_GUIDE)),
            User(name="Traveller", email="user@example.com",
                 password=get_password_hash("User1234!"), permission_flags=int(PermissionFlag.USER)),
        ]
        db.add_all(users)
        db.flush()
        
        # 2. Create Cities
        print("Creating cities...")
        cities = [
            City(city_name="Casablanca", latitude=Decimal("33.573110"), longitude=Decimal("-7.589843")),
            City(city_name="Rabat", latitude=Decimal("34.020882"), longitude=Decimal("-6.841650")),
            City(city_name="Marrakesh", latitude=Decimal("31.629472"), longitude=Decimal("-7.981084")),
            City(city_name="Fes", latitude=Decimal("34.033126"), longitude=Decimal("-5.000000")),
            City(city_name="Tangier", latitude=Decimal("35.759465"), longitude=Decimal("-5.833954")),
        ]
        db.add_all(cities)
        db.flush()
        
        # 3. Create Buses
        print("Creating buses...")
        buses = [
            Bus(bus_model="Mercedes Tourismo", seats=49, bus_type="coach"),
            Bus(bus_model="Volvo 9700", seats=44, bus_type="coach"),
            Bus(bus_model="Iveco Daily", seats=19, bus_type="minibus"),
        ]
        db.add_all(buses)
        
        # Commit all changes
        db.commit()
        print("✅ Successfully created seed data!")
        print(f"Created:")
        print(f"  - {len(users)} users (admin@example.com / Admin123!)")
        print(f"  - {len(cities)} cities")
        print(f"  - {len(buses)} buses")
        
    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
