#!/usr/bin/env python3
"""Seed script to populate the database with lookup tables and sample data."""

import os
from sqlalchemy.orm import Session
from travel_planner.core.database import SessionLocal, init_db
from travel_planner.models import Country, Destination, DestinationType, TravellerType, User
from travel_planner.models.user import ROLE_ADMIN, ROLE_TRAVELLER
from travel_planner.auth.password import password_manager

DESTINATION_TYPES = ["City", "Town", "Event", "Landmark", "Natural Feature"]

COUNTRIES = [
    ("Australia", "AU"),
    ("France", "FR"),
    ("Japan", "JP"),
    ("New Zealand", "NZ"),
    ("Peru", "PE"),
    ("United States of America", "US"),
]

TRAVELLER_TYPES = [
    "Backpacker",
    "Family",
    "Frequent Weekender",
    "Functional/Business",
    "Gap Year",
    "Holidaymaker",
    "Thrillseeker",
]


def seed_lookups(db: Session) -> None:
    """Insert any missing destination types, countries and traveller types."""
    for name in DESTINATION_TYPES:
        if not db.query(DestinationType).filter(DestinationType.name == name).first():
            db.add(DestinationType(name=name))

    for name, iso_code in COUNTRIES:
        if not db.query(Country).filter(Country.iso_code == iso_code).first():
            db.add(Country(name=name, iso_code=iso_code))

    for name in TRAVELLER_TYPES:
        if not db.query(TravellerType).filter(TravellerType.name == name).first():
            db.add(TravellerType(name=name))

    db.commit()


def create_sample_data():
    """Create lookup tables, users and a few public destinations."""
    init_db()
    db = SessionLocal()

    try:
        seed_lookups(db)

        if db.query(User).filter(User.email == "admin@example.com").first():
            print("Sample data already present, lookups refreshed")
            return

        admin_user = User(
            email="admin@example.com",
            first_name="Admin",
            last_name="User",
            hashed_password=password_manager.hash_password(os.getenv("SEED_ADMIN_PASSWORD", "admin123")),
            role=ROLE_ADMIN,
            is_active=True,
        )
        traveller = User(
            email="user@example.com",
            first_name="Sample",
            last_name="Traveller",
            hashed_password=password_manager.hash_password(os.getenv("SEED_USER_PASSWORD", "user123")),
            role=ROLE_TRAVELLER,
            is_active=True,
        )
        db.add_all([admin_user, traveller])
        db.commit()

        city = db.query(DestinationType).filter(DestinationType.name == "City").one()
        japan = db.query(Country).filter(Country.iso_code == "JP").one()
        france = db.query(Country).filter(Country.iso_code == "FR").one()
        peru = db.query(Country).filter(Country.iso_code == "PE").one()

        # Ownerless public destinations, as if shared long ago
        destinations = [
            Destination(name="Kyoto", district="Kansai", latitude=35.0116, longitude=135.7681,
                        type_id=city.id, country_id=japan.id, is_public=True),
            Destination(name="Paris", district="Ile-de-France", latitude=48.8566, longitude=2.3522,
                        type_id=city.id, country_id=france.id, is_public=True),
            Destination(name="Cusco", district="Cusco", latitude=-13.5320, longitude=-71.9675,
                        type_id=city.id, country_id=peru.id, is_public=True),
        ]
        db.add_all(destinations)
        db.commit()

        print("Sample data created successfully!")
        print(f"Admin user: {admin_user.email}")
        print(f"Traveller user: {traveller.email}")
        print(f"Created {len(destinations)} destinations")

    except Exception as e:
        print(f"Error creating sample data: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    create_sample_data()
