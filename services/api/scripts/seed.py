#!/usr/bin/env python3
"""Seed database with demo marketplace data.

Creates:
- Farmers (one verified), a buyer and an admin
- A few produce listings (each also records a LISTING_CREATED price observation)
- A price alert for the verified farmer

Prints a bearer token per user so the API can be exercised by hand.
Seed script is idempotent (users are matched on phone number).

Usage:
    cd services/api
    python -m scripts.seed
"""

import asyncio
import os
import sys

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from umoja.auth import create_access_token
from umoja.models import Listing, PriceAlert, User
from umoja.models.enums import NotificationMethod, PriceObservationSource, Role, VerificationStatus
from umoja.services.prices import append_observation
from umoja.stores.postgres import close_db, create_tables, get_session, init_db

load_dotenv()

USERS = [
    {"full_name": "Wanjiku Kamau", "phone_number": "+254711000001", "role": Role.FARMER,
     "verification_status": VerificationStatus.APPROVED},
    {"full_name": "Otieno Odhiambo", "phone_number": "+254711000002", "role": Role.FARMER,
     "verification_status": VerificationStatus.PENDING},
    {"full_name": "Amina Hassan", "phone_number": "+254722000001", "role": Role.BUYER,
     "verification_status": VerificationStatus.UNSUBMITTED},
    {"full_name": "UmojaHub Admin", "phone_number": "+254733000001", "role": Role.ADMIN,
     "verification_status": VerificationStatus.UNSUBMITTED},
]

LISTINGS = [
    {"farmer": "+254711000001", "title": "Dry white maize", "crop_name": "Maize", "quantity_available": 900,
     "unit": "KG", "price_per_unit": 42.0, "pickup_county": "Kiambu"},
    {"farmer": "+254711000001", "title": "Shangi potatoes", "crop_name": "Potatoes", "quantity_available": 40,
     "unit": "BAG", "price_per_unit": 2800.0, "pickup_county": "Nyandarua"},
    {"farmer": "+254711000002", "title": "Fresh tomatoes", "crop_name": "Tomatoes", "quantity_available": 25,
     "unit": "CRATE", "price_per_unit": 3500.0, "pickup_county": "Kirinyaga"},
]


async def seed_users(session: AsyncSession) -> dict[str, User]:
    users: dict[str, User] = {}
    for u in USERS:
        existing = await session.scalar(select(User).where(User.phone_number == u["phone_number"]))
        if existing:
            print(f"  ⏭️  {u['full_name']} (exists)")
            users[u["phone_number"]] = existing
            continue
        user = User(**u)
        session.add(user)
        await session.flush()
        users[u["phone_number"]] = user
        print(f"  ✅ {u['full_name']} ({u['role'].value})")
    return users


async def seed_listings(session: AsyncSession, users: dict[str, User]) -> None:
    for item in LISTINGS:
        farmer = users[item["farmer"]]
        existing = await session.scalar(
            select(Listing).where(Listing.farmer_id == farmer.id, Listing.title == item["title"])
        )
        if existing:
            print(f"  ⏭️  {item['title']} (exists)")
            continue
        fields = {k: v for k, v in item.items() if k != "farmer"}
        listing = Listing(farmer_id=farmer.id, **fields)
        session.add(listing)
        await session.flush()
        await append_observation(
            session,
            crop_name=listing.crop_name,
            county=listing.pickup_county,
            price_per_unit=listing.price_per_unit,
            unit=listing.unit,
            source=PriceObservationSource.LISTING_CREATED,
            farmer_id=farmer.id,
            listing_id=listing.id,
        )
        print(f"  ✅ {item['title']} @ KES {item['price_per_unit']}/{item['unit']}")


async def seed_alerts(session: AsyncSession, users: dict[str, User]) -> None:
    farmer = users["+254711000001"]
    existing = await session.scalar(
        select(PriceAlert).where(PriceAlert.farmer_id == farmer.id, PriceAlert.crop_name == "Maize")
    )
    if existing:
        print("  ⏭️  Maize/Kiambu alert (exists)")
        return
    session.add(
        PriceAlert(
            farmer_id=farmer.id,
            crop_name="Maize",
            county="Kiambu",
            target_price_per_unit=40.0,
            unit="KG",
            notification_method=NotificationMethod.SMS,
        )
    )
    print("  ✅ Maize/Kiambu alert at KES 40/KG")


async def seed_database() -> None:
    """Seed database with demo data."""
    await init_db(os.getenv("DATABASE_URL"))
    await create_tables()

    try:
        async with get_session() as session:
            print("🌱 Seeding database...")

            print("\n👤 Creating users...")
            users = await seed_users(session)

            print("\n🌽 Creating listings...")
            await seed_listings(session, users)

            print("\n🔔 Creating price alerts...")
            await seed_alerts(session, users)

        print("\n🔑 Bearer tokens:")
        for user in users.values():
            print(f"  {user.full_name} ({user.role.value}, id={user.id}): {create_access_token(user.id, user.role)}")

        print("\n✅ Database seeded successfully!")
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(seed_database())
