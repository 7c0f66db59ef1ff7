import os
import logging
from datetime import datetime, timedelta, timezone

from .store import EMERGENCIES, REQUESTORS, RESPONDERS, USERS, RecordStore

logger = logging.getLogger(__name__)

DEMO_USERS = [
    # name, email, phone, role, type
    ("Admin", "admin@bilar.gov.ph", "09170000000", "admin", None),
    ("Dr. Maria Santos", "maria.santos@bilar.gov.ph", "09171112222", "responder", "medical"),
    ("Officer Juan Cruz", "juan.cruz@bilar.gov.ph", "09172223333", "responder", "police"),
    ("Firefighter Pedro Reyes", "pedro.reyes@bilar.gov.ph", "09173334444", "responder", "fire"),
    ("Juan Dela Cruz", "juan.delacruz@gmail.com", "09174445555", "requestor", None),
    ("Armando C. Jumawid", "armando.jumawid@gmail.com", "09175556666", "requestor", None),
]

DEMO_EMERGENCIES = [
    # reporter email, type, description, lat, lng, address, priority, minutes ago
    ("juan.delacruz@gmail.com", "medical", "Elderly man collapsed, not responsive",
     9.6282, 124.0935, "Poblacion, Bilar, Bohol", "high", 12),
    ("armando.jumawid@gmail.com", "fire", "Smoke coming from a kitchen near the market",
     9.6301, 124.0958, "Market Area, Bilar, Bohol", "high", 45),
    ("juan.delacruz@gmail.com", "police", "Suspicious activity reported near the school",
     9.6255, 124.0912, "Riverside, Bilar, Bohol", "medium", 180),
]

async def is_table_empty(store: RecordStore, table_name: str) -> bool:
    """Check if a table is empty."""
    return await store.count(table_name) == 0

async def seed_data(store: RecordStore = None):
    """Seed demo users, profiles and emergencies if the users table is empty"""
    if os.getenv("SEED_DEMO_DATA", "true").lower() not in ("1", "true", "yes"):
        logger.info("SEED_DEMO_DATA disabled. Skipping seeding.")
        return
    store = store or RecordStore()
    try:
        logger.info("Starting database seeding process.")
        if not await is_table_empty(store, USERS):
            logger.info("Users table is not empty. Skipping seeding.")
            return

        now = datetime.now(timezone.utc)
        user_ids = {}
        async with store.transaction() as tx:
            for name, email, phone, role, unit_type in DEMO_USERS:
                user = await tx.insert(USERS, {
                    "name": name, "email": email, "phone": phone,
                    "role": role, "type": unit_type, "created_at": now,
                })
                user_ids[email] = user["id"]
                profile = {"user_id": user["id"], "name": name, "email": email, "phone": phone, "created_at": now}
                if role == "responder":
                    await tx.insert(RESPONDERS, {**profile, "type": unit_type, "status": "available"})
                elif role == "requestor":
                    await tx.insert(REQUESTORS, profile)
                logger.info(f"User '{name}' seeded with ID: {user['id']}")

            for email, kind, description, lat, lng, address, priority, minutes_ago in DEMO_EMERGENCIES:
                reported_at = now - timedelta(minutes=minutes_ago)
                emergency = await tx.insert(EMERGENCIES, {
                    "user_id": user_ids[email],
                    "type": kind,
                    "description": description,
                    "location": {"lat": lat, "lng": lng},
                    "address": address,
                    "status": "pending",
                    "priority": priority,
                    "reported_at": reported_at,
                    "updated_at": reported_at,
                })
                logger.info(f"Emergency '{description}' seeded with ID: {emergency['id']}")

        logger.info("Database seeding completed successfully.")
    except Exception as e:
        logger.exception(f"Error seeding data: {e}")
        raise
