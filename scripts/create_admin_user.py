"""
Create the default admin login (admin / admin123) if it does not exist yet
"""
import asyncio

from isp_tracker.api.auth import get_password_hash
from isp_tracker.database import AsyncSessionLocal, create_tables, engine
from isp_tracker.storage.sql import SqlProjectStore
import isp_tracker.models  # noqa: F401

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin123"


async def create_admin_user():
    await create_tables()

    async with AsyncSessionLocal() as session:
        store = SqlProjectStore(session)
        if await store.get_user_by_username(ADMIN_USERNAME):
            print(f"User '{ADMIN_USERNAME}' already exists, nothing to do.")
            await engine.dispose()
            return

        await store.create_user({
            "username": ADMIN_USERNAME,
            "hashed_password": get_password_hash(ADMIN_PASSWORD),
            "name": "Administrator",
            "role": "admin",
            "email": "admin@isptracker.com",
            "is_admin": True,
        })
        await store.commit()

    await engine.dispose()
    print("Admin user created")
    print(f"  Username: {ADMIN_USERNAME}")
    print(f"  Password: {ADMIN_PASSWORD}")


if __name__ == "__main__":
    asyncio.run(create_admin_user())
