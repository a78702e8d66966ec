"""Initialize database tables and seed the admin account and parts catalog"""
import asyncio

from solar_backend.database import AsyncSessionLocal, create_tables
from solar_backend.main import seed_defaults


async def init():
    await create_tables()
    async with AsyncSessionLocal() as session:
        await seed_defaults(session)
    print("Database tables created successfully.")


if __name__ == "__main__":
    asyncio.run(init())
