"""Create (or, with --reset, recreate) the project tracker tables"""
import asyncio
import sys

from isp_tracker.database import Base, create_tables, engine
from isp_tracker.models import *  # noqa: F401,F403 - Import all models to register them


async def init(reset: bool = False):
    await create_tables(drop_first=reset)
    await engine.dispose()
    if reset:
        print("Existing tables dropped.")
    print(f"Created {len(Base.metadata.tables)} tables.")


if __name__ == "__main__":
    asyncio.run(init(reset="--reset" in sys.argv[1:]))
