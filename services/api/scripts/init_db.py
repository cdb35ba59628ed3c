#!/usr/bin/env python3
"""Create the ads table and optionally seed sample listings.

Development bootstrap only: the table is created from the ORM metadata
(CREATE TABLE IF NOT EXISTS semantics); there is no migration history.

Usage:
    cd services/api
    python -m scripts.init_db           # create tables
    python -m scripts.init_db --seed    # create tables and insert sample ads
    python -m scripts.init_db --drop    # drop and recreate
"""

import argparse
import asyncio
import os
import sys

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
from sqlalchemy import func, select

from app.models import AdRecord
from app.settings import Settings
from app.stores.postgres import Database

load_dotenv()

# ============================================================
# Sample listings
# ============================================================

SAMPLE_ADS = [
    {"title": "Bike", "description": "Used city bike, 21 gears", "price": 50.0},
    {"title": "Sofa", "description": "Three-seat fabric sofa, grey", "price": 120.0},
    {"title": "Laptop", "description": "14 inch, 16GB RAM, good battery", "price": 450.0},
    {"title": "Desk lamp", "description": "LED, adjustable arm", "price": 15.5},
    {"title": "Winter jacket", "description": "Size M, worn twice", "price": 60.0, "active": False},
]


async def seed_ads(db: Database) -> int:
    """Insert sample ads when the table is empty. Returns rows inserted."""
    async with db.session() as session:
        existing = (await session.execute(select(func.count()).select_from(AdRecord))).scalar_one()
        if existing:
            print(f"  ads table already has {existing} rows, skipping seed")
            return 0
        session.add_all(AdRecord(**ad) for ad in SAMPLE_ADS)
    return len(SAMPLE_ADS)


async def main(seed: bool, drop: bool) -> None:
    settings = Settings()
    db = Database.from_settings(settings)
    try:
        if drop:
            print("Dropping tables...")
            await db.drop_tables()
        print("Creating tables...")
        await db.create_tables()
        if seed:
            inserted = await seed_ads(db)
            print(f"  inserted {inserted} ads")
    finally:
        await db.close()
    print("Done.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--seed", action="store_true", help="insert sample ads into an empty table")
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    args = parser.parse_args()
    asyncio.run(main(seed=args.seed, drop=args.drop))
