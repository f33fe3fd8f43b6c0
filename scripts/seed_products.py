#!/usr/bin/env python3
"""
Create the products table and load the initial catalog from the remote
mock API. Does nothing when the table already has data.

Usage:
    python scripts/seed_products.py
    python scripts/seed_products.py --source-url https://example.com/products.json
"""
import argparse
import asyncio
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dotenv import load_dotenv
load_dotenv()

from cachebench.core.config import get_config
from cachebench.core.errors import SeedError, StoreUnavailable
from cachebench.data.product_store import SqlProductStore
from cachebench.data.seed import seed_products


async def run(database_url: str, source_url: str) -> int:
    store = SqlProductStore.from_url(database_url)
    try:
        await store.create_schema()
        result = await seed_products(store, source_url)
        print(f"  {result.message} (loaded={result.loaded}, skipped={result.skipped})")
        print(f"  Products in store: {await store.count()}")
        return 0
    except (SeedError, StoreUnavailable) as e:
        print(f"  ERROR: {e}")
        return 1
    finally:
        await store.close()


def main():
    config = get_config()
    parser = argparse.ArgumentParser(description="Seed the products table")
    parser.add_argument("--database-url", default=config.database_url, help="SQLAlchemy async URL")
    parser.add_argument("--source-url", default=config.seed_source_url, help="JSON product list URL")
    args = parser.parse_args()
    sys.exit(asyncio.run(run(args.database_url, args.source_url)))


if __name__ == "__main__":
    main()
