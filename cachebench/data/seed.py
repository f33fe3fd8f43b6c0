"""
Initial data load for the primary store.

Fetches the product list from the remote mock API once; when the store
already has data nothing is fetched.
"""
from dataclasses import dataclass
from typing import List, Optional

import httpx

from cachebench.core.errors import DeserializationError, SeedError
from cachebench.core.models import Entity
from cachebench.data.product_store import SqlProductStore
from cachebench.utils.logger import get_logger

logger = get_logger("data.seed")


@dataclass
class SeedResult:
    loaded: int
    skipped: int
    message: str


def parse_products(payload) -> List[Entity]:
    """
    Parse the remote product list.

    Returns:
        Entities parsed from the payload (malformed records are skipped)

    Raises:
        SeedError: the payload is not a list
    """
    if not isinstance(payload, list):
        raise SeedError(f"Expected a JSON list of products, got {type(payload).__name__}")
    entities: List[Entity] = []
    seen = set()
    for record in payload:
        try:
            entity = Entity.from_dict(record)
        except DeserializationError as e:
            logger.warning("Skipping malformed product record: %s", e.message)
            continue
        # id is unique in the store
        if entity.id in seen:
            logger.warning("Skipping duplicate product id %s", entity.id)
            continue
        seen.add(entity.id)
        entities.append(entity)
    return entities


async def seed_products(
    store: SqlProductStore,
    source_url: str,
    http_client: Optional[httpx.AsyncClient] = None,
    timeout: float = 10.0,
) -> SeedResult:
    """
    Load products from ``source_url`` into an empty store.

    Args:
        store: Primary store to seed
        source_url: URL returning a JSON list of products
        http_client: Optional client (one is created when omitted)
        timeout: Request timeout in seconds

    Returns:
        SeedResult

    Raises:
        SeedError: the remote source failed or returned invalid data
        StoreUnavailable: the store could not be read or written
    """
    if await store.exists():
        logger.info("Store already has products, skipping seed")
        return SeedResult(loaded=0, skipped=0, message="Data already exists in the database")

    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=timeout)
    try:
        response = await client.get(source_url)
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPError as e:
        raise SeedError(f"Failed to fetch products from {source_url}: {e}") from e
    except ValueError as e:
        raise SeedError(f"Invalid JSON from {source_url}: {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    entities = parse_products(payload)
    skipped = len(payload) - len(entities)
    loaded = await store.insert_many(entities)
    logger.info("Seeded %d products from %s (%d skipped)", loaded, source_url, skipped)
    return SeedResult(loaded=loaded, skipped=skipped, message="Data loaded successfully")
