"""
Fetch strategies compared by the benchmark.

- store:  always read the primary store, then repopulate the cache window
- cache:  serve from the cache window, fall back to the store when it is empty
- hybrid: serve what the cache has, fill the remainder from the store
"""
from enum import Enum


class FetchStrategy(str, Enum):
    """Closed set of strategies. Declaration order is the report tie-break order."""
    STORE = "store"
    CACHE = "cache"
    HYBRID = "hybrid"

    @classmethod
    def parse(cls, value: str) -> "FetchStrategy":
        """Resolve a strategy name or alias. Raises ValueError for unknown names."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Strategy must be a string, got {type(value).__name__}")
        name = value.strip().lower()
        name = STRATEGY_ALIASES.get(name, name)
        return cls(name)

    @property
    def order(self) -> int:
        """Position in the enumeration, used to break report ties."""
        return list(FetchStrategy).index(self)


# Names used by the demo UI
STRATEGY_ALIASES = {
    "db": "store",
    "database": "store",
}
