"""Redis cache window and caching policy."""
