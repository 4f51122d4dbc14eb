"""
Persistence backends for the memory engine.
"""

from neurostore.store.base import DataStore
from neurostore.store.in_memory import InMemoryStore
from neurostore.utils.exceptions import ConfigurationError


def create_store(settings) -> DataStore:
    """Build the store selected by ``StoreSettings.backend``."""
    if settings.backend == "memory":
        return InMemoryStore()
    if settings.backend == "arango":
        from neurostore.store.arango_store import ArangoStore
        return ArangoStore({
            "hosts": settings.hosts,
            "db_name": settings.db_name,
            "username": settings.username,
            "password": settings.password,
            "engrams_collection": settings.engrams_collection,
            "synapses_collection": settings.synapses_collection,
        })
    raise ConfigurationError(f"Unknown store backend: {settings.backend}")


__all__ = ['DataStore', 'InMemoryStore', 'create_store']
