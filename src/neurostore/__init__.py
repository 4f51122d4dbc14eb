"""
neurostore - a semantic memory engine.

Stores free text as atomic, deduplicated engrams and retrieves them with a
hybrid ranking of vector similarity, BM25 keywords, recency, reinforcement
signal and associative expansion.
"""

__version__ = "0.1.0"

from neurostore.config import NeuroStoreConfig, load_config
from neurostore.core.memory.memory_system import MemorySystem
from neurostore.core.models import Engram, SearchQuery, SearchResult, Strand
from neurostore.connector import get_memory_system

__all__ = [
    'MemorySystem',
    'NeuroStoreConfig',
    'load_config',
    'get_memory_system',
    'Engram',
    'SearchQuery',
    'SearchResult',
    'Strand',
    '__version__'
]
